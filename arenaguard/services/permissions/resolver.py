"""
ArenaGuard - Permission Resolver
================================

resolve(user, roles, channel) -> effective permission set.

DESIGN:
    A pure function over value objects: no repository access, no caching,
    no shared state. Callers load roles and the channel fresh for every
    authorization check, so a role or overwrite change applies to the very
    next call.

    Order of evaluation:
    1. Union of the permissions of every held role (the default role is
       held by everyone, even a user with no assigned roles).
    2. administrator short-circuits to the full set. This is the only
       place the administrator bypass is implemented.
    3. Role overwrites of held roles, in ascending role position (stable
       for equal positions), each applying deny then allow to the running
       set. Later overwrites therefore win per permission.
    4. Member overwrites for the user, same rule, applied last so they
       beat every role overwrite.
"""

from typing import FrozenSet, Iterable, List, Optional, Set

from arenaguard.core.models import (
    ALL_PERMISSIONS,
    Channel,
    Permission,
    PermissionOverwrite,
    Role,
    SubjectType,
)
from arenaguard.services.permissions.constants import STAFF_PERMISSIONS


def held_roles(user_id: str, roles: Iterable[Role]) -> List[Role]:
    """Roles the user holds: the default role plus explicit assignments."""
    return [role for role in roles if role.holds(user_id)]


def _apply(running: Set[Permission], overwrite: PermissionOverwrite) -> None:
    running.difference_update(overwrite.deny)
    running.update(overwrite.allow)


def resolve(
    user_id: str,
    roles: Iterable[Role],
    channel: Optional[Channel] = None,
) -> FrozenSet[Permission]:
    """
    Compute the effective permissions of a user, optionally in a channel.

    Args:
        user_id: Opaque verified user id.
        roles: All roles of the community (held ones are picked out here).
        channel: Channel whose overwrites apply, or None for community level.

    Returns:
        Frozen set of permissions.
    """
    held = held_roles(user_id, roles)

    running: Set[Permission] = set()
    for role in held:
        running.update(role.permissions)

    if Permission.ADMINISTRATOR in running:
        return ALL_PERMISSIONS

    if channel is None:
        return frozenset(running)

    positions = {role.id: role.position for role in held}

    role_overwrites = [
        ow for ow in channel.overwrites
        if ow.subject_type == SubjectType.ROLE and ow.subject_id in positions
    ]
    role_overwrites.sort(key=lambda ow: positions[ow.subject_id])
    for overwrite in role_overwrites:
        _apply(running, overwrite)

    for overwrite in channel.overwrites:
        if overwrite.subject_type == SubjectType.MEMBER and overwrite.subject_id == user_id:
            _apply(running, overwrite)

    return frozenset(running)


def is_staff(permissions: FrozenSet[Permission]) -> bool:
    """Staff = administrator or any moderation/management permission."""
    return Permission.ADMINISTRATOR in permissions or bool(permissions & STAFF_PERMISSIONS)


def required_for_mention(
    permissions: FrozenSet[Permission],
    broadcast: bool,
    fanout: int,
    large_community_threshold: int,
) -> Optional[Permission]:
    """
    Mention policy hook.

    Returns the permission the sender is missing, or None if allowed.
    Broadcast mentions need mention_everyone; any mention whose fan-out
    exceeds the large-community threshold additionally needs administrator.
    """
    if broadcast and Permission.MENTION_EVERYONE not in permissions:
        return Permission.MENTION_EVERYONE
    if fanout > large_community_threshold and Permission.ADMINISTRATOR not in permissions:
        return Permission.ADMINISTRATOR
    return None


__all__ = ["resolve", "held_roles", "is_staff", "required_for_mention"]
