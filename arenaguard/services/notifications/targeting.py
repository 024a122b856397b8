"""
ArenaGuard - Mention Targeting
==============================

Turns symbolic mentions (everyone / here / role / user) into user ids.

DESIGN:
    resolve_recipients() is pure and assumes authorization already
    happened. MentionService is the authorized entry point: it parses or
    accepts a MentionSet, checks the sender against the mention policy,
    loads members and roles fresh, and expands.
"""

import re
from typing import Iterable, Optional, Set, Tuple

from arenaguard.core.constants import COLLECTION_PARTICIPANTS
from arenaguard.core.errors import Unauthorized
from arenaguard.core.logger import logger
from arenaguard.core.models import MentionSet, Participant, Permission, Role
from arenaguard.services.base import BaseService
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.services.permissions.resolver import required_for_mention
from arenaguard.utils.deadline import Deadline


# =============================================================================
# Parsing
# =============================================================================

EVERYONE_PATTERN = re.compile(r"(?<![\w<])@everyone\b")
HERE_PATTERN = re.compile(r"(?<![\w<])@here\b")
ROLE_PATTERN = re.compile(r"<@&([\w\-]+)>")
USER_PATTERN = re.compile(r"<@!?([\w\-]+)>")


def parse_mentions(content: str) -> MentionSet:
    """Extract @everyone, @here, <@&role> and <@user> tokens from a message."""
    content = content or ""
    return MentionSet(
        everyone=bool(EVERYONE_PATTERN.search(content)),
        here=bool(HERE_PATTERN.search(content)),
        roles=frozenset(ROLE_PATTERN.findall(content)),
        users=frozenset(USER_PATTERN.findall(content)),
    )


# =============================================================================
# Expansion
# =============================================================================

def resolve_recipients(
    mentions: MentionSet,
    community_members: Iterable[str],
    online_members: Iterable[str],
    roles: Iterable[Role] = (),
) -> Set[str]:
    """
    Expand a mention set into concrete user ids.

    everyone -> all members; here -> members that are online; a role ->
    its assigned users that are members (all members for the default
    role); users pass through verbatim. Unknown role ids expand to nothing.
    """
    members = set(community_members)
    recipients: Set[str] = set()

    if mentions.everyone:
        recipients |= members
    if mentions.here:
        recipients |= members & set(online_members)

    if mentions.roles:
        by_id = {role.id: role for role in roles}
        for role_id in mentions.roles:
            role = by_id.get(role_id)
            if role is None:
                continue
            recipients |= members if role.is_default else members & set(role.assigned_users)

    recipients |= set(mentions.users)
    return recipients


# =============================================================================
# Mention Service
# =============================================================================

class MentionService(BaseService):
    """Authorized mention resolution for a sender."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    async def _members(self, community_id: str, deadline: Deadline) -> Tuple[Set[str], Set[str]]:
        """(reachable members, banned members) of a community."""
        records = await self._call(
            self.db.query, COLLECTION_PARTICIPANTS, community_id=community_id, deadline=deadline,
        )
        active: Set[str] = set()
        banned: Set[str] = set()
        for participant in (Participant.from_doc(r.data) for r in records):
            (banned if participant.is_banned else active).add(participant.user_id)
        return active, banned

    async def resolve_for_sender(
        self,
        community_id: str,
        sender: str,
        mentions: MentionSet,
        online: Iterable[str] = (),
        channel_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> Set[str]:
        """
        Authorize and expand a sender's mentions.

        everyone/here and non-mentionable roles need mention_everyone; a
        fan-out above the large-community threshold needs administrator.

        Raises:
            Unauthorized: Naming the missing permission.
            NotFound: Unknown channel.
        """
        deadline = self._deadline(deadline)
        perms = await self.registry.effective_permissions(community_id, sender, channel_id, deadline)
        roles = await self.registry.list_roles(community_id, deadline)
        members, banned = await self._members(community_id, deadline)

        by_id = {role.id: role for role in roles}
        locked_role = any(
            not by_id[role_id].mentionable for role_id in mentions.roles if role_id in by_id
        )
        if locked_role and Permission.MENTION_EVERYONE not in perms:
            raise Unauthorized("Role is not mentionable", permission=Permission.MENTION_EVERYONE.value)

        # banned members are never notified, not even by a direct mention
        recipients = resolve_recipients(mentions, members, online, roles) - banned
        missing = required_for_mention(
            perms, mentions.is_broadcast, len(recipients), self.config.large_community_threshold,
        )
        if missing is not None:
            logger.tree("Mention Blocked", [
                ("Community", community_id),
                ("Sender", sender),
                ("Recipients", str(len(recipients))),
                ("Missing", missing.value),
            ], emoji="🚫")
            raise Unauthorized(permission=missing.value)

        if mentions.is_broadcast:
            logger.tree("Broadcast Mention", [
                ("Community", community_id),
                ("Sender", sender),
                ("Recipients", str(len(recipients))),
            ], emoji="📣")
        return recipients


__all__ = ["parse_mentions", "resolve_recipients", "MentionService"]
