"""
ArenaGuard - Role Registry
==========================

Roles per community and the authorization entry point used by every
other service.

DESIGN:
    effective_permissions() loads roles and the channel from the
    repository on every call and hands them to the pure resolver; nothing
    is cached between requests. A banned participant resolves to the
    empty set, so a ban also strips every staff power. Role writes are
    read-modify-write with a version check, retried on conflict.
"""

from typing import FrozenSet, Iterable, List, Optional

from arenaguard.core.constants import (
    COLLECTION_CHANNELS,
    COLLECTION_PARTICIPANTS,
    COLLECTION_ROLES,
    DEFAULT_ROLE_COLOR,
    MAX_NAME_LENGTH,
)
from arenaguard.core.errors import NotFound, Unauthorized, ValidationError
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    Channel,
    Participant,
    Permission,
    Role,
    parse_permissions,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id
from arenaguard.services.permissions.resolver import is_staff, resolve
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.validators import Validators


class RoleRegistry(BaseService):
    """Role storage, role management operations and permission checks."""

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_roles(self, community_id: str, deadline: Optional[Deadline] = None) -> List[Role]:
        """All roles of a community, lowest position first."""
        deadline = self._deadline(deadline)
        records = await self._call(
            self.db.query, COLLECTION_ROLES, community_id=community_id,
            order_by="position", deadline=deadline,
        )
        return [Role.from_doc(r.data, r.version) for r in records]

    async def get_role(self, role_id: str, deadline: Optional[Deadline] = None) -> Role:
        return await self._load(COLLECTION_ROLES, role_id, Role, "role", self._deadline(deadline))

    async def get_default_role(self, community_id: str, deadline: Optional[Deadline] = None) -> Role:
        for role in await self.list_roles(community_id, deadline):
            if role.is_default:
                return role
        raise NotFound("default role", community_id)

    async def get_channel(self, channel_id: str, deadline: Optional[Deadline] = None) -> Channel:
        return await self._load(COLLECTION_CHANNELS, channel_id, Channel, "channel", self._deadline(deadline))

    async def get_community_role(
        self,
        community_id: str,
        role_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        """A role that must belong to community_id (NotFound otherwise)."""
        role = await self.get_role(role_id, deadline)
        if role.community_id != community_id:
            raise NotFound("role", role_id)
        return role

    async def get_community_channel(
        self,
        community_id: str,
        channel_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Channel:
        channel = await self.get_channel(channel_id, deadline)
        if channel.community_id != community_id:
            raise NotFound("channel", channel_id)
        return channel

    # =========================================================================
    # Authorization
    # =========================================================================

    async def effective_permissions(
        self,
        community_id: str,
        user_id: str,
        channel_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
        honor_ban: bool = True,
    ) -> FrozenSet[Permission]:
        """
        Resolve a user's permissions from current stored state.

        A banned participant holds no permissions at all while the ban
        stands. honor_ban=False resolves the roles as if the ban were lifted,
        for checks about the target of a moderation action.

        Raises:
            NotFound: If channel_id is given but unknown in this community.
        """
        deadline = self._deadline(deadline)
        if honor_ban:
            record = await self._call(
                self.db.get, COLLECTION_PARTICIPANTS, participant_key(community_id, user_id),
                deadline=deadline,
            )
            if record is not None and Participant.from_doc(record.data).is_banned:
                return frozenset()
        roles = await self.list_roles(community_id, deadline)
        channel = None
        if channel_id is not None:
            channel = await self.get_community_channel(community_id, channel_id, deadline)
        return resolve(user_id, roles, channel)

    async def require(
        self,
        community_id: str,
        user_id: str,
        *permissions: Permission,
        channel_id: Optional[str] = None,
        any_of: bool = False,
        deadline: Optional[Deadline] = None,
    ) -> FrozenSet[Permission]:
        """
        Check the user holds the permissions (all of them, or any_of).

        Returns:
            The resolved permission set, for follow-up checks.

        Raises:
            Unauthorized: Naming the first missing permission.
        """
        perms = await self.effective_permissions(community_id, user_id, channel_id, deadline)
        missing = [p for p in permissions if p not in perms]
        if missing and (not any_of or len(missing) == len(permissions)):
            raise Unauthorized(permission=missing[0].value)
        return perms

    async def require_staff(
        self,
        community_id: str,
        user_id: str,
        deadline: Optional[Deadline] = None,
    ) -> FrozenSet[Permission]:
        perms = await self.effective_permissions(community_id, user_id, None, deadline)
        if not is_staff(perms):
            raise Unauthorized("Staff permission required", permission="staff")
        return perms

    @staticmethod
    def check_grantable(actor_perms: FrozenSet[Permission], granted: Iterable[Permission]) -> None:
        """Non-administrators cannot hand out permissions they lack."""
        if Permission.ADMINISTRATOR in actor_perms:
            return
        for perm in sorted(granted, key=lambda p: p.value):
            if perm not in actor_perms:
                raise Unauthorized(f"Cannot grant a permission you do not hold: {perm.value}", perm.value)

    # =========================================================================
    # Role Management
    # =========================================================================

    async def create_role(
        self,
        community_id: str,
        actor: str,
        name: str,
        color: Optional[str] = None,
        permissions: Iterable = (),
        mentionable: bool = True,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        """
        Create a role above every existing role.

        Raises:
            Unauthorized: Without manage_roles, or when granting unheld permissions.
            ValidationError: Bad name/colour/permission, or duplicate name.
        """
        deadline = self._deadline(deadline)
        name = Validators.require_text(name, "name", MAX_NAME_LENGTH)
        color = Validators.validate_color(color, DEFAULT_ROLE_COLOR)
        perms = parse_permissions(permissions)

        actor_perms = await self.require(community_id, actor, Permission.MANAGE_ROLES, deadline=deadline)
        self.check_grantable(actor_perms, perms)

        def write(deadline: Deadline) -> Role:
            with self.db.transaction(deadline) as tx:
                existing = tx.query(COLLECTION_ROLES, community_id=community_id)
                if any(r.data.get("name_key") == name.casefold() for r in existing):
                    raise ValidationError(f"Role name already in use: {name}", field="name")
                role = Role(
                    id=new_id("role"),
                    community_id=community_id,
                    name=name,
                    color=color,
                    permissions=perms,
                    position=max((r.data.get("position", 0) for r in existing), default=-1) + 1,
                    mentionable=mentionable,
                )
                record = tx.append(COLLECTION_ROLES, role.id, role.to_doc(), community_id)
                role.version = record.version
                return role

        role = await self._call(write, deadline=deadline)

        logger.tree("Role Created", [
            ("Community", community_id),
            ("Role", f"{role.name} ({role.id})"),
            ("Position", str(role.position)),
            ("Permissions", ", ".join(p.value for p in sorted(perms, key=lambda p: p.value)) or "None"),
            ("Actor", actor),
        ], emoji="🏷️")
        return role

    async def _mutate_role(self, role_id: str, mutate, deadline: Deadline, name: str) -> Role:
        """Read-modify-CAS loop for one role document."""

        async def attempt() -> Role:
            role = await self.get_role(role_id, deadline)
            mutate(role)
            record = await self._call(
                self.db.put, COLLECTION_ROLES, role.id, role.to_doc(), role.community_id,
                expected_version=role.version, deadline=deadline,
            )
            role.version = record.version
            return role

        return await retry_on_conflict(
            attempt, self.config.write_max_attempts, deadline, name=name,
        )

    async def set_role_permissions(
        self,
        role_id: str,
        permissions: Iterable,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        """
        Replace a role's permission set.

        Raises:
            Unauthorized: Without manage_roles, or when granting unheld permissions.
            NotFound: Unknown role.
        """
        deadline = self._deadline(deadline)
        perms = parse_permissions(permissions)
        role = await self.get_role(role_id, deadline)
        actor_perms = await self.require(role.community_id, actor, Permission.MANAGE_ROLES, deadline=deadline)
        self.check_grantable(actor_perms, perms - role.permissions)

        def mutate(r: Role) -> None:
            r.permissions = perms

        role = await self._mutate_role(role_id, mutate, deadline, "set role permissions")

        logger.tree("Role Permissions Updated", [
            ("Role", f"{role.name} ({role.id})"),
            ("Permissions", ", ".join(sorted(p.value for p in perms)) or "None"),
            ("Actor", actor),
        ], emoji="🏷️")
        return role

    async def update_role(
        self,
        role_id: str,
        actor: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
        mentionable: Optional[bool] = None,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        """Rename / recolour a role or toggle mentionable."""
        deadline = self._deadline(deadline)
        role = await self.get_role(role_id, deadline)
        await self.require(role.community_id, actor, Permission.MANAGE_ROLES, deadline=deadline)

        if name is not None:
            name = Validators.require_text(name, "name", MAX_NAME_LENGTH)
            if role.is_default:
                raise ValidationError("The default role cannot be renamed", field="name")
            others = await self.list_roles(role.community_id, deadline)
            if any(r.id != role_id and r.name.casefold() == name.casefold() for r in others):
                raise ValidationError(f"Role name already in use: {name}", field="name")
        if color is not None:
            color = Validators.validate_color(color, role.color)

        def mutate(r: Role) -> None:
            if name is not None:
                r.name = name
            if color is not None:
                r.color = color
            if mentionable is not None:
                r.mentionable = mentionable

        return await self._mutate_role(role_id, mutate, deadline, "update role")

    async def delete_role(self, role_id: str, actor: str, deadline: Optional[Deadline] = None) -> None:
        """
        Delete a role.

        Raises:
            ValidationError: For the default role.
        """
        deadline = self._deadline(deadline)
        role = await self.get_role(role_id, deadline)
        await self.require(role.community_id, actor, Permission.MANAGE_ROLES, deadline=deadline)
        if role.is_default:
            raise ValidationError("The default role cannot be deleted", field="role_id")

        removed = await self._call(self.db.delete, COLLECTION_ROLES, role_id, deadline=deadline)
        if not removed:
            raise NotFound("role", role_id)

        logger.tree("Role Deleted", [
            ("Role", f"{role.name} ({role.id})"),
            ("Actor", actor),
        ], emoji="🗑️")

    async def assign_role(
        self,
        role_id: str,
        user_id: str,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        """Add a member to a role's assigned users."""
        return await self._set_assignment(role_id, user_id, actor, True, deadline)

    async def unassign_role(
        self,
        role_id: str,
        user_id: str,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Role:
        return await self._set_assignment(role_id, user_id, actor, False, deadline)

    async def _set_assignment(
        self,
        role_id: str,
        user_id: str,
        actor: str,
        assigned: bool,
        deadline: Optional[Deadline],
    ) -> Role:
        deadline = self._deadline(deadline)
        role = await self.get_role(role_id, deadline)
        actor_perms = await self.require(role.community_id, actor, Permission.MANAGE_ROLES, deadline=deadline)
        if role.is_default:
            raise ValidationError("The default role is held implicitly", field="role_id")
        if assigned:
            self.check_grantable(actor_perms, role.permissions)
            member = await self._call(
                self.db.get, COLLECTION_PARTICIPANTS, participant_key(role.community_id, user_id),
                deadline=deadline,
            )
            if member is None:
                raise NotFound("participant", user_id)

        def mutate(r: Role) -> None:
            if assigned:
                r.assigned_users.add(user_id)
            else:
                r.assigned_users.discard(user_id)

        role = await self._mutate_role(role_id, mutate, deadline, "assign role")

        logger.tree("Role Assigned" if assigned else "Role Unassigned", [
            ("Role", f"{role.name} ({role.id})"),
            ("User", user_id),
            ("Actor", actor),
        ], emoji="🏷️")
        return role


__all__ = ["RoleRegistry"]
