"""
ArenaGuard - Channel Overwrite Store
====================================

Channels and their per-subject allow/deny overwrites.

DESIGN:
    A channel's overwrites are an ordered tuple inside the channel
    document. Setting an overwrite replaces the entry for the same subject
    in place (keeping its slot) or appends a new one, then writes the whole
    channel back with a version check. Cross-call conflicts between
    subjects are the resolver's business, not ours.

    Writes are authorized with manage_channels resolved against the
    channel's parent category when it has one, else at community level.
"""

from typing import Iterable, List, Optional, Tuple

from arenaguard.core.constants import (
    COLLECTION_CHANNELS,
    COLLECTION_PARTICIPANTS,
    MAX_DESCRIPTION_LENGTH,
)
from arenaguard.core.errors import NotFound, ValidationError
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    Channel,
    ChannelType,
    Permission,
    PermissionOverwrite,
    SubjectType,
    parse_permissions,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.validators import Validators


class ChannelOverwriteStore(BaseService):
    """Channel CRUD plus the overwrite write path."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _authorize(self, channel: Channel, actor: str, deadline: Deadline):
        return await self.registry.require(
            channel.community_id, actor, Permission.MANAGE_CHANNELS,
            channel_id=channel.parent_id, deadline=deadline,
        )

    async def _check_subject(
        self,
        community_id: str,
        subject_id: str,
        subject_type: SubjectType,
        deadline: Deadline,
    ) -> None:
        if subject_type == SubjectType.ROLE:
            await self.registry.get_community_role(community_id, subject_id, deadline)
            return
        record = await self._call(
            self.db.get, COLLECTION_PARTICIPANTS, participant_key(community_id, subject_id),
            deadline=deadline,
        )
        if record is None:
            raise NotFound("participant", subject_id)

    async def _mutate_overwrites(self, channel_id: str, mutate, deadline: Deadline, name: str) -> Channel:
        """Read-modify-CAS loop over one channel's overwrite list."""

        async def attempt() -> Channel:
            channel = await self.registry.get_channel(channel_id, deadline)
            channel.overwrites = tuple(mutate(list(channel.overwrites)))
            record = await self._call(
                self.db.put, COLLECTION_CHANNELS, channel.id, channel.to_doc(), channel.community_id,
                expected_version=channel.version, deadline=deadline,
            )
            channel.version = record.version
            return channel

        return await retry_on_conflict(attempt, self.config.write_max_attempts, deadline, name=name)

    # =========================================================================
    # Overwrites
    # =========================================================================

    async def set_overwrite(
        self,
        channel_id: str,
        subject_id: str,
        subject_type: SubjectType,
        allow: Iterable,
        deny: Iterable,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Channel:
        """
        Set the overwrite for one role or member on a channel.

        Args:
            channel_id: Target channel.
            subject_id: Role id or user id.
            subject_type: SubjectType.ROLE or SubjectType.MEMBER.
            allow: Permissions to add.
            deny: Permissions to remove.
            actor: Caller; needs manage_channels.
            deadline: Optional deadline.

        Returns:
            The updated channel.

        Raises:
            ValidationError: allow and deny overlap, or administrator is named.
            Unauthorized: Missing manage_channels, or granting unheld permissions.
            NotFound: Unknown channel or subject.
        """
        deadline = self._deadline(deadline)
        subject_type = Validators.parse_enum(SubjectType, subject_type, "subject_type")
        allow_set = parse_permissions(allow, "allow")
        deny_set = parse_permissions(deny, "deny")

        overlap = allow_set & deny_set
        if overlap:
            raise ValidationError(
                f"Permissions both allowed and denied: {', '.join(sorted(p.value for p in overlap))}",
                field="allow",
            )
        if Permission.ADMINISTRATOR in allow_set | deny_set:
            raise ValidationError("administrator cannot be overwritten per channel", field="allow")

        channel = await self.registry.get_channel(channel_id, deadline)
        actor_perms = await self._authorize(channel, actor, deadline)
        self.registry.check_grantable(actor_perms, allow_set)
        await self._check_subject(channel.community_id, subject_id, subject_type, deadline)

        overwrite = PermissionOverwrite(subject_id, subject_type, allow_set, deny_set)

        def mutate(overwrites: List[PermissionOverwrite]) -> List[PermissionOverwrite]:
            for i, existing in enumerate(overwrites):
                if existing.subject_id == subject_id and existing.subject_type == subject_type:
                    overwrites[i] = overwrite
                    return overwrites
            overwrites.append(overwrite)
            return overwrites

        channel = await self._mutate_overwrites(channel_id, mutate, deadline, "set overwrite")

        logger.tree("Channel Overwrite Set", [
            ("Channel", f"#{channel.name} ({channel.id})"),
            ("Subject", f"{subject_type.value}:{subject_id}"),
            ("Allow", ", ".join(sorted(p.value for p in allow_set)) or "-"),
            ("Deny", ", ".join(sorted(p.value for p in deny_set)) or "-"),
            ("Actor", actor),
        ], emoji="🔐")
        return channel

    async def remove_overwrite(
        self,
        channel_id: str,
        subject_id: str,
        subject_type: SubjectType,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Channel:
        """Drop a subject's overwrite; a no-op when none exists."""
        deadline = self._deadline(deadline)
        subject_type = Validators.parse_enum(SubjectType, subject_type, "subject_type")
        channel = await self.registry.get_channel(channel_id, deadline)
        await self._authorize(channel, actor, deadline)

        def mutate(overwrites: List[PermissionOverwrite]) -> List[PermissionOverwrite]:
            return [
                o for o in overwrites
                if not (o.subject_id == subject_id and o.subject_type == subject_type)
            ]

        channel = await self._mutate_overwrites(channel_id, mutate, deadline, "remove overwrite")

        logger.tree("Channel Overwrite Removed", [
            ("Channel", f"#{channel.name} ({channel.id})"),
            ("Subject", f"{subject_type.value}:{subject_id}"),
            ("Actor", actor),
        ], emoji="🔓")
        return channel

    async def get_overwrites(
        self,
        channel_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Tuple[PermissionOverwrite, ...]:
        channel = await self.registry.get_channel(channel_id, self._deadline(deadline))
        return channel.overwrites

    # =========================================================================
    # Channels
    # =========================================================================

    async def list_channels(self, community_id: str, deadline: Optional[Deadline] = None) -> List[Channel]:
        records = await self._call(
            self.db.query, COLLECTION_CHANNELS, community_id=community_id,
            order_by="position", deadline=self._deadline(deadline),
        )
        return [Channel.from_doc(r.data, r.version) for r in records]

    async def create_channel(
        self,
        community_id: str,
        actor: str,
        name: str,
        type: ChannelType = ChannelType.TEXT,
        parent_id: Optional[str] = None,
        description: str = "",
        deadline: Optional[Deadline] = None,
    ) -> Channel:
        """
        Create a channel at the end of the community's channel list.

        Raises:
            ValidationError: Bad or duplicate name.
            NotFound: parent_id unknown in this community.
        """
        deadline = self._deadline(deadline)
        name = Validators.normalize_channel_name(name)
        channel_type = Validators.parse_enum(ChannelType, type, "type")
        description = (description or "").strip()
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"description exceeds {MAX_DESCRIPTION_LENGTH} characters", field="description")

        if parent_id is not None:
            parent = await self.registry.get_channel(parent_id, deadline)
            if parent.community_id != community_id:
                raise NotFound("channel", parent_id)
        await self.registry.require(
            community_id, actor, Permission.MANAGE_CHANNELS, channel_id=parent_id, deadline=deadline,
        )

        def write(deadline: Deadline) -> Channel:
            with self.db.transaction(deadline) as tx:
                existing = tx.query(COLLECTION_CHANNELS, community_id=community_id)
                if any(r.data.get("name") == name for r in existing):
                    raise ValidationError(f"Channel name already in use: {name}", field="name")
                channel = Channel(
                    id=new_id("chn"),
                    community_id=community_id,
                    name=name,
                    type=channel_type,
                    position=len(existing),
                    parent_id=parent_id,
                    description=description,
                )
                channel.version = tx.append(COLLECTION_CHANNELS, channel.id, channel.to_doc(), community_id).version
                return channel

        channel = await self._call(write, deadline=deadline)

        logger.tree("Channel Created", [
            ("Community", community_id),
            ("Channel", f"#{channel.name} ({channel.id})"),
            ("Type", channel.type.value),
            ("Actor", actor),
        ], emoji="📺")
        return channel

    async def delete_channel(self, channel_id: str, actor: str, deadline: Optional[Deadline] = None) -> None:
        """
        Delete a channel.

        Raises:
            ValidationError: For channels created at community setup.
        """
        deadline = self._deadline(deadline)
        channel = await self.registry.get_channel(channel_id, deadline)
        await self._authorize(channel, actor, deadline)
        if channel.auto_created:
            raise ValidationError("Default channels cannot be deleted", field="channel_id")

        if not await self._call(self.db.delete, COLLECTION_CHANNELS, channel_id, deadline=deadline):
            raise NotFound("channel", channel_id)

        logger.tree("Channel Deleted", [
            ("Channel", f"#{channel.name} ({channel.id})"),
            ("Actor", actor),
        ], emoji="🗑️")


__all__ = ["ChannelOverwriteStore"]
