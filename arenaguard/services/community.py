"""
ArenaGuard - Community Service
==============================

Community setup and membership.

DESIGN:
    create_community() writes the community, its template roles, the
    auto-created channels and the owner's participant record in a single
    transaction, so a community is either fully provisioned or absent.
    Template channel overwrites name roles by template key; the keys are
    mapped to the freshly generated role ids at write time.
"""

from typing import Dict, List, Optional, Tuple

from arenaguard.core.constants import (
    COLLECTION_CHANNELS,
    COLLECTION_COMMUNITIES,
    COLLECTION_PARTICIPANTS,
    COLLECTION_ROLES,
    MAX_NAME_LENGTH,
)
from arenaguard.core.errors import NotFound, ValidationError
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    Channel,
    Community,
    Participant,
    ParticipantStatus,
    Permission,
    PermissionOverwrite,
    Role,
    SubjectType,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id, now
from arenaguard.services.permissions.constants import (
    DEFAULT_CHANNEL_TEMPLATES,
    DEFAULT_ROLE_TEMPLATES,
    OWNER_ROLE_KEY,
)
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.validators import Validators


# =============================================================================
# Transaction Helpers
# =============================================================================

def ensure_participant(
    tx,
    community_id: str,
    user_id: str,
    role_id: Optional[str] = None,
) -> Tuple[Participant, bool]:
    """
    Load or create a participant record inside an open transaction.

    Returns:
        (participant, created)
    """
    key = participant_key(community_id, user_id)
    record = tx.get(COLLECTION_PARTICIPANTS, key)
    if record is not None:
        return Participant.from_doc(record.data, record.version), False

    participant = Participant(
        community_id=community_id,
        user_id=user_id,
        status=ParticipantStatus.ACTIVE,
        role=role_id,
        joined_at=now(),
    )
    participant.version = tx.append(COLLECTION_PARTICIPANTS, key, participant.to_doc(), community_id).version
    return participant, True


# =============================================================================
# Community Service
# =============================================================================

class CommunityService(BaseService):
    """Community provisioning and member records."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    async def create_community(
        self,
        owner_id: str,
        name: str,
        deadline: Optional[Deadline] = None,
    ) -> Community:
        """
        Provision a community with its default roles and channels.

        The owner is assigned the top template role (administrator).

        Raises:
            ValidationError: Blank or overlong name.
        """
        deadline = self._deadline(deadline)
        name = Validators.require_text(name, "name", MAX_NAME_LENGTH)
        owner_id = Validators.require_text(owner_id, "owner_id", MAX_NAME_LENGTH)
        community_id = new_id("cmt")

        def write(deadline: Deadline) -> Community:
            role_ids: Dict[str, str] = {}
            default_role_id = ""

            with self.db.transaction(deadline) as tx:
                for position, template in enumerate(DEFAULT_ROLE_TEMPLATES):
                    role = Role(
                        id=new_id("role"),
                        community_id=community_id,
                        name=template["name"],
                        color=template["color"],
                        permissions=frozenset(template["permissions"]),
                        position=position,
                        mentionable=template.get("mentionable", True),
                        is_default=template.get("is_default", False),
                        assigned_users={owner_id} if template["key"] == OWNER_ROLE_KEY else set(),
                    )
                    tx.append(COLLECTION_ROLES, role.id, role.to_doc(), community_id)
                    role_ids[template["key"]] = role.id
                    if role.is_default:
                        default_role_id = role.id

                for position, template in enumerate(DEFAULT_CHANNEL_TEMPLATES):
                    overwrites = tuple(
                        PermissionOverwrite(
                            subject_id=role_ids[key],
                            subject_type=SubjectType.ROLE,
                            allow=frozenset(allow),
                            deny=frozenset(deny),
                        )
                        for key, (allow, deny) in template["overwrites"].items()
                    )
                    channel = Channel(
                        id=new_id("chn"),
                        community_id=community_id,
                        name=template["name"],
                        type=template["type"],
                        position=position,
                        overwrites=overwrites,
                        auto_created=True,
                        description=template["description"],
                    )
                    tx.append(COLLECTION_CHANNELS, channel.id, channel.to_doc(), community_id)

                community = Community(
                    id=community_id,
                    name=name,
                    owner_id=owner_id,
                    default_role_id=default_role_id,
                    created_at=now(),
                )
                tx.append(COLLECTION_COMMUNITIES, community.id, community.to_doc(), community_id)
                ensure_participant(tx, community_id, owner_id, role_ids[OWNER_ROLE_KEY])

            return community

        community = await self._call(write, deadline=deadline)

        logger.tree("Community Created", [
            ("Community", f"{community.name} ({community.id})"),
            ("Owner", owner_id),
            ("Roles", str(len(DEFAULT_ROLE_TEMPLATES))),
            ("Channels", ", ".join(t["name"] for t in DEFAULT_CHANNEL_TEMPLATES)),
        ], emoji="🏟️")
        return community

    async def get_community(self, community_id: str, deadline: Optional[Deadline] = None) -> Community:
        return await self._load(
            COLLECTION_COMMUNITIES, community_id, Community, "community", self._deadline(deadline),
        )

    async def get_participant(
        self,
        community_id: str,
        user_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Participant:
        return await self._load(
            COLLECTION_PARTICIPANTS, participant_key(community_id, user_id), Participant,
            "participant", self._deadline(deadline),
        )

    async def list_participants(
        self,
        community_id: str,
        status: Optional[ParticipantStatus] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[Participant]:
        """Members of a community, oldest first, optionally by status."""
        if status is not None:
            status = Validators.parse_enum(ParticipantStatus, status, "status")
        records = await self._call(
            self.db.query, COLLECTION_PARTICIPANTS,
            {"status": status} if status is not None else None,
            community_id=community_id, order_by="joined_at", deadline=self._deadline(deadline),
        )
        return [Participant.from_doc(r.data, r.version) for r in records]

    async def add_member(
        self,
        community_id: str,
        user_id: str,
        actor: str,
        role_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> Participant:
        """
        Add a member directly (without an invitation).

        Raises:
            Unauthorized: Without manage_tournament.
            ValidationError: If the user is already a member.
            NotFound: Unknown community or role.
        """
        deadline = self._deadline(deadline)
        user_id = Validators.require_text(user_id, "user_id", MAX_NAME_LENGTH)
        community = await self.get_community(community_id, deadline)
        actor_perms = await self.registry.require(
            community_id, actor, Permission.MANAGE_TOURNAMENT, deadline=deadline,
        )

        role: Optional[Role] = None
        if role_id is not None and role_id != community.default_role_id:
            role = await self.registry.get_community_role(community_id, role_id, deadline)
            self.registry.check_grantable(actor_perms, role.permissions)

        def write(deadline: Deadline) -> Participant:
            with self.db.transaction(deadline) as tx:
                participant, created = ensure_participant(
                    tx, community_id, user_id, role.id if role else community.default_role_id,
                )
                if not created:
                    raise ValidationError(f"Already a member: {user_id}", field="user_id")
                if role is not None:
                    record = tx.get(COLLECTION_ROLES, role.id)
                    if record is None:
                        raise NotFound("role", role.id)
                    current = Role.from_doc(record.data, record.version)
                    current.assigned_users.add(user_id)
                    tx.put(COLLECTION_ROLES, current.id, current.to_doc(), community_id,
                           expected_version=current.version)
                return participant

        participant = await self._call(write, deadline=deadline)

        logger.tree("Member Added", [
            ("Community", community_id),
            ("User", user_id),
            ("Role", role.name if role else "@everyone"),
            ("Actor", actor),
        ], emoji="👋")
        return participant


__all__ = ["CommunityService", "ensure_participant"]
