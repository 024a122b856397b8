"""
ArenaGuard - Invitation Service
===============================

Creates, redeems and retires invitation codes.

DESIGN:
    The code is the document id, so a code collision surfaces as a failed
    insert-only write and creation simply draws a new code.

    Redemption validates a lock-free read first, so dead codes fail fast.
    The commit then re-reads the invitation inside its transaction,
    re-runs the same checks, and writes the counter increment (conditional
    on that version), the usage record, the role grant and the participant
    record together. A redeemer that loses the last use therefore sees
    InvitationExhausted, not a conflict, and current_uses can never pass
    max_uses. A failed conditional write starts the attempt over.
"""

from typing import List, Optional

from arenaguard.core.constants import (
    COLLECTION_INVITATION_USAGES,
    COLLECTION_INVITATIONS,
    COLLECTION_PARTICIPANTS,
    COLLECTION_ROLES,
    MAX_DESCRIPTION_LENGTH,
    SECONDS_PER_HOUR,
    UNLIMITED_USES,
)
from arenaguard.core.errors import (
    InvitationExhausted,
    InvitationExpired,
    InvitationInactive,
    InvitationInvalid,
    NotFound,
    RedeemConflict,
    Unauthorized,
    ValidationError,
)
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    Invitation,
    InvitationState,
    InvitationType,
    InvitationUsage,
    Participant,
    Permission,
    RedeemResult,
    Role,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id, now
from arenaguard.services.community import ensure_participant
from arenaguard.services.permissions.constants import MEMBER_ROLE_KEY
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.services.invitations.codes import build_invite_link, generate_code
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.validators import Validators


class InvitationService(BaseService):
    """Invitation lifecycle: create, redeem, deactivate, delete, purge."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_invitation(self, code: str, deadline: Optional[Deadline] = None) -> Invitation:
        """
        Fetch an invitation by code or deep link.

        Raises:
            InvitationInvalid: Malformed or unknown code.
        """
        deadline = self._deadline(deadline)
        try:
            code = Validators.normalize_code(code)
        except ValidationError:
            raise InvitationInvalid(str(code), "Malformed invitation code")
        record = await self._call(self.db.get, COLLECTION_INVITATIONS, code, deadline=deadline)
        if record is None:
            raise InvitationInvalid(code, "Invitation not found")
        return Invitation.from_doc(record.data, record.version)

    async def _load_managed(self, code: str, actor: str, deadline: Deadline) -> Invitation:
        """Load an invitation and check the actor may manage it."""
        try:
            invitation = await self.get_invitation(code, deadline)
        except InvitationInvalid:
            raise NotFound("invitation", str(code))
        await self.registry.require(
            invitation.community_id, actor, Permission.MANAGE_TOURNAMENT, deadline=deadline,
        )
        return invitation

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        community_id: str,
        creator: str,
        type: InvitationType = InvitationType.SINGLE,
        max_uses: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        target_role: Optional[str] = None,
        description: str = "",
        deadline: Optional[Deadline] = None,
    ) -> Invitation:
        """
        Create an invitation.

        Args:
            community_id: Community the code joins.
            creator: Caller; needs manage_tournament.
            type: single (1 use), multiple (max_uses required) or unlimited.
            max_uses: Use limit for type=multiple.
            ttl_seconds: Lifetime; defaults to the configured invitation TTL.
            target_role: Role granted on redemption; defaults to Participant.
            description: Free-text note.
            deadline: Optional deadline.

        Raises:
            Unauthorized: Without manage_tournament.
            ValidationError: Bad use limit, TTL or description.
            NotFound: Unknown target role.
            ConflictError: No free code found within the attempt budget.
        """
        deadline = self._deadline(deadline)
        invite_type = Validators.parse_enum(InvitationType, type, "type")

        if invite_type == InvitationType.SINGLE:
            uses = 1
        elif invite_type == InvitationType.UNLIMITED:
            uses = UNLIMITED_USES
        else:
            uses = Validators.validate_positive(max_uses, "max_uses")
            if uses is None:
                raise ValidationError("max_uses is required for multiple-use invitations", field="max_uses")

        if ttl_seconds is None:
            ttl_seconds = self.config.invite_ttl_hours * SECONDS_PER_HOUR
        if ttl_seconds <= 0:
            raise ValidationError("ttl_seconds must be positive", field="ttl_seconds")

        description = (description or "").strip()
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(f"description exceeds {MAX_DESCRIPTION_LENGTH} characters", field="description")

        await self.registry.require(community_id, creator, Permission.MANAGE_TOURNAMENT, deadline=deadline)

        if target_role is None:
            roles = await self.registry.list_roles(community_id, deadline)
            member_role = next((r for r in roles if r.name.casefold() == MEMBER_ROLE_KEY), None)
            if member_role is None:
                member_role = next((r for r in roles if r.is_default), None)
            if member_role is None:
                raise NotFound("default role", community_id)
            target_role = member_role.id
        else:
            await self.registry.get_community_role(community_id, target_role, deadline)

        created_at = now()

        async def attempt() -> Invitation:
            invitation = Invitation(
                code=generate_code(),
                community_id=community_id,
                created_by=creator,
                created_at=created_at,
                expires_at=created_at + ttl_seconds,
                max_uses=uses,
                target_role=target_role,
                type=invite_type,
                description=description,
            )
            record = await self._call(
                self.db.append, COLLECTION_INVITATIONS, invitation.code, invitation.to_doc(),
                community_id, deadline=deadline,
            )
            invitation.version = record.version
            return invitation

        invitation = await retry_on_conflict(
            attempt, self.config.code_max_attempts, deadline, name="generate invitation code",
        )

        logger.tree("Invitation Created", [
            ("Community", community_id),
            ("Code", invitation.code),
            ("Link", build_invite_link(invitation.code)),
            ("Type", invite_type.value),
            ("Max Uses", "unlimited" if invitation.is_unlimited else str(invitation.max_uses)),
            ("TTL", f"{ttl_seconds / SECONDS_PER_HOUR:.1f}h"),
            ("Creator", creator),
        ], emoji="🎟️")
        return invitation

    # =========================================================================
    # Redeem
    # =========================================================================

    async def redeem(
        self,
        code: str,
        user_id: str,
        deadline: Optional[Deadline] = None,
    ) -> RedeemResult:
        """
        Redeem a code (or app://join/ link) for a user.

        Checks run in this order: unknown, deactivated, expired, exhausted.

        Returns:
            RedeemResult naming the granted role.

        Raises:
            InvitationInvalid, InvitationInactive, InvitationExpired,
            InvitationExhausted: Invitation not usable.
            Unauthorized: The user is banned from the community.
            RedeemConflict: Lost the counter race on every attempt.
            Timeout: Deadline passed; nothing was written.
        """
        deadline = self._deadline(deadline)
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("user_id is required", field="user_id")

        async def attempt() -> RedeemResult:
            invitation = await self.get_invitation(code, deadline)
            moment = now()
            self._check_redeemable(invitation, moment)
            return await self._call(self._commit_redemption, invitation, user_id, moment, deadline=deadline)

        result = await retry_on_conflict(
            attempt,
            self.config.redeem_max_attempts,
            deadline,
            exhausted=lambda: RedeemConflict(f"Redemption retries exhausted for {code}"),
            name="redeem invitation",
        )

        logger.tree("Invitation Redeemed", [
            ("Community", result.community_id),
            ("Code", result.invitation_code),
            ("User", user_id),
            ("Granted Role", result.granted_role),
            ("New Member", "Yes" if result.joined else "No"),
        ], emoji="✅")
        return result

    @staticmethod
    def _check_redeemable(invitation: Invitation, moment: float) -> None:
        if not invitation.is_active:
            raise InvitationInactive(invitation.code, "Invitation has been deactivated")
        if invitation.is_expired(moment):
            raise InvitationExpired(invitation.code, "Invitation has expired")
        if invitation.is_exhausted:
            raise InvitationExhausted(invitation.code, "Invitation has no uses left")

    def _commit_redemption(
        self,
        invitation: Invitation,
        user_id: str,
        moment: float,
        deadline: Deadline,
    ) -> RedeemResult:
        """One atomic redemption against the invitation as stored at commit time."""
        community_id = invitation.community_id

        with self.db.transaction(deadline) as tx:
            current = tx.get(COLLECTION_INVITATIONS, invitation.code)
            if current is None:
                raise InvitationInvalid(invitation.code, "Invitation not found")
            if current.version != invitation.version:
                invitation = Invitation.from_doc(current.data, current.version)
                self._check_redeemable(invitation, moment)

            member = tx.get(COLLECTION_PARTICIPANTS, participant_key(community_id, user_id))
            if member is not None and Participant.from_doc(member.data).is_banned:
                raise Unauthorized("Banned users cannot redeem invitations", permission="not_banned")

            invitation.current_uses += 1
            tx.put(
                COLLECTION_INVITATIONS, invitation.code, invitation.to_doc(), community_id,
                expected_version=invitation.version,
            )

            usage = InvitationUsage(
                id=new_id("use"),
                invitation_id=invitation.code,
                community_id=community_id,
                user_id=user_id,
                used_at=moment,
            )
            tx.append(COLLECTION_INVITATION_USAGES, usage.id, usage.to_doc(), community_id)

            role_record = tx.get(COLLECTION_ROLES, invitation.target_role)
            if role_record is None:
                raise NotFound("role", invitation.target_role)
            role = Role.from_doc(role_record.data, role_record.version)
            if not role.is_default and user_id not in role.assigned_users:
                role.assigned_users.add(user_id)
                tx.put(COLLECTION_ROLES, role.id, role.to_doc(), community_id, expected_version=role.version)

            participant, created = ensure_participant(tx, community_id, user_id, role.id)
            if not created and participant.role is None:
                participant.role = role.id
                tx.put(
                    COLLECTION_PARTICIPANTS, participant.key, participant.to_doc(), community_id,
                    expected_version=participant.version,
                )

        return RedeemResult(
            community_id=community_id,
            granted_role=role.id,
            invitation_code=invitation.code,
            usage_id=usage.id,
            joined=created,
        )

    # =========================================================================
    # Retire
    # =========================================================================

    async def deactivate(self, code: str, actor: str, deadline: Optional[Deadline] = None) -> Invitation:
        """Set is_active=false. Deactivating twice is not an error."""
        deadline = self._deadline(deadline)
        invitation = await self._load_managed(code, actor, deadline)

        async def attempt() -> Invitation:
            current = await self.get_invitation(invitation.code, deadline)
            if not current.is_active:
                return current
            current.is_active = False
            record = await self._call(
                self.db.put, COLLECTION_INVITATIONS, current.code, current.to_doc(), current.community_id,
                expected_version=current.version, deadline=deadline,
            )
            current.version = record.version
            return current

        result = await retry_on_conflict(
            attempt, self.config.write_max_attempts, deadline, name="deactivate invitation",
        )

        logger.tree("Invitation Deactivated", [
            ("Code", result.code),
            ("Uses", f"{result.current_uses}/{'∞' if result.is_unlimited else result.max_uses}"),
            ("Actor", actor),
        ], emoji="⛔")
        return result

    async def delete(self, code: str, actor: str, deadline: Optional[Deadline] = None) -> None:
        """
        Hard-remove an invitation. Usage records are kept.

        Raises:
            NotFound: Unknown code.
        """
        deadline = self._deadline(deadline)
        invitation = await self._load_managed(code, actor, deadline)
        if not await self._call(self.db.delete, COLLECTION_INVITATIONS, invitation.code, deadline=deadline):
            raise NotFound("invitation", invitation.code)

        logger.tree("Invitation Deleted", [
            ("Code", invitation.code),
            ("Community", invitation.community_id),
            ("Actor", actor),
        ], emoji="🗑️")

    async def purge_inert(self, community_id: str, actor: str, deadline: Optional[Deadline] = None) -> int:
        """Delete every expired, exhausted or deactivated invitation of a community."""
        deadline = self._deadline(deadline)
        await self.registry.require(community_id, actor, Permission.MANAGE_TOURNAMENT, deadline=deadline)

        def purge(deadline: Deadline) -> List[str]:
            moment = now()
            removed = []
            with self.db.transaction(deadline) as tx:
                for record in tx.query(COLLECTION_INVITATIONS, community_id=community_id):
                    invitation = Invitation.from_doc(record.data, record.version)
                    if invitation.state(moment) != InvitationState.ACTIVE:
                        tx.delete(COLLECTION_INVITATIONS, invitation.code, expected_version=record.version)
                        removed.append(invitation.code)
            return removed

        removed = await self._call(purge, deadline=deadline)

        logger.tree("Inert Invitations Purged", [
            ("Community", community_id),
            ("Removed", str(len(removed))),
            ("Actor", actor),
        ], emoji="🧹")
        return len(removed)

    # =========================================================================
    # Listings
    # =========================================================================

    async def list_invitations(
        self,
        community_id: str,
        actor: str,
        include_inactive: bool = False,
        deadline: Optional[Deadline] = None,
    ) -> List[Invitation]:
        """Invitations of a community, newest first; only usable ones by default."""
        deadline = self._deadline(deadline)
        await self.registry.require(community_id, actor, Permission.MANAGE_TOURNAMENT, deadline=deadline)
        records = await self._call(
            self.db.query, COLLECTION_INVITATIONS, community_id=community_id,
            order_by="created_at", descending=True, deadline=deadline,
        )
        invitations = [Invitation.from_doc(r.data, r.version) for r in records]
        if include_inactive:
            return invitations
        moment = now()
        return [i for i in invitations if i.state(moment) == InvitationState.ACTIVE]

    async def list_usages(
        self,
        code: str,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> List[InvitationUsage]:
        """Redemptions of one invitation, newest first."""
        deadline = self._deadline(deadline)
        invitation = await self._load_managed(code, actor, deadline)
        records = await self._call(
            self.db.query, COLLECTION_INVITATION_USAGES, {"invitation_id": invitation.code},
            community_id=invitation.community_id, order_by="used_at", descending=True,
            deadline=deadline,
        )
        return [InvitationUsage.from_doc(r.data) for r in records]


__all__ = ["InvitationService"]
