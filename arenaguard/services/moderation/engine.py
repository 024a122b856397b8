"""
ArenaGuard - Moderation Engine
==============================

Executes moderation actions against participants and appends the audit
record in the same transaction.

DESIGN:
    Authorization and validation run first and never write. The target
    participant is then read, the transition computed, and a single
    transaction commits the participant change (conditional on the version
    read), any role assignment change, and the chained audit record. A
    failure at any point, including the deadline, leaves neither the
    effect nor the record behind.

    Audit records of one community form a hash chain; the next sequence
    number and previous hash are read inside the transaction, so
    concurrent actions on the same community still chain linearly.
"""

import dataclasses
from typing import Any, Dict, Optional

from arenaguard.core.constants import (
    COLLECTION_MODERATION_ACTIONS,
    COLLECTION_PARTICIPANTS,
    COLLECTION_ROLES,
    MAX_REASON_LENGTH,
)
from arenaguard.core.errors import NotFound, Unauthorized, ValidationError
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    GENESIS_HASH,
    TIMED_ACTIONS,
    ModerationAction,
    ModerationActionInput,
    ModerationActionType,
    Participant,
    ParticipantStatus,
    Permission,
    Role,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id, now
from arenaguard.services.moderation.constants import ACTION_EMOJI, ACTION_PERMISSIONS
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.validators import Validators

A = ModerationActionType


class ModerationEngine(BaseService):
    """Applies moderation actions atomically with their audit record."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    # =========================================================================
    # Validation
    # =========================================================================

    async def _authorize(self, action: ModerationActionInput, actor: str, deadline: Deadline):
        required = ACTION_PERMISSIONS[action.type]
        if required is None:
            return await self.registry.require_staff(action.community_id, actor, deadline)
        return await self.registry.require(action.community_id, actor, required, deadline=deadline)

    def _blocked(self, action: ModerationActionInput, actor: str, reason: str) -> None:
        logger.tree(f"{action.type.value.upper()} BLOCKED", [
            ("Reason", reason),
            ("Moderator", actor),
            ("Target", action.target_user_id),
        ], emoji="🚫")

    async def _validate(self, action: ModerationActionInput, actor: str, deadline: Deadline) -> ModerationActionInput:
        action_type = Validators.parse_enum(ModerationActionType, action.type, "type")
        action = dataclasses.replace(action, type=action_type)

        actor_perms = await self._authorize(action, actor, deadline)

        reason = Validators.require_text(action.reason, "reason", MAX_REASON_LENGTH)
        action = dataclasses.replace(action, reason=reason)

        if action.target_user_id == actor:
            self._blocked(action, actor, "Self-action attempt")
            raise ValidationError(f"You cannot {action.type.value} yourself", field="target_user_id")

        if action.duration_minutes is not None:
            if action.type not in TIMED_ACTIONS:
                raise ValidationError(
                    f"duration_minutes is not accepted for {action.type.value}", field="duration_minutes",
                )
            Validators.validate_positive(action.duration_minutes, "duration_minutes")

        if action.type == A.ROLE_CHANGE:
            if not action.new_role:
                raise ValidationError("new_role is required for role_change", field="new_role")
            role = await self.registry.get_community_role(action.community_id, action.new_role, deadline)
            self.registry.check_grantable(actor_perms, role.permissions)
        elif action.new_role is not None:
            raise ValidationError("new_role is only accepted for role_change", field="new_role")

        target_perms = await self.registry.effective_permissions(
            action.community_id, action.target_user_id, None, deadline, honor_ban=False,
        )
        if Permission.ADMINISTRATOR in target_perms and Permission.ADMINISTRATOR not in actor_perms:
            self._blocked(action, actor, "Target holds administrator")
            raise Unauthorized("Moderating an administrator requires administrator", Permission.ADMINISTRATOR.value)

        return action

    # =========================================================================
    # Execute
    # =========================================================================

    async def execute(
        self,
        action: ModerationActionInput,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> ModerationAction:
        """
        Apply a moderation action and record it.

        Args:
            action: What to do, to whom, and why.
            actor: Moderator user id.
            deadline: Optional deadline.

        Returns:
            The appended audit record.

        Raises:
            Unauthorized: Actor lacks the permission implied by the action.
            ValidationError: Empty reason, self-action, bad duration/role.
            NotFound: Target is not a participant, or unknown new_role.
            ConflictError: Lost the participant version race on every attempt.
            Timeout: Deadline passed; nothing was written.
        """
        deadline = self._deadline(deadline)
        action = await self._validate(action, actor, deadline)
        key = participant_key(action.community_id, action.target_user_id)

        async def attempt() -> ModerationAction:
            record = await self._call(self.db.get, COLLECTION_PARTICIPANTS, key, deadline=deadline)
            if record is None:
                raise NotFound("participant", action.target_user_id)
            target = Participant.from_doc(record.data, record.version)
            return await self._call(self._commit, action, actor, target, deadline=deadline)

        result = await retry_on_conflict(
            attempt, self.config.write_max_attempts, deadline, name=f"moderation {action.type.value}",
        )

        items = [
            ("Action", result.type.value),
            ("Target", result.target_user_id),
            ("Moderator", actor),
            ("Reason", result.reason[:100]),
        ]
        if result.duration_minutes:
            items.append(("Duration", f"{result.duration_minutes}m"))
        items.append(("Status", f"{result.details.get('previous_status')} → {result.details.get('new_status')}"))
        items.append(("Sequence", str(result.sequence)))
        logger.tree("Moderation Action Applied", items, emoji=ACTION_EMOJI[result.type])
        return result

    def _transition(self, action: ModerationActionInput, target: Participant) -> Dict[str, Any]:
        """Mutate target in place; returns the post-action snapshot for details."""
        if action.type == A.BAN:
            target.status = ParticipantStatus.BANNED
        elif action.type in (A.UNBAN, A.UNMUTE):
            target.status = ParticipantStatus.ACTIVE
        elif action.type == A.MUTE:
            target.status = ParticipantStatus.MUTED
        elif action.type == A.WARN:
            target.warnings += 1
            # never downgrades banned/muted
            if (target.warnings >= self.config.warn_threshold
                    and target.status not in (ParticipantStatus.BANNED, ParticipantStatus.MUTED)):
                target.status = ParticipantStatus.WARNED
        elif action.type == A.ROLE_CHANGE:
            target.role = action.new_role

        if action.type == A.KICK:
            return {"new_status": None, "new_role": None, "warnings": target.warnings}
        return {"new_status": target.status.value, "new_role": target.role, "warnings": target.warnings}

    def _commit(
        self,
        action: ModerationActionInput,
        actor: str,
        target: Participant,
        deadline: Deadline,
    ) -> ModerationAction:
        community_id = action.community_id
        previous = {
            "previous_status": target.status.value,
            "previous_role": target.role,
            "previous_warnings": target.warnings,
        }
        previous_role = target.role
        after = self._transition(action, target)

        with self.db.transaction(deadline) as tx:
            if action.type == A.KICK:
                tx.delete(COLLECTION_PARTICIPANTS, target.key, expected_version=target.version)
                for record in tx.query(COLLECTION_ROLES, community_id=community_id):
                    role = Role.from_doc(record.data, record.version)
                    if target.user_id in role.assigned_users:
                        role.assigned_users.discard(target.user_id)
                        tx.put(COLLECTION_ROLES, role.id, role.to_doc(), community_id,
                               expected_version=role.version)
            else:
                tx.put(COLLECTION_PARTICIPANTS, target.key, target.to_doc(), community_id,
                       expected_version=target.version)

            if action.type == A.ROLE_CHANGE:
                self._move_role(tx, community_id, target.user_id, previous_role, action.new_role)

            last = tx.query(
                COLLECTION_MODERATION_ACTIONS, community_id=community_id,
                order_by="sequence", descending=True, limit=1,
            )
            sequence = last[0].data["sequence"] + 1 if last else 1
            previous_hash = last[0].data["hash"] if last else GENESIS_HASH

            record = ModerationAction(
                id=new_id("mod"),
                community_id=community_id,
                type=action.type,
                target_user_id=action.target_user_id,
                moderator_id=actor,
                reason=action.reason,
                timestamp=now(),
                sequence=sequence,
                previous_hash=previous_hash,
                duration_minutes=action.duration_minutes,
                details={**previous, **after},
            )
            record = dataclasses.replace(record, hash=record.compute_hash())
            tx.append(COLLECTION_MODERATION_ACTIONS, record.id, record.to_doc(), community_id)

        return record

    @staticmethod
    def _move_role(tx, community_id: str, user_id: str, old_role: Optional[str], new_role: str) -> None:
        """Swap a participant's explicit role assignment inside the transaction."""
        if old_role == new_role:
            return
        for role_id, assigned in ((old_role, False), (new_role, True)):
            if role_id is None:
                continue
            record = tx.get(COLLECTION_ROLES, role_id)
            if record is None:
                if assigned:
                    raise NotFound("role", role_id)
                continue
            role = Role.from_doc(record.data, record.version)
            if role.is_default:
                continue
            if assigned:
                role.assigned_users.add(user_id)
            else:
                role.assigned_users.discard(user_id)
            tx.put(COLLECTION_ROLES, role.id, role.to_doc(), community_id, expected_version=role.version)


__all__ = ["ModerationEngine"]
