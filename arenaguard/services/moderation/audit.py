"""
ArenaGuard - Audit Log
======================

Read side of the moderation audit chain.

DESIGN:
    Records are append-only at the repository level; this module only
    reads them. verify_chain() recomputes every hash in sequence order and
    reports the first record whose sequence, back-link or own hash does
    not check out.
"""

from dataclasses import dataclass
from typing import List, Optional

from arenaguard.core.constants import COLLECTION_MODERATION_ACTIONS
from arenaguard.core.logger import logger
from arenaguard.core.models import GENESIS_HASH, ModerationAction, Permission
from arenaguard.services.base import BaseService
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.utils.deadline import Deadline


@dataclass(frozen=True)
class ChainReport:
    """Outcome of an audit chain verification."""

    valid: bool
    checked: int
    broken_at: Optional[int] = None
    error: Optional[str] = None


class AuditLog(BaseService):
    """Moderation history queries and tamper detection."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    async def _records(self, community_id: str, deadline: Deadline, target_user_id: Optional[str] = None,
                       descending: bool = False, limit: Optional[int] = None) -> List[ModerationAction]:
        records = await self._call(
            self.db.query, COLLECTION_MODERATION_ACTIONS,
            {"target_user_id": target_user_id} if target_user_id else None,
            community_id=community_id, order_by="sequence", descending=descending, limit=limit,
            deadline=deadline,
        )
        return [ModerationAction.from_doc(r.data) for r in records]

    async def history(
        self,
        community_id: str,
        actor: str,
        target_user_id: Optional[str] = None,
        limit: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[ModerationAction]:
        """
        Moderation records of a community, newest first.

        Raises:
            Unauthorized: Without view_audit_log.
        """
        deadline = self._deadline(deadline)
        await self.registry.require(community_id, actor, Permission.VIEW_AUDIT_LOG, deadline=deadline)
        return await self._records(community_id, deadline, target_user_id, descending=True, limit=limit)

    async def verify_chain(
        self,
        community_id: str,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> ChainReport:
        """Recompute the community's audit chain from the first record."""
        deadline = self._deadline(deadline)
        await self.registry.require(community_id, actor, Permission.VIEW_AUDIT_LOG, deadline=deadline)
        report = verify_records(await self._records(community_id, deadline))

        if not report.valid:
            logger.warning("Audit Chain Broken", [
                ("Community", community_id),
                ("Sequence", str(report.broken_at)),
                ("Error", report.error or "?"),
            ])
        return report


def verify_records(records: List[ModerationAction]) -> ChainReport:
    """Check ordered records: contiguous sequence, back-links and hashes."""
    previous_hash = GENESIS_HASH
    for expected_sequence, record in enumerate(records, start=1):
        if record.sequence != expected_sequence:
            return ChainReport(False, expected_sequence - 1, record.sequence, "sequence gap")
        if record.previous_hash != previous_hash:
            return ChainReport(False, expected_sequence - 1, record.sequence, "previous hash mismatch")
        if record.hash != record.compute_hash():
            return ChainReport(False, expected_sequence - 1, record.sequence, "hash mismatch")
        previous_hash = record.hash
    return ChainReport(True, len(records))


__all__ = ["AuditLog", "ChainReport", "verify_records"]
