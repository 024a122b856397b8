"""
ArenaGuard - Moderation Models
==============================

Moderation requests and the immutable audit records they produce.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ModerationActionType(str, Enum):
    BAN = "ban"
    UNBAN = "unban"
    WARN = "warn"
    MUTE = "mute"
    UNMUTE = "unmute"
    KICK = "kick"
    ROLE_CHANGE = "role_change"


TIMED_ACTIONS = frozenset({ModerationActionType.BAN, ModerationActionType.MUTE})

GENESIS_HASH = "0" * 64


@dataclass(frozen=True)
class ModerationActionInput:
    """What a moderator asks for; validated by the engine before anything is written."""

    community_id: str
    type: ModerationActionType
    target_user_id: str
    reason: str
    duration_minutes: Optional[int] = None
    new_role: Optional[str] = None


@dataclass(frozen=True)
class ModerationAction:
    """
    Append-only audit record.

    DESIGN:
        Records of one community form a hash chain: each record stores the
        hash of its predecessor and a SHA-256 over its own canonical JSON.
        Editing or removing a stored record breaks verification of every
        record after it.
    """

    id: str
    community_id: str
    type: ModerationActionType
    target_user_id: str
    moderator_id: str
    reason: str
    timestamp: float
    sequence: int
    previous_hash: str
    duration_minutes: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)
    hash: str = ""

    def _canonical(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "community_id": self.community_id,
            "type": self.type.value,
            "target_user_id": self.target_user_id,
            "moderator_id": self.moderator_id,
            "reason": self.reason,
            "timestamp": self.timestamp,
            "sequence": self.sequence,
            "previous_hash": self.previous_hash,
            "duration_minutes": self.duration_minutes,
            "details": self.details,
        }

    def compute_hash(self) -> str:
        payload = json.dumps(self._canonical(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_doc(self) -> Dict[str, Any]:
        doc = self._canonical()
        doc["hash"] = self.hash
        return doc

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "ModerationAction":
        return cls(
            id=data["id"],
            community_id=data["community_id"],
            type=ModerationActionType(data["type"]),
            target_user_id=data["target_user_id"],
            moderator_id=data["moderator_id"],
            reason=data["reason"],
            timestamp=float(data["timestamp"]),
            sequence=int(data["sequence"]),
            previous_hash=data["previous_hash"],
            duration_minutes=data.get("duration_minutes"),
            details=dict(data.get("details") or {}),
            hash=data.get("hash", ""),
        )


__all__ = [
    "ModerationActionType",
    "TIMED_ACTIONS",
    "GENESIS_HASH",
    "ModerationActionInput",
    "ModerationAction",
]
