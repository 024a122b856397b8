"""
ArenaGuard - Community Models
=============================

Community record and per-member moderation state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ParticipantStatus(str, Enum):
    ACTIVE = "active"
    BANNED = "banned"
    WARNED = "warned"
    MUTED = "muted"


def participant_key(community_id: str, user_id: str) -> str:
    """Document id of a participant record."""
    return f"{community_id}:{user_id}"


@dataclass
class Community:
    id: str
    name: str
    owner_id: str
    default_role_id: str
    created_at: float

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "default_role_id": self.default_role_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Community":
        return cls(
            id=data["id"],
            name=data["name"],
            owner_id=data["owner_id"],
            default_role_id=data["default_role_id"],
            created_at=float(data["created_at"]),
        )


@dataclass
class Participant:
    """
    Moderation target state for one member of one community.

    Mutated only as a side effect of a moderation action (or created by
    community setup / invitation redemption).
    """

    community_id: str
    user_id: str
    status: ParticipantStatus = ParticipantStatus.ACTIVE
    warnings: int = 0
    role: Optional[str] = None
    joined_at: float = 0.0
    version: int = 0

    @property
    def key(self) -> str:
        return participant_key(self.community_id, self.user_id)

    @property
    def is_banned(self) -> bool:
        return self.status == ParticipantStatus.BANNED

    def to_doc(self) -> Dict[str, Any]:
        return {
            "community_id": self.community_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "warnings": self.warnings,
            "role": self.role,
            "joined_at": self.joined_at,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Participant":
        return cls(
            community_id=data["community_id"],
            user_id=data["user_id"],
            status=ParticipantStatus(data.get("status", "active")),
            warnings=int(data.get("warnings", 0)),
            role=data.get("role"),
            joined_at=float(data.get("joined_at", 0.0)),
            version=version,
        )


__all__ = ["ParticipantStatus", "participant_key", "Community", "Participant"]
