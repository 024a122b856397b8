"""
ArenaGuard - Invitation Models
==============================

Invitation tokens and their append-only usage records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from arenaguard.core.constants import UNLIMITED_USES


class InvitationType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    UNLIMITED = "unlimited"


class InvitationState(str, Enum):
    """Derived state used for listings and purge decisions."""

    ACTIVE = "active"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    INACTIVE = "inactive"


@dataclass
class Invitation:
    code: str
    community_id: str
    created_by: str
    created_at: float
    expires_at: float
    max_uses: int
    target_role: str
    type: InvitationType
    current_uses: int = 0
    is_active: bool = True
    description: str = ""
    version: int = 0

    @property
    def id(self) -> str:
        return self.code

    @property
    def is_unlimited(self) -> bool:
        return self.max_uses == UNLIMITED_USES

    @property
    def is_exhausted(self) -> bool:
        return not self.is_unlimited and self.current_uses >= self.max_uses

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def state(self, now: float) -> InvitationState:
        if not self.is_active:
            return InvitationState.INACTIVE
        if self.is_expired(now):
            return InvitationState.EXPIRED
        if self.is_exhausted:
            return InvitationState.EXHAUSTED
        return InvitationState.ACTIVE

    def to_doc(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "community_id": self.community_id,
            "created_by": self.created_by,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "max_uses": self.max_uses,
            "current_uses": self.current_uses,
            "is_active": self.is_active,
            "target_role": self.target_role,
            "type": self.type.value,
            "description": self.description,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Invitation":
        return cls(
            code=data["code"],
            community_id=data["community_id"],
            created_by=data["created_by"],
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
            max_uses=int(data["max_uses"]),
            current_uses=int(data.get("current_uses", 0)),
            is_active=bool(data.get("is_active", True)),
            target_role=data["target_role"],
            type=InvitationType(data["type"]),
            description=data.get("description", ""),
            version=version,
        )


@dataclass(frozen=True)
class InvitationUsage:
    id: str
    invitation_id: str
    community_id: str
    user_id: str
    used_at: float

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invitation_id": self.invitation_id,
            "community_id": self.community_id,
            "user_id": self.user_id,
            "used_at": self.used_at,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "InvitationUsage":
        return cls(
            id=data["id"],
            invitation_id=data["invitation_id"],
            community_id=data["community_id"],
            user_id=data["user_id"],
            used_at=float(data["used_at"]),
        )


@dataclass(frozen=True)
class RedeemResult:
    community_id: str
    granted_role: str
    invitation_code: str
    usage_id: str
    joined: bool  # participant record created by this redemption


__all__ = [
    "InvitationType",
    "InvitationState",
    "Invitation",
    "InvitationUsage",
    "RedeemResult",
]
