"""
ArenaGuard - Moderation API Models
==================================

Moderation action, history and chain verification models.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from arenaguard.core.models import ModerationAction
from arenaguard.services.moderation import ChainReport


class ModerationRequest(BaseModel):
    type: str = Field(description="ban, unban, mute, unmute, kick, warn or role_change")
    target_user_id: str
    reason: str
    duration_minutes: Optional[int] = Field(None, description="mute/ban only")
    new_role: Optional[str] = Field(None, description="role_change only")


class ModerationActionResponse(BaseModel):
    id: str
    community_id: str
    type: str
    target_user_id: str
    moderator_id: str
    reason: str
    timestamp: float
    sequence: int
    previous_hash: str
    hash: str
    duration_minutes: Optional[int] = None
    details: Dict[str, Any]

    @classmethod
    def from_model(cls, action: ModerationAction) -> "ModerationActionResponse":
        return cls(**action.to_doc())


class ChainReportResponse(BaseModel):
    valid: bool
    checked: int = Field(description="Records verified before the first break")
    broken_at: Optional[int] = Field(None, description="Sequence of the first bad record")
    error: Optional[str] = None

    @classmethod
    def from_model(cls, report: ChainReport) -> "ChainReportResponse":
        return cls(
            valid=report.valid,
            checked=report.checked,
            broken_at=report.broken_at,
            error=report.error,
        )


__all__ = ["ModerationRequest", "ModerationActionResponse", "ChainReportResponse"]
