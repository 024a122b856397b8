"""
ArenaGuard - Invitation API Models
==================================

Invitation creation, redemption and usage models.
"""

from typing import Optional

from pydantic import BaseModel, Field

from arenaguard.core.models import Invitation, InvitationUsage, RedeemResult
from arenaguard.services.invitations import build_invite_link
from arenaguard.services.base import now


class CreateInvitationRequest(BaseModel):
    type: str = Field("single", description="single, multiple or unlimited")
    max_uses: Optional[int] = Field(None, description="Required for type=multiple")
    ttl_seconds: Optional[float] = Field(None, description="Lifetime; server default when omitted")
    target_role: Optional[str] = None
    description: str = ""


class RedeemLinkRequest(BaseModel):
    link: str = Field(description="app://join/{code} link or bare code")


class InvitationResponse(BaseModel):
    code: str
    link: str
    community_id: str
    created_by: str
    created_at: float
    expires_at: float
    max_uses: int = Field(description="-1 when unlimited")
    current_uses: int
    is_active: bool
    state: str
    target_role: str
    type: str
    description: str

    @classmethod
    def from_model(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(
            **invitation.to_doc(),
            link=build_invite_link(invitation.code),
            state=invitation.state(now()).value,
        )


class UsageResponse(BaseModel):
    id: str
    invitation_id: str
    community_id: str
    user_id: str
    used_at: float

    @classmethod
    def from_model(cls, usage: InvitationUsage) -> "UsageResponse":
        return cls(**usage.to_doc())


class RedeemResponse(BaseModel):
    community_id: str
    granted_role: str
    invitation_code: str
    usage_id: str
    joined: bool

    @classmethod
    def from_model(cls, result: RedeemResult) -> "RedeemResponse":
        return cls(
            community_id=result.community_id,
            granted_role=result.granted_role,
            invitation_code=result.invitation_code,
            usage_id=result.usage_id,
            joined=result.joined,
        )


class PurgeResponse(BaseModel):
    deleted: int


__all__ = [
    "CreateInvitationRequest",
    "RedeemLinkRequest",
    "InvitationResponse",
    "UsageResponse",
    "RedeemResponse",
    "PurgeResponse",
]
