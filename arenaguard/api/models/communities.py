"""
ArenaGuard - Community API Models
=================================

Community, member, role, channel and overwrite models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from arenaguard.core.models import Channel, Community, Participant, PermissionOverwrite, Role


# =============================================================================
# Request Models
# =============================================================================

class CreateCommunityRequest(BaseModel):
    """Create a community owned by the caller."""

    name: str = Field(description="Display name")


class AddMemberRequest(BaseModel):
    user_id: str
    role_id: Optional[str] = Field(None, description="Role to assign; @everyone when omitted")


class CreateRoleRequest(BaseModel):
    name: str
    color: Optional[str] = Field(None, description="Hex colour like #5865F2")
    permissions: List[str] = Field(default_factory=list)
    mentionable: bool = True


class UpdateRoleRequest(BaseModel):
    """Partial update; omitted fields are left alone."""

    name: Optional[str] = None
    color: Optional[str] = None
    mentionable: Optional[bool] = None


class SetPermissionsRequest(BaseModel):
    permissions: List[str]


class CreateChannelRequest(BaseModel):
    name: str
    type: str = "text"
    parent_id: Optional[str] = None
    description: str = ""


class OverwriteRequest(BaseModel):
    allow: List[str] = Field(default_factory=list)
    deny: List[str] = Field(default_factory=list)


# =============================================================================
# Response Models
# =============================================================================

class CommunityResponse(BaseModel):
    id: str
    name: str
    owner_id: str
    default_role_id: str
    created_at: float = Field(description="Unix timestamp")

    @classmethod
    def from_model(cls, community: Community) -> "CommunityResponse":
        return cls(**community.to_doc())


class ParticipantResponse(BaseModel):
    community_id: str
    user_id: str
    status: str
    warnings: int
    role: Optional[str] = None
    joined_at: float

    @classmethod
    def from_model(cls, participant: Participant) -> "ParticipantResponse":
        return cls(**participant.to_doc())


class RoleResponse(BaseModel):
    id: str
    community_id: str
    name: str
    color: str
    permissions: List[str]
    position: int
    mentionable: bool
    is_default: bool
    assigned_users: List[str]
    version: int

    @classmethod
    def from_model(cls, role: Role) -> "RoleResponse":
        return cls(**role.to_doc(), version=role.version)


class OverwriteResponse(BaseModel):
    subject_id: str
    subject_type: str
    allow: List[str]
    deny: List[str]

    @classmethod
    def from_model(cls, overwrite: PermissionOverwrite) -> "OverwriteResponse":
        return cls(**overwrite.to_doc())


class ChannelResponse(BaseModel):
    id: str
    community_id: str
    name: str
    type: str
    position: int
    parent_id: Optional[str] = None
    overwrites: List[OverwriteResponse]
    auto_created: bool
    description: str
    version: int

    @classmethod
    def from_model(cls, channel: Channel) -> "ChannelResponse":
        return cls(**channel.to_doc(), version=channel.version)


class EffectivePermissionsResponse(BaseModel):
    community_id: str
    user_id: str
    channel_id: Optional[str] = None
    permissions: List[str]


__all__ = [
    "CreateCommunityRequest",
    "AddMemberRequest",
    "CreateRoleRequest",
    "UpdateRoleRequest",
    "SetPermissionsRequest",
    "CreateChannelRequest",
    "OverwriteRequest",
    "CommunityResponse",
    "ParticipantResponse",
    "RoleResponse",
    "OverwriteResponse",
    "ChannelResponse",
    "EffectivePermissionsResponse",
]
