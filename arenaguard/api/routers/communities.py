"""
ArenaGuard - Communities Router
===============================

Community setup, membership and effective permission lookups.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from arenaguard.api.dependencies import get_communities, get_current_user_id, get_registry
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.communities import (
    AddMemberRequest,
    CommunityResponse,
    CreateCommunityRequest,
    EffectivePermissionsResponse,
    ParticipantResponse,
)
from arenaguard.core.models import dump_permissions
from arenaguard.services import CommunityService, RoleRegistry


router = APIRouter(prefix="/communities", tags=["Communities"])


# =============================================================================
# Setup
# =============================================================================

@router.post("", response_model=APIResponse[CommunityResponse], status_code=201)
async def create_community(
    body: CreateCommunityRequest,
    user_id: str = Depends(get_current_user_id),
    communities: CommunityService = Depends(get_communities),
) -> APIResponse[CommunityResponse]:
    """Create a community with default roles and channels; the caller becomes its organizer."""
    community = await communities.create_community(user_id, body.name)
    return APIResponse(message="Community created", data=CommunityResponse.from_model(community))


@router.get("/{community_id}", response_model=APIResponse[CommunityResponse])
async def get_community(
    community_id: str,
    user_id: str = Depends(get_current_user_id),
    communities: CommunityService = Depends(get_communities),
) -> APIResponse[CommunityResponse]:
    await communities.get_participant(community_id, user_id)
    community = await communities.get_community(community_id)
    return APIResponse(data=CommunityResponse.from_model(community))


# =============================================================================
# Members
# =============================================================================

@router.get("/{community_id}/participants", response_model=APIResponse[List[ParticipantResponse]])
async def list_participants(
    community_id: str,
    status: Optional[str] = Query(None, description="Filter by status: active, warned, muted, banned"),
    user_id: str = Depends(get_current_user_id),
    communities: CommunityService = Depends(get_communities),
) -> APIResponse[List[ParticipantResponse]]:
    """Members only."""
    await communities.get_participant(community_id, user_id)
    participants = await communities.list_participants(community_id, status)
    return APIResponse(data=[ParticipantResponse.from_model(p) for p in participants])


@router.get("/{community_id}/participants/{member_id}", response_model=APIResponse[ParticipantResponse])
async def get_participant(
    community_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    communities: CommunityService = Depends(get_communities),
) -> APIResponse[ParticipantResponse]:
    await communities.get_participant(community_id, user_id)
    participant = await communities.get_participant(community_id, member_id)
    return APIResponse(data=ParticipantResponse.from_model(participant))


@router.post("/{community_id}/members", response_model=APIResponse[ParticipantResponse], status_code=201)
async def add_member(
    community_id: str,
    body: AddMemberRequest,
    user_id: str = Depends(get_current_user_id),
    communities: CommunityService = Depends(get_communities),
) -> APIResponse[ParticipantResponse]:
    participant = await communities.add_member(community_id, body.user_id, user_id, body.role_id)
    return APIResponse(message="Member added", data=ParticipantResponse.from_model(participant))


# =============================================================================
# Permissions
# =============================================================================

@router.get("/{community_id}/permissions", response_model=APIResponse[EffectivePermissionsResponse])
async def effective_permissions(
    community_id: str,
    member_id: Optional[str] = Query(None, description="Whose permissions; defaults to the caller"),
    channel_id: Optional[str] = Query(None, description="Resolve with this channel's overwrites"),
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[EffectivePermissionsResponse]:
    """
    Effective permission set of a member, optionally within a channel.

    Looking up someone else's permissions requires staff.
    """
    target = member_id or user_id
    if target != user_id:
        await registry.require_staff(community_id, user_id)
    perms = await registry.effective_permissions(community_id, target, channel_id)
    return APIResponse(data=EffectivePermissionsResponse(
        community_id=community_id,
        user_id=target,
        channel_id=channel_id,
        permissions=dump_permissions(perms),
    ))


__all__ = ["router"]
