"""
ArenaGuard - Channels Router
============================

Channel CRUD and per-channel permission overwrites.
"""

from typing import List

from fastapi import APIRouter, Depends

from arenaguard.api.dependencies import get_channels, get_current_user_id, get_registry
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.communities import (
    ChannelResponse,
    CreateChannelRequest,
    OverwriteRequest,
    OverwriteResponse,
)
from arenaguard.services import ChannelOverwriteStore, RoleRegistry


router = APIRouter(prefix="/communities/{community_id}/channels", tags=["Channels"])


# =============================================================================
# Channels
# =============================================================================

@router.get("", response_model=APIResponse[List[ChannelResponse]])
async def list_channels(
    community_id: str,
    user_id: str = Depends(get_current_user_id),
    channels: ChannelOverwriteStore = Depends(get_channels),
) -> APIResponse[List[ChannelResponse]]:
    result = await channels.list_channels(community_id)
    return APIResponse(data=[ChannelResponse.from_model(c) for c in result])


@router.post("", response_model=APIResponse[ChannelResponse], status_code=201)
async def create_channel(
    community_id: str,
    body: CreateChannelRequest,
    user_id: str = Depends(get_current_user_id),
    channels: ChannelOverwriteStore = Depends(get_channels),
) -> APIResponse[ChannelResponse]:
    channel = await channels.create_channel(
        community_id, user_id, body.name, body.type, body.parent_id, body.description,
    )
    return APIResponse(message="Channel created", data=ChannelResponse.from_model(channel))


@router.delete("/{channel_id}", response_model=APIResponse[dict])
async def delete_channel(
    community_id: str,
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
    channels: ChannelOverwriteStore = Depends(get_channels),
) -> APIResponse[dict]:
    await registry.get_community_channel(community_id, channel_id)
    await channels.delete_channel(channel_id, user_id)
    return APIResponse(message="Channel deleted", data={"id": channel_id})


# =============================================================================
# Overwrites
# =============================================================================

@router.get("/{channel_id}/overwrites", response_model=APIResponse[List[OverwriteResponse]])
async def get_overwrites(
    community_id: str,
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[List[OverwriteResponse]]:
    channel = await registry.get_community_channel(community_id, channel_id)
    return APIResponse(data=[OverwriteResponse.from_model(o) for o in channel.overwrites])


@router.put("/{channel_id}/overwrites/{subject_type}/{subject_id}", response_model=APIResponse[ChannelResponse])
async def set_overwrite(
    community_id: str,
    channel_id: str,
    subject_type: str,
    subject_id: str,
    body: OverwriteRequest,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
    channels: ChannelOverwriteStore = Depends(get_channels),
) -> APIResponse[ChannelResponse]:
    """Set the allow/deny overwrite for a role or member (subject_type: role or member)."""
    await registry.get_community_channel(community_id, channel_id)
    channel = await channels.set_overwrite(
        channel_id, subject_id, subject_type, body.allow, body.deny, user_id,
    )
    return APIResponse(data=ChannelResponse.from_model(channel))


@router.delete("/{channel_id}/overwrites/{subject_type}/{subject_id}", response_model=APIResponse[ChannelResponse])
async def remove_overwrite(
    community_id: str,
    channel_id: str,
    subject_type: str,
    subject_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
    channels: ChannelOverwriteStore = Depends(get_channels),
) -> APIResponse[ChannelResponse]:
    await registry.get_community_channel(community_id, channel_id)
    channel = await channels.remove_overwrite(channel_id, subject_id, subject_type, user_id)
    return APIResponse(data=ChannelResponse.from_model(channel))


__all__ = ["router"]
