"""
ArenaGuard - Invitations Router
===============================

Invitation management and redemption endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from arenaguard.api.dependencies import get_current_user_id, get_invitations
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.invitations import (
    CreateInvitationRequest,
    InvitationResponse,
    PurgeResponse,
    RedeemLinkRequest,
    RedeemResponse,
    UsageResponse,
)
from arenaguard.services import InvitationService


router = APIRouter(tags=["Invitations"])


# =============================================================================
# Community Scoped
# =============================================================================

@router.post(
    "/communities/{community_id}/invitations",
    response_model=APIResponse[InvitationResponse],
    status_code=201,
)
async def create_invitation(
    community_id: str,
    body: CreateInvitationRequest,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[InvitationResponse]:
    invitation = await invitations.create(
        community_id,
        user_id,
        type=body.type,
        max_uses=body.max_uses,
        ttl_seconds=body.ttl_seconds,
        target_role=body.target_role,
        description=body.description,
    )
    return APIResponse(message="Invitation created", data=InvitationResponse.from_model(invitation))


@router.get("/communities/{community_id}/invitations", response_model=APIResponse[List[InvitationResponse]])
async def list_invitations(
    community_id: str,
    include_inactive: bool = Query(False, description="Include expired, exhausted and deactivated"),
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[List[InvitationResponse]]:
    result = await invitations.list_invitations(community_id, user_id, include_inactive)
    return APIResponse(data=[InvitationResponse.from_model(i) for i in result])


@router.delete("/communities/{community_id}/invitations", response_model=APIResponse[PurgeResponse])
async def purge_inert_invitations(
    community_id: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[PurgeResponse]:
    """Hard-delete every invitation that can no longer be redeemed."""
    deleted = await invitations.purge_inert(community_id, user_id)
    return APIResponse(data=PurgeResponse(deleted=deleted))


# =============================================================================
# Code Scoped
# =============================================================================

@router.post("/invitations/redeem", response_model=APIResponse[RedeemResponse])
async def redeem_link(
    body: RedeemLinkRequest,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[RedeemResponse]:
    """Redeem an app://join/{code} link for the caller."""
    result = await invitations.redeem(body.link, user_id)
    return APIResponse(message="Invitation redeemed", data=RedeemResponse.from_model(result))


@router.get("/invitations/{code}", response_model=APIResponse[InvitationResponse])
async def get_invitation(
    code: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[InvitationResponse]:
    invitation = await invitations.get_invitation(code)
    return APIResponse(data=InvitationResponse.from_model(invitation))


@router.post("/invitations/{code}/redeem", response_model=APIResponse[RedeemResponse])
async def redeem_invitation(
    code: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[RedeemResponse]:
    result = await invitations.redeem(code, user_id)
    return APIResponse(message="Invitation redeemed", data=RedeemResponse.from_model(result))


@router.post("/invitations/{code}/deactivate", response_model=APIResponse[InvitationResponse])
async def deactivate_invitation(
    code: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[InvitationResponse]:
    invitation = await invitations.deactivate(code, user_id)
    return APIResponse(data=InvitationResponse.from_model(invitation))


@router.delete("/invitations/{code}", response_model=APIResponse[dict])
async def delete_invitation(
    code: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[dict]:
    await invitations.delete(code, user_id)
    return APIResponse(message="Invitation deleted", data={"code": code})


@router.get("/invitations/{code}/usages", response_model=APIResponse[List[UsageResponse]])
async def list_usages(
    code: str,
    user_id: str = Depends(get_current_user_id),
    invitations: InvitationService = Depends(get_invitations),
) -> APIResponse[List[UsageResponse]]:
    usages = await invitations.list_usages(code, user_id)
    return APIResponse(data=[UsageResponse.from_model(u) for u in usages])


__all__ = ["router"]
