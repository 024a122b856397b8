"""
ArenaGuard - Auth Router
========================

Identity endpoints. Tokens are issued out of band (see main.py).
"""

from fastapi import APIRouter, Depends

from arenaguard.api.dependencies import require_auth
from arenaguard.api.models.auth import TokenPayload, WhoAmIResponse
from arenaguard.api.models.base import APIResponse


router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=APIResponse[WhoAmIResponse])
async def who_am_i(payload: TokenPayload = Depends(require_auth)) -> APIResponse[WhoAmIResponse]:
    """Echo the verified caller id."""
    return APIResponse(data=WhoAmIResponse(user_id=payload.sub, expires_at=payload.exp))


__all__ = ["router"]
