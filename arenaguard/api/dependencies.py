"""
ArenaGuard - API Dependencies
=============================

FastAPI dependency injection utilities.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from arenaguard.api.errors import APIError, ErrorCode
from arenaguard.api.models.auth import TokenPayload
from arenaguard.api.services.auth import get_auth_service
from arenaguard.services import (
    ChannelOverwriteStore,
    CommunityService,
    InvitationService,
    MentionService,
    ModerationEngine,
    RoleRegistry,
    TicketWorkflow,
)
from arenaguard.services.moderation import AuditLog


# =============================================================================
# Security
# =============================================================================

security = HTTPBearer(auto_error=False)


# =============================================================================
# Authentication Dependencies
# =============================================================================

async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[TokenPayload]:
    """
    Get the token payload if a valid token is provided.
    Returns None if no token or invalid token.
    """
    if credentials is None:
        return None
    return get_auth_service().get_token_payload(credentials.credentials)


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenPayload:
    """
    Require a valid authentication token.
    Raises 401 if not authenticated.
    """
    if credentials is None:
        raise APIError(ErrorCode.AUTH_MISSING_TOKEN, headers={"WWW-Authenticate": "Bearer"})

    payload = get_auth_service().get_token_payload(credentials.credentials)
    if payload is None:
        raise APIError(ErrorCode.AUTH_INVALID_TOKEN, headers={"WWW-Authenticate": "Bearer"})
    return payload


async def get_current_user_id(payload: TokenPayload = Depends(require_auth)) -> str:
    """The verified caller id, passed to services as the actor."""
    return payload.sub


# =============================================================================
# Service Dependencies
# =============================================================================
# Services are stateless over the shared repository, so one per request is fine.

def get_registry() -> RoleRegistry:
    return RoleRegistry()


def get_channels(registry: RoleRegistry = Depends(get_registry)) -> ChannelOverwriteStore:
    return ChannelOverwriteStore(registry)


def get_communities(registry: RoleRegistry = Depends(get_registry)) -> CommunityService:
    return CommunityService(registry)


def get_invitations(registry: RoleRegistry = Depends(get_registry)) -> InvitationService:
    return InvitationService(registry)


def get_tickets(registry: RoleRegistry = Depends(get_registry)) -> TicketWorkflow:
    return TicketWorkflow(registry)


def get_moderation(registry: RoleRegistry = Depends(get_registry)) -> ModerationEngine:
    return ModerationEngine(registry)


def get_audit_log(registry: RoleRegistry = Depends(get_registry)) -> AuditLog:
    return AuditLog(registry)


def get_mentions(registry: RoleRegistry = Depends(get_registry)) -> MentionService:
    return MentionService(registry)


__all__ = [
    "security",
    "get_token_payload",
    "require_auth",
    "get_current_user_id",
    "get_registry",
    "get_channels",
    "get_communities",
    "get_invitations",
    "get_tickets",
    "get_moderation",
    "get_audit_log",
    "get_mentions",
]
