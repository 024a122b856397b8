"""
ArenaGuard - API Routers
========================

Route handlers for the API.
"""

from .health import router as health_router
from .auth import router as auth_router
from .communities import router as communities_router
from .roles import router as roles_router
from .channels import router as channels_router
from .invitations import router as invitations_router
from .tickets import router as tickets_router
from .moderation import router as moderation_router
from .mentions import router as mentions_router

__all__ = [
    "health_router",
    "auth_router",
    "communities_router",
    "roles_router",
    "channels_router",
    "invitations_router",
    "tickets_router",
    "moderation_router",
    "mentions_router",
]
