"""
ArenaGuard - API Services
=========================
"""

from .auth import AuthService, get_auth_service, reset_auth_service

__all__ = ["AuthService", "get_auth_service", "reset_auth_service"]
