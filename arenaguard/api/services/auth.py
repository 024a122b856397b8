"""
ArenaGuard - Auth Service
=========================

JWT-based authentication service for the API.

DESIGN:
    Identity is established upstream; this service only signs and checks
    bearer tokens. The token subject is the opaque user id every service
    call receives as its actor. Nothing here looks at roles: authorization
    is always resolved fresh from stored roles by the service layer.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from arenaguard.core.logger import logger
from arenaguard.api.config import APIConfig, get_api_config
from arenaguard.api.models.auth import TokenPayload


# =============================================================================
# Constants
# =============================================================================

TOKEN_TYPE_ACCESS = "access"


# =============================================================================
# Auth Service
# =============================================================================

class AuthService:
    """Issues and validates access tokens."""

    def __init__(self, config: Optional[APIConfig] = None) -> None:
        self._config = config or get_api_config()

    def issue_token(self, user_id: str) -> Tuple[str, datetime]:
        """
        Sign an access token for a verified user id.

        Returns:
            Tuple of (token, expires_at)
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError("user_id is required")

        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(hours=self._config.jwt_expiry_hours)
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": expires_at,
            "type": TOKEN_TYPE_ACCESS,
        }
        token = jwt.encode(payload, self._config.jwt_secret, algorithm=self._config.jwt_algorithm)

        logger.debug("Access Token Issued", [
            ("User", user_id),
            ("Expires", expires_at.isoformat()),
        ])
        return token, expires_at

    def get_token_payload(self, token: str) -> Optional[TokenPayload]:
        """Decode a token; None if it is missing, expired, forged or not an access token."""
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self._config.jwt_secret,
                algorithms=[self._config.jwt_algorithm],
            )
        except ExpiredSignatureError:
            logger.debug("Expired Token Rejected")
            return None
        except InvalidTokenError as e:
            logger.debug("Invalid Token Rejected", [("Error", type(e).__name__)])
            return None

        if payload.get("type") != TOKEN_TYPE_ACCESS or not payload.get("sub"):
            return None

        return TokenPayload(
            sub=str(payload["sub"]),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
        )


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the auth service singleton."""
    global _service
    if _service is None:
        _service = AuthService()
    return _service


def reset_auth_service() -> None:
    global _service
    _service = None


__all__ = ["AuthService", "get_auth_service", "reset_auth_service", "TOKEN_TYPE_ACCESS"]
