"""
ArenaGuard - API Configuration
==============================

Centralized configuration for the FastAPI service.
"""

import os
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class APIConfig:
    """API configuration settings."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8090
    debug: bool = False

    # CORS
    cors_origins: Tuple[str, ...] = ("*",)

    # JWT Auth
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24


def _split_origins(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ("*",)
    return tuple(origin.strip() for origin in value.split(",") if origin.strip()) or ("*",)


def load_api_config() -> APIConfig:
    """Load API configuration from environment."""
    from arenaguard.core.config import _parse_int_with_default
    from arenaguard.core.logger import logger

    jwt_secret = os.getenv("ARENAGUARD_JWT_SECRET", "")
    if not jwt_secret:
        # Tokens issued with a generated secret die with the process
        jwt_secret = secrets.token_urlsafe(32)
        logger.warning("ARENAGUARD_JWT_SECRET not set, using an ephemeral secret")

    return APIConfig(
        host=os.getenv("ARENAGUARD_API_HOST", "0.0.0.0"),
        port=_parse_int_with_default(
            os.getenv("ARENAGUARD_API_PORT"), 8090, "ARENAGUARD_API_PORT", min_val=1, max_val=65535,
        ),
        debug=os.getenv("ARENAGUARD_API_DEBUG", "false").lower() == "true",
        cors_origins=_split_origins(os.getenv("ARENAGUARD_CORS_ORIGINS")),
        jwt_secret=jwt_secret,
        jwt_expiry_hours=_parse_int_with_default(
            os.getenv("ARENAGUARD_JWT_EXPIRY_HOURS"), 24, "ARENAGUARD_JWT_EXPIRY_HOURS",
            min_val=1, max_val=720,
        ),
    )


# Singleton instance
_config: Optional[APIConfig] = None


def get_api_config() -> APIConfig:
    """Get the API configuration singleton."""
    global _config
    if _config is None:
        _config = load_api_config()
    return _config


def reset_api_config() -> None:
    global _config
    _config = None


__all__ = ["APIConfig", "get_api_config", "load_api_config", "reset_api_config"]
