"""
ArenaGuard - Base API Models
============================

Common response models.
"""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


# =============================================================================
# Generic Type Variables
# =============================================================================

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Base Response Models
# =============================================================================

class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    service: str = "ArenaGuard"
    version: str
    database: bool
    uptime_seconds: int
    timestamp: datetime = Field(default_factory=_utcnow)


__all__ = [
    "APIResponse",
    "ErrorResponse",
    "HealthResponse",
]
