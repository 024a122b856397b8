"""
ArenaGuard - Auth API Models
============================

Token payload and identity models.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str = Field(description="Subject (verified user id)")
    exp: datetime = Field(description="Expiration time")
    iat: datetime = Field(description="Issued at time")
    type: str = Field(default="access", description="Token type")


class WhoAmIResponse(BaseModel):
    """The caller as seen by the API."""

    user_id: str
    expires_at: datetime


__all__ = ["TokenPayload", "WhoAmIResponse"]
