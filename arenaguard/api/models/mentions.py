"""
ArenaGuard - Mention API Models
===============================
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ResolveMentionsRequest(BaseModel):
    """
    Either raw message content, explicit mention fields, or both (merged).
    """

    content: Optional[str] = Field(None, description="Message text to scan for mention tokens")
    everyone: bool = False
    here: bool = False
    roles: List[str] = Field(default_factory=list)
    users: List[str] = Field(default_factory=list)
    online: List[str] = Field(default_factory=list, description="User ids currently online")
    channel_id: Optional[str] = None


class ResolveMentionsResponse(BaseModel):
    recipients: List[str]
    count: int


__all__ = ["ResolveMentionsRequest", "ResolveMentionsResponse"]
