"""
ArenaGuard - Ticket API Models
==============================

Support ticket request/response models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from arenaguard.core.models import Ticket, TicketMessage


# =============================================================================
# Request Models
# =============================================================================

class CreateTicketRequest(BaseModel):
    title: str
    description: str = Field(description="Becomes the first message of the thread")
    category: str = "general"
    priority: str = "medium"


class AddMessageRequest(BaseModel):
    content: str


class AssignTicketRequest(BaseModel):
    staff_user: str


class SetStatusRequest(BaseModel):
    status: str


class SetPriorityRequest(BaseModel):
    priority: str


# =============================================================================
# Response Models
# =============================================================================

class TicketMessageResponse(BaseModel):
    id: str
    author_id: str
    content: str
    created_at: float
    is_staff: bool

    @classmethod
    def from_model(cls, message: TicketMessage) -> "TicketMessageResponse":
        return cls(**message.to_doc())


class TicketResponse(BaseModel):
    id: str
    community_id: str
    created_by: str
    category: str
    title: str
    description: str
    status: str
    priority: str
    assigned_to: Optional[str] = None
    messages: List[TicketMessageResponse]
    created_at: float
    updated_at: float
    closed_at: Optional[float] = None
    version: int

    @classmethod
    def from_model(cls, ticket: Ticket) -> "TicketResponse":
        return cls(**ticket.to_doc(), version=ticket.version)


class TicketBrief(BaseModel):
    """Ticket without its thread, for lists."""

    id: str
    title: str
    status: str
    priority: str
    category: str
    created_by: str
    assigned_to: Optional[str] = None
    message_count: int
    created_at: float
    updated_at: float

    @classmethod
    def from_model(cls, ticket: Ticket) -> "TicketBrief":
        return cls(
            id=ticket.id,
            title=ticket.title,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category.value,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
            message_count=len(ticket.messages),
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


__all__ = [
    "CreateTicketRequest",
    "AddMessageRequest",
    "AssignTicketRequest",
    "SetStatusRequest",
    "SetPriorityRequest",
    "TicketMessageResponse",
    "TicketResponse",
    "TicketBrief",
]
