"""
ArenaGuard - Ticket Models
==========================

Support tickets with an embedded, append-only message thread.

DESIGN:
    Messages live inside the ticket document so a message append and a
    status change are one conditional write on one document. A reader can
    never observe a last message and a status that belong to different
    versions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketCategory(str, Enum):
    TECHNICAL = "technical"
    GENERAL = "general"
    RULES = "rules"
    PAYMENT = "payment"
    REPORT = "report"


@dataclass(frozen=True)
class TicketMessage:
    id: str
    author_id: str
    content: str
    created_at: float
    is_staff: bool = False

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "content": self.content,
            "created_at": self.created_at,
            "is_staff": self.is_staff,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "TicketMessage":
        return cls(
            id=data["id"],
            author_id=data["author_id"],
            content=data["content"],
            created_at=float(data["created_at"]),
            is_staff=bool(data.get("is_staff", False)),
        )


@dataclass
class Ticket:
    id: str
    community_id: str
    created_by: str
    category: TicketCategory
    title: str
    description: str
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    assigned_to: Optional[str] = None
    messages: List[TicketMessage] = field(default_factory=list)
    created_at: float = 0.0
    updated_at: float = 0.0
    closed_at: Optional[float] = None
    version: int = 0

    @property
    def is_closed(self) -> bool:
        return self.status == TicketStatus.CLOSED

    @property
    def last_message(self) -> Optional[TicketMessage]:
        return self.messages[-1] if self.messages else None

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "community_id": self.community_id,
            "created_by": self.created_by,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "assigned_to": self.assigned_to,
            "messages": [m.to_doc() for m in self.messages],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "closed_at": self.closed_at,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Ticket":
        return cls(
            id=data["id"],
            community_id=data["community_id"],
            created_by=data["created_by"],
            category=TicketCategory(data.get("category", "general")),
            title=data["title"],
            description=data["description"],
            status=TicketStatus(data["status"]),
            priority=TicketPriority(data.get("priority", "medium")),
            assigned_to=data.get("assigned_to"),
            messages=[TicketMessage.from_doc(m) for m in data.get("messages", [])],
            created_at=float(data.get("created_at", 0.0)),
            updated_at=float(data.get("updated_at", 0.0)),
            closed_at=data.get("closed_at"),
            version=version,
        )


__all__ = [
    "TicketStatus",
    "TicketPriority",
    "TicketCategory",
    "TicketMessage",
    "Ticket",
]
