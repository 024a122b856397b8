"""
ArenaGuard - Error Types
========================

Typed errors raised by the service layer.

DESIGN:
    Every failure a caller can branch on has its own class with a stable
    string code. The HTTP layer maps codes to status codes; nothing in the
    core raises bare strings or generic exceptions for expected failures.

    Hierarchy:
        ArenaGuardError
        ├─ Unauthorized
        ├─ ValidationError
        ├─ NotFound
        ├─ InvitationError
        │  ├─ InvitationInvalid
        │  ├─ InvitationExpired
        │  ├─ InvitationExhausted
        │  └─ InvitationInactive
        ├─ TicketClosed
        ├─ ConflictError
        │  ├─ VersionConflict
        │  └─ RedeemConflict
        └─ Timeout
"""

from typing import Any, Dict, Optional


# =============================================================================
# Base
# =============================================================================

class ArenaGuardError(Exception):
    """Base class for all service errors."""

    code: str = "ARENAGUARD_ERROR"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details: Dict[str, Any] = details or {}


# =============================================================================
# Authorization & Validation
# =============================================================================

class Unauthorized(ArenaGuardError):
    """Permission check failed."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "", permission: Optional[str] = None) -> None:
        super().__init__(
            message or (f"Missing permission: {permission}" if permission else "Not allowed"),
            {"permission": permission} if permission else None,
        )
        self.permission = permission


class ValidationError(ArenaGuardError):
    """Malformed input (empty reason, overlapping allow/deny, bad code format)."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFound(ArenaGuardError):
    """Entity id unknown."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


# =============================================================================
# Invitations
# =============================================================================

class InvitationError(ArenaGuardError):
    """Base for redemption failures."""

    code = "INVITATION_ERROR"

    def __init__(self, invite_code: str, message: str = "") -> None:
        super().__init__(message or f"{self.code}: {invite_code}", {"invite_code": invite_code})
        self.invite_code = invite_code


class InvitationInvalid(InvitationError):
    code = "INVITATION_INVALID"


class InvitationExpired(InvitationError):
    code = "INVITATION_EXPIRED"


class InvitationExhausted(InvitationError):
    code = "INVITATION_EXHAUSTED"


class InvitationInactive(InvitationError):
    code = "INVITATION_INACTIVE"


# =============================================================================
# Tickets
# =============================================================================

class TicketClosed(ArenaGuardError):
    """Mutation attempted on a closed ticket."""

    code = "TICKET_CLOSED"

    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"Ticket is closed: {ticket_id}", {"ticket_id": ticket_id})
        self.ticket_id = ticket_id


# =============================================================================
# Concurrency
# =============================================================================

class ConflictError(ArenaGuardError):
    """Optimistic concurrency retries exhausted."""

    code = "CONFLICT"


class VersionConflict(ConflictError):
    """A single conditional write found a different version than expected."""

    code = "VERSION_CONFLICT"

    def __init__(
        self,
        collection: str,
        doc_id: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        super().__init__(
            f"Version conflict on {collection}/{doc_id}",
            {"collection": collection, "id": doc_id, "expected": expected, "actual": actual},
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual


class RedeemConflict(ConflictError):
    code = "REDEEM_CONFLICT"


class Timeout(ArenaGuardError):
    """Deadline passed before the operation committed."""

    code = "TIMEOUT"

    def __init__(self, operation: str) -> None:
        super().__init__(f"Deadline exceeded: {operation}", {"operation": operation})
        self.operation = operation


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ArenaGuardError",
    "Unauthorized",
    "ValidationError",
    "NotFound",
    "InvitationError",
    "InvitationInvalid",
    "InvitationExpired",
    "InvitationExhausted",
    "InvitationInactive",
    "TicketClosed",
    "ConflictError",
    "VersionConflict",
    "RedeemConflict",
    "Timeout",
]
