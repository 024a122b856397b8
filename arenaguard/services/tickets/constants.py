"""
Ticket System Constants
=======================

Status machine for support tickets.
"""

from arenaguard.core.models import TicketStatus


# =============================================================================
# Transitions
# =============================================================================

# closed is terminal; resolved may be reopened into in_progress.
ALLOWED_TRANSITIONS = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CLOSED}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED}),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
    TicketStatus.CLOSED: frozenset(),
}


# =============================================================================
# Status
# =============================================================================

STATUS_EMOJI = {
    TicketStatus.OPEN: "🟢",
    TicketStatus.IN_PROGRESS: "🔵",
    TicketStatus.RESOLVED: "🟡",
    TicketStatus.CLOSED: "🔴",
}


__all__ = ["ALLOWED_TRANSITIONS", "STATUS_EMOJI"]
