"""
ArenaGuard - Ticket System
==========================

Support tickets with staff/member message threads.
"""

from .service import TicketWorkflow
from .constants import ALLOWED_TRANSITIONS

__all__ = [
    "TicketWorkflow",
    "ALLOWED_TRANSITIONS",
]
