"""
ArenaGuard - Utilities
======================

Deadlines, retry loops, thread bridging and input validation.
"""

from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.async_utils import run_blocking, gather_with_logging
from arenaguard.utils.validators import Validators, parse_invite_link

__all__ = [
    "Deadline",
    "retry_on_conflict",
    "run_blocking",
    "gather_with_logging",
    "Validators",
    "parse_invite_link",
]
