"""
ArenaGuard - Deadlines
======================

Monotonic deadlines passed down through every repository call.

Usage:
    from arenaguard.utils.deadline import Deadline

    deadline = Deadline.after(5.0)
    deadline.check("redeem invitation")   # raises Timeout once expired
"""

import time
from dataclasses import dataclass
from typing import Optional

from arenaguard.core.errors import Timeout


@dataclass(frozen=True)
class Deadline:
    """Absolute point on the monotonic clock after which work must stop."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    @classmethod
    def resolve(cls, deadline: Optional["Deadline"], default_seconds: float) -> "Deadline":
        """Return the caller's deadline or a fresh one with the default budget."""
        return deadline if deadline is not None else cls.after(default_seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, operation: str) -> None:
        """
        Raise Timeout if the deadline has passed.

        Raises:
            Timeout: When no time is left for the operation.
        """
        if self.expired:
            raise Timeout(operation)


__all__ = ["Deadline"]
