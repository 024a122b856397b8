"""
ArenaGuard - Retry Utilities
============================

Optimistic-concurrency retry loop with exponential backoff.

Usage:
    from arenaguard.utils.retry import retry_on_conflict

    async def attempt():
        invite = await load()
        await write(invite, expected_version=invite.version)

    await retry_on_conflict(attempt, max_attempts=5, deadline=deadline,
                            exhausted=lambda: RedeemConflict(code))
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from arenaguard.core.constants import CONFLICT_BASE_DELAY, CONFLICT_MAX_DELAY
from arenaguard.core.errors import ArenaGuardError, ConflictError, VersionConflict
from arenaguard.core.logger import logger
from arenaguard.utils.deadline import Deadline


async def retry_on_conflict(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int,
    deadline: Deadline,
    exhausted: Optional[Callable[[], ArenaGuardError]] = None,
    name: str = "operation",
    base_delay: float = CONFLICT_BASE_DELAY,
    max_delay: float = CONFLICT_MAX_DELAY,
) -> Any:
    """
    Re-run a read-modify-write closure until its conditional write lands.

    Only VersionConflict triggers a retry; every other error propagates on
    the first occurrence. Backoff is exponential with full jitter so that
    competing writers spread out instead of colliding again in lockstep.

    Args:
        operation: Zero-argument async callable doing one full attempt.
        max_attempts: Total attempts including the first.
        deadline: Overall deadline; checked before every attempt.
        exhausted: Factory for the error raised when attempts run out.
        name: Operation name for logs and Timeout errors.
        base_delay: First backoff step (seconds).
        max_delay: Backoff cap (seconds).

    Returns:
        Whatever the successful attempt returned.

    Raises:
        Timeout: If the deadline passes between attempts.
        ConflictError: (or the exhausted() error) when all attempts lost.
    """
    last_conflict: Optional[VersionConflict] = None

    for attempt in range(max_attempts):
        deadline.check(name)
        try:
            return await operation()
        except VersionConflict as e:
            last_conflict = e
            if attempt == max_attempts - 1:
                break
            delay = min(base_delay * (2 ** attempt), max_delay)
            delay = min(random.uniform(0, delay), deadline.remaining())
            logger.debug(f"Retry {attempt + 1}/{max_attempts}: {name} lost a version race", [
                ("Document", f"{e.collection}/{e.doc_id}"),
                ("Backoff", f"{delay * 1000:.1f}ms"),
            ])
            await asyncio.sleep(delay)

    logger.warning(f"All {max_attempts} attempts lost the version race: {name}", [
        ("Document", f"{last_conflict.collection}/{last_conflict.doc_id}" if last_conflict else "?"),
    ])
    if exhausted is not None:
        raise exhausted()
    raise ConflictError(f"Conflict retries exhausted: {name}", {"attempts": max_attempts})


__all__ = ["retry_on_conflict"]
