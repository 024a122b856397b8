"""
ArenaGuard - Async Utilities
============================

Bridges between the async service layer and the blocking SQLite repository,
plus logged fan-out for concurrent operations.

Usage:
    from arenaguard.utils.async_utils import run_blocking, gather_with_logging

    doc = await run_blocking(db.get, "tickets", ticket_id, deadline=deadline)

    results = await gather_with_logging(
        ("Redeem A", service.redeem(code, "a")),
        ("Redeem B", service.redeem(code, "b")),
    )
"""

import asyncio
import functools
from typing import Any, Callable, Coroutine, List, Optional, Tuple, TypeVar

from arenaguard.core.logger import logger
from arenaguard.utils.deadline import Deadline

T = TypeVar("T")


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    deadline: Deadline,
    name: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Run a blocking repository call on a worker thread.

    The deadline is handed to func (keyword ``deadline``) and enforced
    there: the repository bounds its lock wait by it and rolls back instead
    of committing once it has passed. The caller never abandons a thread
    that might still commit, so a Timeout always means nothing was written.

    Raises:
        Timeout: If the deadline is already gone or the repository gave up.
    """
    label = name or getattr(func, "__name__", "repository call")
    deadline.check(label)
    call = functools.partial(func, *args, deadline=deadline, **kwargs)
    return await asyncio.to_thread(call)


async def gather_with_logging(
    *operations: Tuple[str, Coroutine[Any, Any, Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run multiple async operations concurrently with error logging.

    Unlike asyncio.gather with return_exceptions=True, this function
    logs any exceptions that occur so failures aren't silent.

    Args:
        *operations: Tuples of (operation_name, coroutine).
        context: Optional context string for logs.

    Returns:
        List of results (including exceptions as values, not raised).
    """
    names = [name for name, _ in operations]
    coros = [coro for _, coro in operations]

    results = await asyncio.gather(*coros, return_exceptions=True)

    for i, result in enumerate(results):
        if isinstance(result, Exception):
            error_details = [
                ("Operation", names[i]),
                ("Error Type", type(result).__name__),
                ("Error", str(result)[:100]),
            ]
            if context:
                error_details.insert(0, ("Context", context))
            logger.debug("Async Operation Failed", error_details)

    return results


__all__ = ["run_blocking", "gather_with_logging"]
