"""
ArenaGuard - Service Base
=========================

Shared plumbing for the async service layer.

DESIGN:
    Services are stateless between calls: each holds the config and the
    repository handle, nothing else. Repository calls run on worker
    threads through run_blocking so concurrent callers really do interleave
    at the storage layer, which is what the version checks protect against.
"""

import secrets
import time
from typing import Any, Callable, Optional, Type, TypeVar

from arenaguard.core.config import Config, get_config
from arenaguard.core.database import DatabaseManager, DocumentRecord, get_db
from arenaguard.core.errors import NotFound
from arenaguard.utils.async_utils import run_blocking
from arenaguard.utils.deadline import Deadline

T = TypeVar("T")


def new_id(prefix: str) -> str:
    """Globally unique entity id like ``tkt_9f2c4a1b0d3e5f67``."""
    return f"{prefix}_{secrets.token_hex(8)}"


def now() -> float:
    return time.time()


class BaseService:
    """Holds config and repository; provides deadline-aware call helpers."""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config or get_config()
        self.db = db or get_db()

    def _deadline(self, deadline: Optional[Deadline]) -> Deadline:
        return Deadline.resolve(deadline, self.config.operation_timeout)

    async def _call(self, func: Callable[..., T], *args: Any, deadline: Deadline, **kwargs: Any) -> T:
        return await run_blocking(func, *args, deadline=deadline, **kwargs)

    async def _load(
        self,
        collection: str,
        doc_id: str,
        model: Type[T],
        entity: str,
        deadline: Deadline,
    ) -> T:
        """
        Fetch a document and convert it to its model.

        Raises:
            NotFound: If the document does not exist.
        """
        record: Optional[DocumentRecord] = await self._call(
            self.db.get, collection, doc_id, deadline=deadline,
        )
        if record is None:
            raise NotFound(entity, doc_id)
        return model.from_doc(record.data, record.version)


__all__ = ["BaseService", "new_id", "now"]
