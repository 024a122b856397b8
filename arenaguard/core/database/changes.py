"""
ArenaGuard - Change Feed
========================

subscribe(collection, filter) -> async stream of change events.

DESIGN:
    The changes table is append-only and written inside the same
    transaction as the document it describes, so a subscriber sees exactly
    the committed writes in commit order. Streams poll by sequence number;
    the starting position is fixed when the stream is created, not when it
    is first awaited, so no write made after subscribe() is missed.

    prune_changes() is the only way rows leave the table. AUTOINCREMENT
    never reuses a sequence number, so pruning never makes a stream see a
    change twice.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Deque, List, Mapping, Optional
from collections import deque

from arenaguard.core.database.documents import Filters, _safe_json_loads
from arenaguard.core.logger import logger
from arenaguard.core.database.models import ChangeRecord
from arenaguard.utils.deadline import Deadline

if TYPE_CHECKING:
    from arenaguard.core.database.manager import DatabaseManager


def _matches(data: Mapping[str, Any], filters: Filters) -> bool:
    for field, expected in (filters or {}).items():
        expected = getattr(expected, "value", expected)
        actual = data.get(field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {getattr(v, "value", v) for v in expected}:
                return False
        elif actual != expected:
            return False
    return True


# =============================================================================
# Change Stream
# =============================================================================

class ChangeStream:
    """
    Async iterator over committed changes of one collection.

    Usage:
        stream = db.subscribe("tickets", {"status": "open"}, community_id=cid)
        async for change in stream:
            ...
        stream.close()
    """

    def __init__(
        self,
        db: "DatabaseManager",
        collection: str,
        filters: Filters,
        community_id: Optional[str],
        poll_interval: float,
        since: int,
    ) -> None:
        self._db = db
        self._collection = collection
        self._filters = dict(filters or {})
        self._community_id = community_id
        self._poll_interval = poll_interval
        self._cursor = since
        self._buffer: Deque[ChangeRecord] = deque()
        self._closed = False

    @property
    def position(self) -> int:
        """Sequence number of the last change consumed or skipped."""
        return self._cursor

    def close(self) -> None:
        self._closed = True

    def __aiter__(self) -> "ChangeStream":
        return self

    async def __anext__(self) -> ChangeRecord:
        while not self._closed:
            if self._buffer:
                return self._buffer.popleft()

            batch = await asyncio.to_thread(
                self._db.changes_since, self._cursor, self._collection, self._community_id,
            )
            for change in batch:
                self._cursor = change.seq
                if _matches(change.data, self._filters):
                    self._buffer.append(change)

            if not self._buffer:
                await asyncio.sleep(self._poll_interval)

        raise StopAsyncIteration


# =============================================================================
# Changes Mixin
# =============================================================================

class ChangesMixin:
    """Mixin for reading the change feed."""

    def latest_seq(self: "DatabaseManager") -> int:
        row = self.fetchone("SELECT COALESCE(MAX(seq), 0) AS seq FROM changes")
        return int(row["seq"]) if row else 0

    def prune_changes(
        self: "DatabaseManager",
        before_seq: int,
        deadline: Optional[Deadline] = None,
    ) -> int:
        """
        Delete change records with sequence number below before_seq.

        Streams positioned before the cut simply resume at the oldest
        remaining change. Documents are untouched.

        Returns:
            Number of change records removed.
        """
        with self._locked(deadline, "prune_changes") as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM changes WHERE seq < ?", (int(before_seq),))
            removed = cursor.rowcount
            conn.commit()

        if removed:
            logger.tree("Change Feed Pruned", [
                ("Before Seq", str(before_seq)),
                ("Removed", str(removed)),
            ], emoji="🧹")
        return removed

    def changes_since(
        self: "DatabaseManager",
        seq: int,
        collection: Optional[str] = None,
        community_id: Optional[str] = None,
        limit: int = 500,
        deadline: Optional[Deadline] = None,
    ) -> List[ChangeRecord]:
        """Committed changes with sequence number greater than seq."""
        clauses = ["seq > ?"]
        params: List[Any] = [seq]
        if collection is not None:
            clauses.append("collection = ?")
            params.append(collection)
        if community_id is not None:
            clauses.append("community_id = ?")
            params.append(community_id)
        params.append(limit)

        with self._locked(deadline, "changes_since") as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM changes WHERE {' AND '.join(clauses)} ORDER BY seq LIMIT ?",
                params,
            )
            rows = cursor.fetchall()

        return [
            ChangeRecord(
                seq=row["seq"],
                collection=row["collection"],
                doc_id=row["doc_id"],
                community_id=row["community_id"],
                version=row["version"],
                op=row["op"],
                data=_safe_json_loads(row["data"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def subscribe(
        self: "DatabaseManager",
        collection: str,
        filters: Filters = None,
        community_id: Optional[str] = None,
        since: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> ChangeStream:
        """
        Open a change stream for a collection.

        Args:
            collection: Collection to watch.
            filters: Equality filters on the changed document body.
            community_id: Restrict to one community.
            since: Start after this sequence number (default: now).
            poll_interval: Seconds between polls when idle.
        """
        from arenaguard.core.config import get_config

        return ChangeStream(
            self,
            collection,
            filters,
            community_id,
            poll_interval if poll_interval is not None else get_config().change_poll_interval,
            since if since is not None else self.latest_seq(),
        )


__all__ = ["ChangesMixin", "ChangeStream"]
