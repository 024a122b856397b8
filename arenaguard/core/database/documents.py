"""
ArenaGuard - Document Store Operations
======================================

get / put / append / delete / query over the documents table.

DESIGN:
    The cursor-level helpers below are shared by the standalone methods
    and by DatabaseManager.Transaction, so a multi-document transaction and
    a single put go through exactly the same version checks and change-log
    writes.

    put(expected_version):
        None  -> unconditional upsert
        0     -> insert only; fails if the id already exists
        n > 0 -> succeeds only if the stored version is n
    A failed condition raises VersionConflict; nothing is written.

    Deleting a document leaves a tombstone holding its last version. A
    later insert of the same id continues from there, so a compare-and-set
    holding a version read before the delete can never match again.
"""

import json
import re
import sqlite3
import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from arenaguard.core.constants import APPEND_ONLY_COLLECTIONS
from arenaguard.core.errors import ValidationError, VersionConflict
from arenaguard.core.logger import logger
from arenaguard.core.database.models import (
    DocumentRecord,
    OP_DELETE,
    OP_INSERT,
    OP_UPDATE,
)
from arenaguard.utils.deadline import Deadline

if TYPE_CHECKING:
    from arenaguard.core.database.manager import DatabaseManager


# =============================================================================
# Helper Functions
# =============================================================================

FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Filters = Optional[Mapping[str, Any]]


def _dumps(data: Mapping[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _safe_json_loads(value: Optional[str]) -> Dict[str, Any]:
    """Parse a stored body, logging and returning {} for corrupt rows."""
    if not value:
        return {}
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50]}")
        return {}


def _row_to_record(row: sqlite3.Row) -> DocumentRecord:
    return DocumentRecord(
        collection=row["collection"],
        id=row["doc_id"],
        community_id=row["community_id"],
        version=row["version"],
        data=_safe_json_loads(row["data"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _build_where(
    collection: str,
    filters: Filters,
    community_id: Optional[str],
) -> Tuple[str, List[Any]]:
    """
    Build a WHERE clause of equality filters on top-level JSON fields.

    A None value matches missing/null fields; a list or tuple matches any
    of its members.

    Raises:
        ValidationError: If a field name is not a plain identifier.
    """
    clauses = ["collection = ?"]
    params: List[Any] = [collection]

    if community_id is not None:
        clauses.append("community_id = ?")
        params.append(community_id)

    for field, value in (filters or {}).items():
        if not FIELD_PATTERN.match(field):
            raise ValidationError(f"Invalid filter field: {field}", field="filters")
        path = f"json_extract(data, '$.{field}')"
        if value is None:
            clauses.append(f"{path} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                clauses.append("0")
                continue
            clauses.append(f"{path} IN ({', '.join('?' for _ in values)})")
            params.extend(getattr(v, "value", v) for v in values)
        else:
            clauses.append(f"{path} = ?")
            params.append(getattr(value, "value", value))

    return " AND ".join(clauses), params


def _select(cursor: sqlite3.Cursor, collection: str, doc_id: str) -> Optional[sqlite3.Row]:
    cursor.execute(
        "SELECT * FROM documents WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    return cursor.fetchone()


def _query(
    cursor: sqlite3.Cursor,
    collection: str,
    filters: Filters = None,
    community_id: Optional[str] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> List[DocumentRecord]:
    where, params = _build_where(collection, filters, community_id)
    direction = "DESC" if descending else "ASC"
    if order_by:
        if not FIELD_PATTERN.match(order_by):
            raise ValidationError(f"Invalid order field: {order_by}", field="order_by")
        order = f"json_extract(data, '$.{order_by}') {direction}, rowid {direction}"
    else:
        order = f"rowid {direction}"
    sql = f"SELECT * FROM documents WHERE {where} ORDER BY {order}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))
    cursor.execute(sql, params)
    return [_row_to_record(r) for r in cursor.fetchall()]


def _record_change(
    cursor: sqlite3.Cursor,
    collection: str,
    doc_id: str,
    community_id: Optional[str],
    version: int,
    op: str,
    body: str,
    now: float,
) -> None:
    cursor.execute(
        """INSERT INTO changes
           (collection, doc_id, community_id, version, op, data, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (collection, doc_id, community_id, version, op, body, now),
    )


def _tombstone_version(cursor: sqlite3.Cursor, collection: str, doc_id: str) -> int:
    """Consume the tombstone of a deleted id; 0 if there is none."""
    cursor.execute(
        "SELECT version FROM tombstones WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    row = cursor.fetchone()
    if row is None:
        return 0
    cursor.execute(
        "DELETE FROM tombstones WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    return row["version"]


def _put(
    cursor: sqlite3.Cursor,
    collection: str,
    doc_id: str,
    data: Mapping[str, Any],
    community_id: Optional[str],
    expected_version: Optional[int],
) -> DocumentRecord:
    """
    Conditional write inside an open transaction.

    Raises:
        ValidationError: On an in-place write to an append-only collection.
        VersionConflict: If the stored version does not match.
    """
    if collection in APPEND_ONLY_COLLECTIONS and expected_version != 0:
        raise ValidationError(f"{collection} is append-only", field="collection")

    row = _select(cursor, collection, doc_id)
    current = row["version"] if row else None

    if expected_version is not None:
        if expected_version == 0 and current is not None:
            raise VersionConflict(collection, doc_id, expected=0, actual=current)
        if expected_version > 0 and current != expected_version:
            raise VersionConflict(collection, doc_id, expected=expected_version, actual=current)

    now = time.time()
    body = _dumps(data)

    if row is None:
        version = _tombstone_version(cursor, collection, doc_id) + 1
        created_at = now
        cursor.execute(
            """INSERT INTO documents
               (collection, doc_id, community_id, version, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (collection, doc_id, community_id, version, body, now, now),
        )
        op = OP_INSERT
    else:
        version = current + 1
        created_at = row["created_at"]
        community_id = community_id if community_id is not None else row["community_id"]
        cursor.execute(
            """UPDATE documents
               SET data = ?, community_id = ?, version = ?, updated_at = ?
               WHERE collection = ? AND doc_id = ? AND version = ?""",
            (body, community_id, version, now, collection, doc_id, current),
        )
        op = OP_UPDATE

    _record_change(cursor, collection, doc_id, community_id, version, op, body, now)

    return DocumentRecord(
        collection=collection,
        id=doc_id,
        community_id=community_id,
        version=version,
        data=dict(data),
        created_at=created_at,
        updated_at=now,
    )


def _delete(
    cursor: sqlite3.Cursor,
    collection: str,
    doc_id: str,
    expected_version: Optional[int],
) -> bool:
    """
    Delete inside an open transaction.

    Returns:
        True if a document was removed, False if it did not exist
        (only possible without expected_version).

    Raises:
        ValidationError: On append-only collections.
        VersionConflict: If expected_version is given and does not match.
    """
    if collection in APPEND_ONLY_COLLECTIONS:
        raise ValidationError(f"{collection} is append-only", field="collection")

    row = _select(cursor, collection, doc_id)
    if row is None:
        if expected_version is not None:
            raise VersionConflict(collection, doc_id, expected=expected_version, actual=None)
        return False
    if expected_version is not None and row["version"] != expected_version:
        raise VersionConflict(collection, doc_id, expected=expected_version, actual=row["version"])

    now = time.time()
    version = row["version"] + 1
    cursor.execute(
        "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    cursor.execute(
        "INSERT OR REPLACE INTO tombstones (collection, doc_id, version, deleted_at) VALUES (?, ?, ?, ?)",
        (collection, doc_id, version, now),
    )
    _record_change(
        cursor, collection, doc_id, row["community_id"], version, OP_DELETE, row["data"], now,
    )
    return True


# =============================================================================
# Documents Mixin
# =============================================================================

class DocumentsMixin:
    """Mixin exposing the repository contract on DatabaseManager."""

    def get(
        self: "DatabaseManager",
        collection: str,
        doc_id: str,
        deadline: Optional[Deadline] = None,
    ) -> Optional[DocumentRecord]:
        """Fetch one document, or None if it does not exist."""
        with self._locked(deadline, f"get {collection}") as conn:
            row = _select(conn.cursor(), collection, doc_id)
        return _row_to_record(row) if row else None

    def query(
        self: "DatabaseManager",
        collection: str,
        filters: Filters = None,
        community_id: Optional[str] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[DocumentRecord]:
        """
        Fetch documents matching equality filters.

        Args:
            collection: Collection name.
            filters: {field: value} on top-level document fields.
            community_id: Restrict to one community.
            order_by: Top-level field to sort on (insertion order otherwise).
            descending: Reverse the sort.
            limit: Maximum rows.
            deadline: Optional deadline for the lock wait.
        """
        with self._locked(deadline, f"query {collection}") as conn:
            return _query(
                conn.cursor(), collection, filters, community_id, order_by, descending, limit,
            )

    def put(
        self: "DatabaseManager",
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        community_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> DocumentRecord:
        """
        Write one document (see module docstring for expected_version).

        Raises:
            VersionConflict: If the condition fails.
            Timeout: If the deadline passes before commit.
        """
        with self.transaction(deadline) as tx:
            return tx.put(collection, doc_id, data, community_id, expected_version)

    def append(
        self: "DatabaseManager",
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        community_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> DocumentRecord:
        """Insert a new document; VersionConflict if the id is taken."""
        with self.transaction(deadline) as tx:
            return tx.append(collection, doc_id, data, community_id)

    def delete(
        self: "DatabaseManager",
        collection: str,
        doc_id: str,
        expected_version: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> bool:
        """Remove one document; returns False if it did not exist."""
        with self.transaction(deadline) as tx:
            return tx.delete(collection, doc_id, expected_version)


__all__ = ["DocumentsMixin", "Filters"]
