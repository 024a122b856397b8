"""
ArenaGuard - Database Manager
=============================

Central SQLite document store for every community entity.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from arenaguard.core.config import get_config
from arenaguard.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from arenaguard.core.errors import Timeout
from arenaguard.core.logger import logger
from arenaguard.core.database.changes import ChangesMixin
from arenaguard.core.database.documents import (
    DocumentsMixin,
    Filters,
    _delete,
    _put,
    _query,
    _row_to_record,
    _select,
)
from arenaguard.core.database.models import DocumentRecord
from arenaguard.core.database.schema import SchemaMixin
from arenaguard.utils.deadline import Deadline


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(SchemaMixin, DocumentsMixin, ChangesMixin):
    """
    Centralized database manager with thread-safe operations.

    DESIGN: Singleton pattern ensures single database connection.
    Uses WAL mode for better concurrency with multiple readers.
    All operations are thread-safe via internal locking; services call in
    from worker threads (asyncio.to_thread), so the lock is a
    threading.Lock rather than an asyncio one.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls, db_path: Optional[Path] = None) -> "DatabaseManager":
        """Singleton pattern - only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize database connection and tables."""
        if self._initialized:
            return

        self.db_path: Path = Path(db_path) if db_path is not None else get_config().db_path
        self._db_lock: threading.Lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Manager Initialized", [
            ("Path", str(self.db_path)),
            ("WAL Mode", "Enabled"),
        ], emoji="🗄️")

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """Establish database connection with WAL mode."""
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=DB_CONNECTION_TIMEOUT,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [("Error", str(e))])
            raise

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is valid, reconnect if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    def _acquire(self, deadline: Optional[Deadline], operation: str) -> None:
        """Take the connection lock, waiting no longer than the deadline allows."""
        if deadline is None:
            self._db_lock.acquire()
            return
        deadline.check(operation)
        if not self._db_lock.acquire(timeout=deadline.remaining()):
            raise Timeout(operation)

    @contextmanager
    def _locked(self, deadline: Optional[Deadline], operation: str) -> Iterator[sqlite3.Connection]:
        self._acquire(deadline, operation)
        try:
            yield self._ensure_connection()
        finally:
            self._db_lock.release()

    def execute(
        self,
        query: str,
        params: Tuple = (),
        commit: bool = True
    ) -> sqlite3.Cursor:
        """Execute a query with thread safety."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            if commit:
                conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        with self._db_lock:
            cursor = self._ensure_connection().cursor()
            cursor.execute(query, params)
            return cursor.fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute query and fetch all results."""
        with self._db_lock:
            cursor = self._ensure_connection().cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")

    # =========================================================================
    # Transaction Support
    # =========================================================================

    class Transaction:
        """
        Context manager for atomic multi-document writes.

        Usage:
            with db.transaction(deadline) as tx:
                tx.put("participants", key, body, community_id, expected_version=3)
                tx.append("moderation_actions", action_id, record, community_id)
            # Commits on success, rolls back on exception or expired deadline

        DESIGN:
            BEGIN IMMEDIATE under the connection lock, so reads made through
            the transaction see a state no other writer can change before
            commit. The deadline is checked once more right before COMMIT;
            a late transaction rolls back and raises Timeout, leaving every
            document exactly as it was.
        """

        def __init__(self, db: "DatabaseManager", deadline: Optional[Deadline] = None):
            self._db = db
            self._deadline = deadline
            self._cursor: Optional[sqlite3.Cursor] = None

        def __enter__(self) -> "DatabaseManager.Transaction":
            self._db._acquire(self._deadline, "transaction")
            try:
                conn = self._db._ensure_connection()
                conn.execute("BEGIN IMMEDIATE")
                self._cursor = conn.cursor()
            except BaseException:
                self._db._db_lock.release()
                raise
            return self

        def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
            conn = self._db._ensure_connection()
            try:
                if exc_type is None and self._deadline is not None and self._deadline.expired:
                    conn.rollback()
                    logger.warning("Database Transaction Rolled Back", [
                        ("Error", "Deadline exceeded before commit"),
                    ])
                    raise Timeout("transaction commit")
                if exc_type is None:
                    conn.commit()
                else:
                    conn.rollback()
                    logger.debug("Database Transaction Rolled Back", [
                        ("Error Type", exc_type.__name__),
                        ("Error", str(exc_val)[:100] if exc_val else "Unknown"),
                    ])
            finally:
                self._db._db_lock.release()
            return False  # Don't suppress exceptions

        # ---------------------------------------------------------------------
        # Document operations inside the transaction
        # ---------------------------------------------------------------------

        def get(self, collection: str, doc_id: str) -> Optional[DocumentRecord]:
            row = _select(self._cursor, collection, doc_id)
            return _row_to_record(row) if row else None

        def query(
            self,
            collection: str,
            filters: Filters = None,
            community_id: Optional[str] = None,
            order_by: Optional[str] = None,
            descending: bool = False,
            limit: Optional[int] = None,
        ) -> List[DocumentRecord]:
            return _query(self._cursor, collection, filters, community_id, order_by, descending, limit)

        def put(
            self,
            collection: str,
            doc_id: str,
            data: Mapping[str, Any],
            community_id: Optional[str] = None,
            expected_version: Optional[int] = None,
        ) -> DocumentRecord:
            return _put(self._cursor, collection, doc_id, data, community_id, expected_version)

        def append(
            self,
            collection: str,
            doc_id: str,
            data: Mapping[str, Any],
            community_id: Optional[str] = None,
        ) -> DocumentRecord:
            return _put(self._cursor, collection, doc_id, data, community_id, expected_version=0)

        def delete(
            self,
            collection: str,
            doc_id: str,
            expected_version: Optional[int] = None,
        ) -> bool:
            return _delete(self._cursor, collection, doc_id, expected_version)

    def transaction(self, deadline: Optional[Deadline] = None) -> "DatabaseManager.Transaction":
        """
        Create a new transaction context manager.

        Args:
            deadline: Optional deadline bounding the lock wait and the commit.

        Returns:
            Transaction context manager for atomic operations.
        """
        return self.Transaction(self, deadline)


# =============================================================================
# Global Instance
# =============================================================================

def get_db() -> DatabaseManager:
    """Get the global database manager instance."""
    return DatabaseManager()


def reset_db() -> None:
    """Close and forget the singleton (tests and reconfiguration)."""
    instance = DatabaseManager._instance
    if instance is not None and getattr(instance, "_initialized", False):
        instance.close()
    DatabaseManager._instance = None


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["DatabaseManager", "get_db", "reset_db"]
