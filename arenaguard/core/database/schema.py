"""
ArenaGuard - Database Schema
============================

Table definitions for the document store and its change feed.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arenaguard.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Documents Table
        # DESIGN: One row per entity, keyed by (collection, doc_id).
        # version starts at 1 and increments on every write, including across
        # a delete and re-insert; conditional writes compare against it.
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                community_id TEXT,
                version INTEGER NOT NULL,
                data TEXT NOT NULL,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_community
            ON documents(collection, community_id)
        """)

        # -----------------------------------------------------------------
        # Changes Table
        # DESIGN: Written in the same transaction as the document so the
        # feed never shows a write that was rolled back.
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS changes (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                community_id TEXT,
                version INTEGER NOT NULL,
                op TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_changes_collection
            ON changes(collection, seq)
        """)

        # -----------------------------------------------------------------
        # Tombstones Table
        # DESIGN: Last version of a deleted document. A re-insert continues
        # from it, so a version number never repeats for the same id.
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tombstones (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                version INTEGER NOT NULL,
                deleted_at REAL NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
        """)

        conn.commit()
