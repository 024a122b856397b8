"""
ArenaGuard - Database Module
============================

Document repository with conditional writes, transactions and a change feed.
"""

from arenaguard.core.database.manager import (
    DatabaseManager,
    get_db,
    reset_db,
)
from arenaguard.core.database.changes import ChangeStream
from arenaguard.core.database.models import (
    DocumentRecord,
    ChangeRecord,
    OP_INSERT,
    OP_UPDATE,
    OP_DELETE,
)

__all__ = [
    # Main interface
    "DatabaseManager",
    "get_db",
    "reset_db",
    "ChangeStream",

    # Type definitions
    "DocumentRecord",
    "ChangeRecord",
    "OP_INSERT",
    "OP_UPDATE",
    "OP_DELETE",
]
