"""
ArenaGuard - Database Record Types
==================================

Typed views of rows in the documents and changes tables.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DocumentRecord:
    """One stored document plus its concurrency version."""

    collection: str
    id: str
    community_id: Optional[str]
    version: int
    data: Dict[str, Any]
    created_at: float
    updated_at: float


@dataclass(frozen=True)
class ChangeRecord:
    """
    One entry of the change feed.

    ``data`` is the document after the write, or the last stored body for
    deletes, so subscribers filtering on a field still see the removal.
    """

    seq: int
    collection: str
    doc_id: str
    community_id: Optional[str]
    version: int
    op: str
    data: Dict[str, Any]
    created_at: float


OP_INSERT = "insert"
OP_UPDATE = "update"
OP_DELETE = "delete"


__all__ = [
    "DocumentRecord",
    "ChangeRecord",
    "OP_INSERT",
    "OP_UPDATE",
    "OP_DELETE",
]
