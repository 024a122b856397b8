"""
ArenaGuard - Moderation Package
===============================

Moderation engine and its hash-chained audit log.
"""

from .engine import ModerationEngine
from .audit import AuditLog, ChainReport, verify_records
from .constants import ACTION_PERMISSIONS

__all__ = [
    "ModerationEngine",
    "AuditLog",
    "ChainReport",
    "verify_records",
    "ACTION_PERMISSIONS",
]
