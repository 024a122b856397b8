"""
ArenaGuard - Notifications Package
==================================

Mention parsing and recipient targeting.
"""

from .targeting import parse_mentions, resolve_recipients, MentionService

__all__ = [
    "parse_mentions",
    "resolve_recipients",
    "MentionService",
]
