"""
ArenaGuard - Mention Models
===========================

Symbolic mention sets as parsed from a message.
"""

from dataclasses import dataclass
from typing import FrozenSet


@dataclass(frozen=True)
class MentionSet:
    everyone: bool = False
    here: bool = False
    roles: FrozenSet[str] = frozenset()
    users: FrozenSet[str] = frozenset()

    @property
    def is_broadcast(self) -> bool:
        return self.everyone or self.here

    @property
    def is_empty(self) -> bool:
        return not (self.everyone or self.here or self.roles or self.users)


__all__ = ["MentionSet"]
