"""
ArenaGuard - Permission Models
==============================

Permission vocabulary, roles, channels and channel overwrites.

DESIGN:
    Permission sets are frozensets of a closed str-Enum so membership tests
    are O(1) and documents serialize as sorted string lists. Overwrites are
    immutable value objects; a channel holds them as an ordered tuple.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set, Tuple

from arenaguard.core.errors import ValidationError


# =============================================================================
# Permission Vocabulary
# =============================================================================

class Permission(str, Enum):
    """Closed set of community permissions."""

    VIEW_CHANNELS = "view_channels"
    SEND_MESSAGES = "send_messages"
    MANAGE_MESSAGES = "manage_messages"
    EMBED_LINKS = "embed_links"
    ATTACH_FILES = "attach_files"
    READ_HISTORY = "read_history"
    MENTION_EVERYONE = "mention_everyone"
    MANAGE_CHANNELS = "manage_channels"
    KICK_USERS = "kick_users"
    BAN_USERS = "ban_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_TOURNAMENT = "manage_tournament"
    VIEW_AUDIT_LOG = "view_audit_log"
    CONNECT_VOICE = "connect_voice"
    SPEAK = "speak"
    MUTE_MEMBERS = "mute_members"
    DEAFEN_MEMBERS = "deafen_members"
    MOVE_MEMBERS = "move_members"
    ADMINISTRATOR = "administrator"


ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)


def parse_permissions(values: Iterable[Any], field_name: str = "permissions") -> FrozenSet[Permission]:
    """
    Convert raw names (or Permission members) to a permission set.

    Raises:
        ValidationError: If any name is not part of the vocabulary.
    """
    result: Set[Permission] = set()
    for value in values:
        if isinstance(value, Permission):
            result.add(value)
            continue
        try:
            result.add(Permission(value))
        except ValueError:
            raise ValidationError(f"Unknown permission: {value}", field=field_name)
    return frozenset(result)


def dump_permissions(perms: Iterable[Permission]) -> list:
    return sorted(p.value for p in perms)


# =============================================================================
# Overwrites
# =============================================================================

class SubjectType(str, Enum):
    ROLE = "role"
    MEMBER = "member"


@dataclass(frozen=True)
class PermissionOverwrite:
    """Channel-scoped allow/deny delta for one role or one member."""

    subject_id: str
    subject_type: SubjectType
    allow: FrozenSet[Permission] = frozenset()
    deny: FrozenSet[Permission] = frozenset()

    def to_doc(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "subject_type": self.subject_type.value,
            "allow": dump_permissions(self.allow),
            "deny": dump_permissions(self.deny),
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "PermissionOverwrite":
        return cls(
            subject_id=data["subject_id"],
            subject_type=SubjectType(data["subject_type"]),
            allow=parse_permissions(data.get("allow", [])),
            deny=parse_permissions(data.get("deny", [])),
        )


# =============================================================================
# Roles
# =============================================================================

@dataclass
class Role:
    """Named permission bundle; the default role is held by every member."""

    id: str
    community_id: str
    name: str
    color: str
    permissions: FrozenSet[Permission] = frozenset()
    position: int = 0
    mentionable: bool = True
    is_default: bool = False
    assigned_users: Set[str] = field(default_factory=set)
    version: int = 0

    def holds(self, user_id: str) -> bool:
        return self.is_default or user_id in self.assigned_users

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "community_id": self.community_id,
            "name": self.name,
            "name_key": self.name.casefold(),
            "color": self.color,
            "permissions": dump_permissions(self.permissions),
            "position": self.position,
            "mentionable": self.mentionable,
            "is_default": self.is_default,
            "assigned_users": sorted(self.assigned_users),
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Role":
        return cls(
            id=data["id"],
            community_id=data["community_id"],
            name=data["name"],
            color=data.get("color", ""),
            permissions=parse_permissions(data.get("permissions", [])),
            position=int(data.get("position", 0)),
            mentionable=bool(data.get("mentionable", True)),
            is_default=bool(data.get("is_default", False)),
            assigned_users=set(data.get("assigned_users", [])),
            version=version,
        )


# =============================================================================
# Channels
# =============================================================================

class ChannelType(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    ANNOUNCEMENT = "announcement"
    RULES = "rules"
    GENERAL = "general"


@dataclass
class Channel:
    id: str
    community_id: str
    name: str
    type: ChannelType
    position: int = 0
    parent_id: Optional[str] = None
    overwrites: Tuple[PermissionOverwrite, ...] = ()
    auto_created: bool = False
    description: str = ""
    version: int = 0

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "community_id": self.community_id,
            "name": self.name,
            "type": self.type.value,
            "position": self.position,
            "parent_id": self.parent_id,
            "overwrites": [o.to_doc() for o in self.overwrites],
            "auto_created": self.auto_created,
            "description": self.description,
        }

    @classmethod
    def from_doc(cls, data: Dict[str, Any], version: int = 0) -> "Channel":
        return cls(
            id=data["id"],
            community_id=data["community_id"],
            name=data["name"],
            type=ChannelType(data["type"]),
            position=int(data.get("position", 0)),
            parent_id=data.get("parent_id"),
            overwrites=tuple(PermissionOverwrite.from_doc(o) for o in data.get("overwrites", [])),
            auto_created=bool(data.get("auto_created", False)),
            description=data.get("description", ""),
            version=version,
        )


__all__ = [
    "Permission",
    "ALL_PERMISSIONS",
    "parse_permissions",
    "dump_permissions",
    "SubjectType",
    "PermissionOverwrite",
    "Role",
    "ChannelType",
    "Channel",
]
