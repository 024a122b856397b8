"""
ArenaGuard - Permission System
==============================

Pure resolver, role registry and channel overwrite store.
"""

from .resolver import resolve, held_roles, is_staff, required_for_mention
from .registry import RoleRegistry
from .channels import ChannelOverwriteStore
from .constants import (
    STAFF_PERMISSIONS,
    DEFAULT_ROLE_NAME,
    DEFAULT_ROLE_TEMPLATES,
    DEFAULT_CHANNEL_TEMPLATES,
)

__all__ = [
    # Resolver
    "resolve",
    "held_roles",
    "is_staff",
    "required_for_mention",
    # Services
    "RoleRegistry",
    "ChannelOverwriteStore",
    # Constants
    "STAFF_PERMISSIONS",
    "DEFAULT_ROLE_NAME",
    "DEFAULT_ROLE_TEMPLATES",
    "DEFAULT_CHANNEL_TEMPLATES",
]
