"""
Permission System Constants
===========================

Staff definition and the role/channel templates used at community setup.
"""

from arenaguard.core.models import ChannelType, Permission

P = Permission


# =============================================================================
# Staff
# =============================================================================

STAFF_PERMISSIONS = frozenset({
    P.MANAGE_TOURNAMENT,
    P.KICK_USERS,
    P.BAN_USERS,
    P.MUTE_MEMBERS,
    P.MANAGE_MESSAGES,
})
"""Holding any of these (or administrator) makes a member staff."""

DEFAULT_ROLE_NAME = "@everyone"


# =============================================================================
# Role Templates
# =============================================================================

# Listed lowest position first; position = index.
DEFAULT_ROLE_TEMPLATES = [
    {
        "key": "everyone",
        "name": DEFAULT_ROLE_NAME,
        "color": "#99AAB5",
        "is_default": True,
        "mentionable": False,
        "permissions": {
            P.VIEW_CHANNELS, P.READ_HISTORY, P.SEND_MESSAGES,
            P.EMBED_LINKS, P.CONNECT_VOICE, P.SPEAK,
        },
    },
    {
        "key": "spectator",
        "name": "Spectator",
        "color": "#95A5A6",
        "permissions": {P.VIEW_CHANNELS, P.READ_HISTORY, P.CONNECT_VOICE},
    },
    {
        "key": "participant",
        "name": "Participant",
        "color": "#2ECC71",
        "permissions": {
            P.VIEW_CHANNELS, P.READ_HISTORY, P.SEND_MESSAGES, P.EMBED_LINKS,
            P.ATTACH_FILES, P.CONNECT_VOICE, P.SPEAK,
        },
    },
    {
        "key": "moderator",
        "name": "Moderator",
        "color": "#3498DB",
        "permissions": {
            P.MANAGE_MESSAGES, P.KICK_USERS, P.BAN_USERS, P.MUTE_MEMBERS,
            P.DEAFEN_MEMBERS, P.MOVE_MEMBERS, P.VIEW_AUDIT_LOG, P.MENTION_EVERYONE,
            P.MANAGE_TOURNAMENT,
        },
    },
    {
        "key": "organizer",
        "name": "Organizer",
        "color": "#E74C3C",
        "permissions": {P.ADMINISTRATOR},
    },
]

OWNER_ROLE_KEY = "organizer"
MEMBER_ROLE_KEY = "participant"


# =============================================================================
# Channel Templates
# =============================================================================

# "overwrites" maps a role template key to (allow, deny).
DEFAULT_CHANNEL_TEMPLATES = [
    {
        "name": "announcements",
        "type": ChannelType.ANNOUNCEMENT,
        "description": "Tournament announcements",
        "overwrites": {"everyone": (set(), {P.SEND_MESSAGES})},
    },
    {
        "name": "rules",
        "type": ChannelType.RULES,
        "description": "Tournament rules",
        "overwrites": {"everyone": (set(), {P.SEND_MESSAGES})},
    },
    {
        "name": "general",
        "type": ChannelType.GENERAL,
        "description": "General chat",
        "overwrites": {},
    },
    {
        "name": "team-formation",
        "type": ChannelType.TEXT,
        "description": "Find teammates",
        "overwrites": {"spectator": (set(), {P.SEND_MESSAGES})},
    },
]


__all__ = [
    "STAFF_PERMISSIONS",
    "DEFAULT_ROLE_NAME",
    "DEFAULT_ROLE_TEMPLATES",
    "OWNER_ROLE_KEY",
    "MEMBER_ROLE_KEY",
    "DEFAULT_CHANNEL_TEMPLATES",
]
