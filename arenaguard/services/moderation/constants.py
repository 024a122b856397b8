"""
Moderation Constants
====================

Permission required per action type and log emojis.
"""

from arenaguard.core.models import ModerationActionType, Permission

A = ModerationActionType


# =============================================================================
# Authorization
# =============================================================================

# None = any staff permission
ACTION_PERMISSIONS = {
    A.BAN: Permission.BAN_USERS,
    A.UNBAN: Permission.BAN_USERS,
    A.MUTE: Permission.MUTE_MEMBERS,
    A.UNMUTE: Permission.MUTE_MEMBERS,
    A.KICK: Permission.KICK_USERS,
    A.WARN: None,
    A.ROLE_CHANGE: Permission.MANAGE_ROLES,
}


# =============================================================================
# Logging
# =============================================================================

ACTION_EMOJI = {
    A.BAN: "🔨",
    A.UNBAN: "🔓",
    A.MUTE: "🔇",
    A.UNMUTE: "🔊",
    A.KICK: "👢",
    A.WARN: "⚠️",
    A.ROLE_CHANGE: "🏷️",
}


__all__ = ["ACTION_PERMISSIONS", "ACTION_EMOJI"]
