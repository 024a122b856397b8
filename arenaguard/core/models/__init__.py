"""
ArenaGuard - Domain Models
==========================

Dataclasses for every stored entity. Each model converts to and from the
plain dict stored in the documents table (to_doc / from_doc); the document
version travels on the model so services can write back conditionally.
"""

from arenaguard.core.models.permissions import (
    Permission,
    ALL_PERMISSIONS,
    parse_permissions,
    dump_permissions,
    SubjectType,
    PermissionOverwrite,
    Role,
    ChannelType,
    Channel,
)
from arenaguard.core.models.community import (
    ParticipantStatus,
    participant_key,
    Community,
    Participant,
)
from arenaguard.core.models.invitations import (
    InvitationType,
    InvitationState,
    Invitation,
    InvitationUsage,
    RedeemResult,
)
from arenaguard.core.models.tickets import (
    TicketStatus,
    TicketPriority,
    TicketCategory,
    TicketMessage,
    Ticket,
)
from arenaguard.core.models.moderation import (
    ModerationActionType,
    TIMED_ACTIONS,
    GENESIS_HASH,
    ModerationActionInput,
    ModerationAction,
)
from arenaguard.core.models.notifications import MentionSet

__all__ = [
    # Permissions
    "Permission",
    "ALL_PERMISSIONS",
    "parse_permissions",
    "dump_permissions",
    "SubjectType",
    "PermissionOverwrite",
    "Role",
    "ChannelType",
    "Channel",

    # Community
    "ParticipantStatus",
    "participant_key",
    "Community",
    "Participant",

    # Invitations
    "InvitationType",
    "InvitationState",
    "Invitation",
    "InvitationUsage",
    "RedeemResult",

    # Tickets
    "TicketStatus",
    "TicketPriority",
    "TicketCategory",
    "TicketMessage",
    "Ticket",

    # Moderation
    "ModerationActionType",
    "TIMED_ACTIONS",
    "GENESIS_HASH",
    "ModerationActionInput",
    "ModerationAction",

    # Mentions
    "MentionSet",
]
