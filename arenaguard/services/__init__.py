"""
ArenaGuard - Services Package
=============================

Async service layer over the document repository.

DESIGN:
    Every service is a thin, stateless class holding the config and the
    repository. Authorization always goes through RoleRegistry, which
    re-resolves permissions from stored state on every check.

Available Services:
    RoleRegistry: Roles, permission resolution and authorization checks
    ChannelOverwriteStore: Channels and per-channel overwrites
    CommunityService: Community setup and membership
    InvitationService: Invitation codes and redemption
    TicketWorkflow: Support ticket lifecycle
    ModerationEngine: Moderation actions and the audit chain
    MentionService: Mention authorization and recipient expansion
"""

# =============================================================================
# Service Imports
# =============================================================================

from .permissions import RoleRegistry, ChannelOverwriteStore
from .community import CommunityService
from .invitations import InvitationService
from .tickets import TicketWorkflow
from .moderation import ModerationEngine
from .notifications import MentionService

# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "RoleRegistry",
    "ChannelOverwriteStore",
    "CommunityService",
    "InvitationService",
    "TicketWorkflow",
    "ModerationEngine",
    "MentionService",
]
