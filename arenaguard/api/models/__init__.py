"""
ArenaGuard - API Models
=======================

Pydantic models for request/response validation.
"""

from .base import *
from .auth import *
from .communities import *
from .invitations import *
from .tickets import *
from .moderation import *
from .mentions import *


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # base.py
    "APIResponse",
    "ErrorResponse",
    "HealthResponse",
    # auth.py
    "TokenPayload",
    "WhoAmIResponse",
    # communities.py
    "CreateCommunityRequest",
    "AddMemberRequest",
    "CreateRoleRequest",
    "UpdateRoleRequest",
    "SetPermissionsRequest",
    "CreateChannelRequest",
    "OverwriteRequest",
    "CommunityResponse",
    "ParticipantResponse",
    "RoleResponse",
    "OverwriteResponse",
    "ChannelResponse",
    "EffectivePermissionsResponse",
    # invitations.py
    "CreateInvitationRequest",
    "RedeemLinkRequest",
    "InvitationResponse",
    "UsageResponse",
    "RedeemResponse",
    "PurgeResponse",
    # tickets.py
    "CreateTicketRequest",
    "AddMessageRequest",
    "AssignTicketRequest",
    "SetStatusRequest",
    "SetPriorityRequest",
    "TicketMessageResponse",
    "TicketResponse",
    "TicketBrief",
    # moderation.py
    "ModerationRequest",
    "ModerationActionResponse",
    "ChainReportResponse",
    # mentions.py
    "ResolveMentionsRequest",
    "ResolveMentionsResponse",
]
