"""
ArenaGuard - Invitations Package
================================

Invitation codes, redemption and retirement.
"""

from .service import InvitationService
from .codes import generate_code, build_invite_link

__all__ = [
    "InvitationService",
    "generate_code",
    "build_invite_link",
]
