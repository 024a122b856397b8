"""
ArenaGuard - Mentions Router
============================

Authorize a message's mentions and expand them to recipients.
"""

from fastapi import APIRouter, Depends

from arenaguard.api.dependencies import get_current_user_id, get_mentions
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.mentions import ResolveMentionsRequest, ResolveMentionsResponse
from arenaguard.core.models import MentionSet
from arenaguard.services import MentionService
from arenaguard.services.notifications import parse_mentions


router = APIRouter(prefix="/communities/{community_id}/mentions", tags=["Mentions"])


@router.post("/resolve", response_model=APIResponse[ResolveMentionsResponse])
async def resolve_mentions(
    community_id: str,
    body: ResolveMentionsRequest,
    user_id: str = Depends(get_current_user_id),
    mentions: MentionService = Depends(get_mentions),
) -> APIResponse[ResolveMentionsResponse]:
    parsed = parse_mentions(body.content) if body.content else MentionSet()
    mention_set = MentionSet(
        everyone=parsed.everyone or body.everyone,
        here=parsed.here or body.here,
        roles=parsed.roles | frozenset(body.roles),
        users=parsed.users | frozenset(body.users),
    )
    recipients = await mentions.resolve_for_sender(
        community_id, user_id, mention_set, body.online, body.channel_id,
    )
    return APIResponse(data=ResolveMentionsResponse(recipients=sorted(recipients), count=len(recipients)))


__all__ = ["router"]
