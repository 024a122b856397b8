"""
ArenaGuard - Moderation Router
==============================

Moderation actions, audit history and chain verification.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from arenaguard.api.dependencies import get_audit_log, get_current_user_id, get_moderation
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.moderation import (
    ChainReportResponse,
    ModerationActionResponse,
    ModerationRequest,
)
from arenaguard.core.models import ModerationActionInput
from arenaguard.services import ModerationEngine
from arenaguard.services.moderation import AuditLog


router = APIRouter(prefix="/communities/{community_id}/moderation", tags=["Moderation"])


@router.post("/actions", response_model=APIResponse[ModerationActionResponse], status_code=201)
async def execute_action(
    community_id: str,
    body: ModerationRequest,
    user_id: str = Depends(get_current_user_id),
    engine: ModerationEngine = Depends(get_moderation),
) -> APIResponse[ModerationActionResponse]:
    """Apply a moderation action; the audit record is written in the same transaction."""
    action = ModerationActionInput(
        community_id=community_id,
        type=body.type,
        target_user_id=body.target_user_id,
        reason=body.reason,
        duration_minutes=body.duration_minutes,
        new_role=body.new_role,
    )
    record = await engine.execute(action, user_id)
    return APIResponse(message="Action applied", data=ModerationActionResponse.from_model(record))


@router.get("/history", response_model=APIResponse[List[ModerationActionResponse]])
async def history(
    community_id: str,
    target_user_id: Optional[str] = Query(None, description="Only actions against this user"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    audit: AuditLog = Depends(get_audit_log),
) -> APIResponse[List[ModerationActionResponse]]:
    records = await audit.history(community_id, user_id, target_user_id, limit)
    return APIResponse(data=[ModerationActionResponse.from_model(r) for r in records])


@router.get("/verify", response_model=APIResponse[ChainReportResponse])
async def verify_chain(
    community_id: str,
    user_id: str = Depends(get_current_user_id),
    audit: AuditLog = Depends(get_audit_log),
) -> APIResponse[ChainReportResponse]:
    report = await audit.verify_chain(community_id, user_id)
    return APIResponse(success=report.valid, data=ChainReportResponse.from_model(report))


__all__ = ["router"]
