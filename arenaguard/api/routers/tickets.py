"""
ArenaGuard - Tickets Router
===========================

Support ticket endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from arenaguard.api.dependencies import get_current_user_id, get_tickets
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.tickets import (
    AddMessageRequest,
    AssignTicketRequest,
    CreateTicketRequest,
    SetPriorityRequest,
    SetStatusRequest,
    TicketBrief,
    TicketResponse,
)
from arenaguard.services import TicketWorkflow


router = APIRouter(tags=["Tickets"])


# =============================================================================
# List & Create
# =============================================================================

@router.get("/communities/{community_id}/tickets", response_model=APIResponse[List[TicketBrief]])
async def list_tickets(
    community_id: str,
    status: Optional[str] = Query(None, description="Filter by status"),
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[List[TicketBrief]]:
    """Newest first. Staff see every ticket, members only their own."""
    result = await tickets.list_tickets(community_id, user_id, status)
    return APIResponse(data=[TicketBrief.from_model(t) for t in result])


@router.post("/communities/{community_id}/tickets", response_model=APIResponse[TicketResponse], status_code=201)
async def create_ticket(
    community_id: str,
    body: CreateTicketRequest,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.create(
        community_id, user_id, body.title, body.description, body.category, body.priority,
    )
    return APIResponse(message="Ticket created", data=TicketResponse.from_model(ticket))


# =============================================================================
# Ticket Detail
# =============================================================================

@router.get("/tickets/{ticket_id}", response_model=APIResponse[TicketResponse])
async def get_ticket(
    ticket_id: str,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.get_ticket(ticket_id, user_id)
    return APIResponse(data=TicketResponse.from_model(ticket))


@router.post("/tickets/{ticket_id}/messages", response_model=APIResponse[TicketResponse])
async def add_message(
    ticket_id: str,
    body: AddMessageRequest,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.add_message(ticket_id, user_id, body.content)
    return APIResponse(data=TicketResponse.from_model(ticket))


# =============================================================================
# Staff Actions
# =============================================================================

@router.post("/tickets/{ticket_id}/assign", response_model=APIResponse[TicketResponse])
async def assign_ticket(
    ticket_id: str,
    body: AssignTicketRequest,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.assign(ticket_id, body.staff_user, user_id)
    return APIResponse(data=TicketResponse.from_model(ticket))


@router.put("/tickets/{ticket_id}/status", response_model=APIResponse[TicketResponse])
async def set_status(
    ticket_id: str,
    body: SetStatusRequest,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.set_status(ticket_id, body.status, user_id)
    return APIResponse(data=TicketResponse.from_model(ticket))


@router.put("/tickets/{ticket_id}/priority", response_model=APIResponse[TicketResponse])
async def set_priority(
    ticket_id: str,
    body: SetPriorityRequest,
    user_id: str = Depends(get_current_user_id),
    tickets: TicketWorkflow = Depends(get_tickets),
) -> APIResponse[TicketResponse]:
    ticket = await tickets.set_priority(ticket_id, body.priority, user_id)
    return APIResponse(data=TicketResponse.from_model(ticket))


__all__ = ["router"]
