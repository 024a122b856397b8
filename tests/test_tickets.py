"""
ArenaGuard - Ticket Workflow Tests
==================================

Tests for ticket creation, threading, assignment and the status machine.
"""

import asyncio

import pytest

from arenaguard.core.errors import TicketClosed, Timeout, Unauthorized, ValidationError
from arenaguard.core.models import (
    ModerationActionInput,
    ModerationActionType,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)
from arenaguard.services.tickets.constants import ALLOWED_TRANSITIONS
from arenaguard.utils.deadline import Deadline

OWNER = "owner"


@pytest.fixture
def support_desk(arena, make_moderator):
    """Community with member alice, member bob and moderator mod."""

    async def _create():
        community = await arena(members=["alice", "bob", "mod"])
        await make_moderator(community.id, "mod")
        return community

    return _create


class TestStateMachine:
    """Tests for the transition table."""

    def test_closed_is_terminal(self):
        """No transition leaves closed."""
        assert ALLOWED_TRANSITIONS[TicketStatus.CLOSED] == frozenset()

    def test_open_can_close_directly(self):
        """Spam can be closed without being worked."""
        assert TicketStatus.CLOSED in ALLOWED_TRANSITIONS[TicketStatus.OPEN]


class TestCreate:
    """Tests for TicketWorkflow.create."""

    @pytest.mark.asyncio
    async def test_description_is_first_message(self, services, support_desk):
        """A new ticket is open with the description as a non-staff message."""
        community = await support_desk()
        ticket = await services.tickets.create(
            community.id, "alice", "Lag spikes", "Ping jumps to 900ms", "technical", "high",
        )

        assert ticket.status == TicketStatus.OPEN
        assert ticket.category == TicketCategory.TECHNICAL
        assert ticket.priority == TicketPriority.HIGH
        assert len(ticket.messages) == 1
        assert ticket.messages[0].content == "Ping jumps to 900ms"
        assert ticket.messages[0].is_staff is False

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, services, support_desk):
        """Only members can open tickets."""
        community = await support_desk()
        with pytest.raises(Unauthorized):
            await services.tickets.create(community.id, "stranger", "Hi", "Let me in")

    @pytest.mark.asyncio
    async def test_banned_member_rejected(self, services, support_desk):
        """Banned members cannot open tickets."""
        community = await support_desk()
        await services.moderation.execute(
            ModerationActionInput(community.id, ModerationActionType.BAN, "bob", "cheating"), OWNER,
        )
        with pytest.raises(Unauthorized):
            await services.tickets.create(community.id, "bob", "Appeal", "Please unban")

    @pytest.mark.asyncio
    async def test_validation(self, services, support_desk):
        """Blank titles and unknown enums are rejected."""
        community = await support_desk()
        with pytest.raises(ValidationError):
            await services.tickets.create(community.id, "alice", "  ", "body")
        with pytest.raises(ValidationError):
            await services.tickets.create(community.id, "alice", "t", "body", category="billing")


class TestMessages:
    """Tests for add_message."""

    @pytest.mark.asyncio
    async def test_staff_reply_moves_to_in_progress(self, services, support_desk):
        """A staff reply on an open ticket starts work on it."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "Bracket is wrong")

        ticket = await services.tickets.add_message(ticket.id, "mod", "Looking into it")

        assert ticket.status == TicketStatus.IN_PROGRESS
        assert ticket.last_message.is_staff is True

    @pytest.mark.asyncio
    async def test_author_reply_keeps_status(self, services, support_desk):
        """The author replying does not change status."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "Bracket is wrong")
        ticket = await services.tickets.add_message(ticket.id, "alice", "Any news?")
        assert ticket.status == TicketStatus.OPEN
        assert len(ticket.messages) == 2

    @pytest.mark.asyncio
    async def test_other_member_cannot_reply(self, services, support_desk):
        """Members cannot post in someone else's ticket."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "Bracket is wrong")
        with pytest.raises(Unauthorized):
            await services.tickets.add_message(ticket.id, "bob", "me too")

    @pytest.mark.asyncio
    async def test_closed_ticket_rejects_messages(self, services, support_desk):
        """Messages on a closed ticket raise TicketClosed."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Spam", "spam spam")
        await services.tickets.set_status(ticket.id, "closed", "mod")
        with pytest.raises(TicketClosed):
            await services.tickets.add_message(ticket.id, "alice", "wait")

    @pytest.mark.asyncio
    async def test_reply_timing_out_before_write_changes_nothing(self, services, support_desk, monkeypatch):
        """A reply whose deadline passes between read and write leaves the ticket as it was."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "Bracket is wrong")
        load_ticket = services.tickets._load_ticket
        loads = []

        async def slow_second_load(ticket_id, deadline):
            loaded = await load_ticket(ticket_id, deadline)
            loads.append(ticket_id)
            if len(loads) == 2:
                await asyncio.sleep(0.3)
            return loaded

        monkeypatch.setattr(services.tickets, "_load_ticket", slow_second_load)

        with pytest.raises(Timeout):
            await services.tickets.add_message(ticket.id, "mod", "On it", deadline=Deadline.after(0.2))

        stored = await services.tickets.get_ticket(ticket.id, "alice")
        assert stored.version == ticket.version
        assert stored.status == TicketStatus.OPEN
        assert len(stored.messages) == 1

    @pytest.mark.asyncio
    async def test_expired_deadline_opens_no_ticket(self, services, support_desk):
        """create() with no time left writes nothing."""
        community = await support_desk()
        with pytest.raises(Timeout):
            await services.tickets.create(community.id, "alice", "Help", "Lag", deadline=Deadline.after(-1))
        assert await services.tickets.list_tickets(community.id, "mod") == []

    @pytest.mark.asyncio
    async def test_concurrent_replies_and_close_stay_consistent(self, services, support_desk):
        """Replies racing a close either land before it or fail with TicketClosed."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Race", "go")

        results = await asyncio.gather(
            *(services.tickets.add_message(ticket.id, "alice", f"msg {i}") for i in range(5)),
            services.tickets.set_status(ticket.id, "closed", "mod"),
            return_exceptions=True,
        )

        replies = results[:5]
        landed = [r for r in replies if not isinstance(r, Exception)]
        assert all(isinstance(r, TicketClosed) for r in replies if isinstance(r, Exception))
        final = await services.tickets.get_ticket(ticket.id, "mod")
        assert final.status == TicketStatus.CLOSED
        assert len(final.messages) == 1 + len(landed)


class TestStaffOperations:
    """Tests for assign, set_status and set_priority."""

    @pytest.mark.asyncio
    async def test_assign_forces_in_progress(self, services, support_desk):
        """Assigning an open ticket starts it."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        ticket = await services.tickets.assign(ticket.id, "mod", OWNER)
        assert ticket.assigned_to == "mod"
        assert ticket.status == TicketStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_assign_requires_staff(self, services, support_desk):
        """Only staff assign, and only to staff."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        with pytest.raises(Unauthorized):
            await services.tickets.assign(ticket.id, "mod", "alice")
        with pytest.raises(ValidationError):
            await services.tickets.assign(ticket.id, "bob", "mod")

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, services, support_desk):
        """open -> in_progress -> resolved -> closed stamps closed_at."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        for status in ("in_progress", "resolved", "closed"):
            ticket = await services.tickets.set_status(ticket.id, status, "mod")
        assert ticket.status == TicketStatus.CLOSED
        assert ticket.closed_at is not None

        with pytest.raises(TicketClosed):
            await services.tickets.set_status(ticket.id, "in_progress", "mod")

    @pytest.mark.asyncio
    async def test_invalid_transition(self, services, support_desk):
        """open -> resolved skips a step and is rejected."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        with pytest.raises(ValidationError):
            await services.tickets.set_status(ticket.id, "resolved", "mod")

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, services, support_desk):
        """Setting the current status writes nothing."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        again = await services.tickets.set_status(ticket.id, "open", "mod")
        assert again.version == ticket.version

    @pytest.mark.asyncio
    async def test_member_cannot_change_status(self, services, support_desk):
        """Status changes are staff-only."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        with pytest.raises(Unauthorized):
            await services.tickets.set_status(ticket.id, "closed", "alice")

    @pytest.mark.asyncio
    async def test_set_priority(self, services, support_desk):
        """Staff can re-prioritise."""
        community = await support_desk()
        ticket = await services.tickets.create(community.id, "alice", "Help", "body")
        ticket = await services.tickets.set_priority(ticket.id, "urgent", "mod")
        assert ticket.priority == TicketPriority.URGENT


class TestReads:
    """Tests for get_ticket and list_tickets visibility."""

    @pytest.mark.asyncio
    async def test_visibility(self, services, support_desk):
        """Members see their own tickets; staff see all."""
        community = await support_desk()
        mine = await services.tickets.create(community.id, "alice", "A", "a")
        await services.tickets.create(community.id, "bob", "B", "b")

        assert [t.id for t in await services.tickets.list_tickets(community.id, "alice")] == [mine.id]
        assert len(await services.tickets.list_tickets(community.id, "mod")) == 2
        with pytest.raises(Unauthorized):
            await services.tickets.get_ticket(mine.id, "bob")

    @pytest.mark.asyncio
    async def test_status_filter(self, services, support_desk):
        """list_tickets filters by status."""
        community = await support_desk()
        first = await services.tickets.create(community.id, "alice", "A", "a")
        await services.tickets.create(community.id, "alice", "B", "b")
        await services.tickets.set_status(first.id, "closed", "mod")

        closed = await services.tickets.list_tickets(community.id, "mod", status="closed")
        assert [t.id for t in closed] == [first.id]
