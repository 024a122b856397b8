"""
ArenaGuard - Ticket Workflow
============================

Support ticket lifecycle, message threading and staff assignment.

DESIGN:
    Every mutation is a read-modify-write of the single ticket document
    with a version check, retried on conflict. Because the message list
    and the status live in the same document, a reply and a concurrent
    status change can never clobber each other: the loser re-reads and
    re-applies its change on top of the winner's.

    Staff = administrator or any moderation/management permission,
    resolved fresh from stored roles on every call.
"""

from typing import Callable, List, Optional

from arenaguard.core.constants import (
    COLLECTION_PARTICIPANTS,
    COLLECTION_TICKETS,
    MAX_DESCRIPTION_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
)
from arenaguard.core.errors import TicketClosed, Unauthorized, ValidationError
from arenaguard.core.logger import logger
from arenaguard.core.models import (
    Participant,
    Ticket,
    TicketCategory,
    TicketMessage,
    TicketPriority,
    TicketStatus,
    participant_key,
)
from arenaguard.services.base import BaseService, new_id, now
from arenaguard.services.permissions.registry import RoleRegistry
from arenaguard.services.permissions.resolver import is_staff
from arenaguard.services.tickets.constants import ALLOWED_TRANSITIONS, STATUS_EMOJI
from arenaguard.utils.deadline import Deadline
from arenaguard.utils.retry import retry_on_conflict
from arenaguard.utils.validators import Validators


class TicketWorkflow(BaseService):
    """Ticket state machine over the document repository."""

    def __init__(self, registry: Optional[RoleRegistry] = None, db=None, config=None) -> None:
        super().__init__(db, config)
        self.registry = registry or RoleRegistry(self.db, self.config)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _is_staff(self, community_id: str, user_id: str, deadline: Deadline) -> bool:
        perms = await self.registry.effective_permissions(community_id, user_id, None, deadline)
        return is_staff(perms)

    async def _load_ticket(self, ticket_id: str, deadline: Deadline) -> Ticket:
        return await self._load(COLLECTION_TICKETS, ticket_id, Ticket, "ticket", deadline)

    async def _mutate(
        self,
        ticket_id: str,
        mutate: Callable[[Ticket], bool],
        deadline: Deadline,
        name: str,
    ) -> Ticket:
        """
        Re-read, mutate and conditionally write one ticket until it lands.

        mutate() returns False when there is nothing to write.

        Raises:
            TicketClosed: If the ticket is closed at read time.
            ConflictError: Retries exhausted.
        """

        async def attempt() -> Ticket:
            ticket = await self._load_ticket(ticket_id, deadline)
            if ticket.is_closed:
                raise TicketClosed(ticket.id)
            if not mutate(ticket):
                return ticket
            ticket.updated_at = now()
            record = await self._call(
                self.db.put, COLLECTION_TICKETS, ticket.id, ticket.to_doc(), ticket.community_id,
                expected_version=ticket.version, deadline=deadline,
            )
            ticket.version = record.version
            return ticket

        return await retry_on_conflict(attempt, self.config.write_max_attempts, deadline, name=name)

    # =========================================================================
    # Create
    # =========================================================================

    async def create(
        self,
        community_id: str,
        author: str,
        title: str,
        description: str,
        category: TicketCategory = TicketCategory.GENERAL,
        priority: TicketPriority = TicketPriority.MEDIUM,
        deadline: Optional[Deadline] = None,
    ) -> Ticket:
        """
        Open a ticket. Any non-banned member may do so.

        The description becomes the first message of the thread.

        Raises:
            ValidationError: Blank/overlong title or description, bad enum.
            Unauthorized: Author is not a member, or is banned.
        """
        deadline = self._deadline(deadline)
        title = Validators.require_text(title, "title", MAX_TITLE_LENGTH)
        description = Validators.require_text(description, "description", MAX_DESCRIPTION_LENGTH)
        category = Validators.parse_enum(TicketCategory, category, "category")
        priority = Validators.parse_enum(TicketPriority, priority, "priority")

        record = await self._call(
            self.db.get, COLLECTION_PARTICIPANTS, participant_key(community_id, author), deadline=deadline,
        )
        if record is None:
            raise Unauthorized("Only community members can open tickets", permission="member")
        if Participant.from_doc(record.data).is_banned:
            raise Unauthorized("Banned members cannot open tickets", permission="not_banned")

        created_at = now()
        ticket = Ticket(
            id=new_id("tkt"),
            community_id=community_id,
            created_by=author,
            category=category,
            title=title,
            description=description,
            priority=priority,
            messages=[TicketMessage(new_id("msg"), author, description, created_at, is_staff=False)],
            created_at=created_at,
            updated_at=created_at,
        )
        written = await self._call(
            self.db.append, COLLECTION_TICKETS, ticket.id, ticket.to_doc(), community_id, deadline=deadline,
        )
        ticket.version = written.version

        logger.tree("Ticket Created", [
            ("Ticket", ticket.id),
            ("Community", community_id),
            ("Author", author),
            ("Category", category.value),
            ("Priority", priority.value),
            ("Title", title[:50]),
        ], emoji="🎫")
        return ticket

    # =========================================================================
    # Messages
    # =========================================================================

    async def add_message(
        self,
        ticket_id: str,
        author: str,
        content: str,
        deadline: Optional[Deadline] = None,
    ) -> Ticket:
        """
        Append a message to the thread.

        A staff reply on an open ticket moves it to in_progress in the same
        write.

        Raises:
            TicketClosed: The ticket is closed.
            Unauthorized: Non-staff author on someone else's ticket.
        """
        deadline = self._deadline(deadline)
        content = Validators.require_text(content, "content", MAX_MESSAGE_LENGTH)
        ticket = await self._load_ticket(ticket_id, deadline)
        if ticket.is_closed:
            raise TicketClosed(ticket.id)

        staff = await self._is_staff(ticket.community_id, author, deadline)
        if not staff and author != ticket.created_by:
            raise Unauthorized("Only the ticket author or staff can reply", permission="staff")

        message = TicketMessage(new_id("msg"), author, content, now(), is_staff=staff)

        def mutate(t: Ticket) -> bool:
            t.messages.append(message)
            if staff and t.status == TicketStatus.OPEN:
                t.status = TicketStatus.IN_PROGRESS
            return True

        ticket = await self._mutate(ticket_id, mutate, deadline, "add ticket message")

        logger.tree("Ticket Message Added", [
            ("Ticket", ticket.id),
            ("Author", f"{author} ({'staff' if staff else 'member'})"),
            ("Status", f"{STATUS_EMOJI[ticket.status]} {ticket.status.value}"),
            ("Messages", str(len(ticket.messages))),
        ], emoji="💬")
        return ticket

    # =========================================================================
    # Staff Operations
    # =========================================================================

    async def assign(
        self,
        ticket_id: str,
        staff_user: str,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Ticket:
        """
        Assign a ticket to a staff member; an open ticket becomes in_progress.

        Raises:
            Unauthorized: Actor is not staff.
            ValidationError: Assignee is not staff.
            TicketClosed: The ticket is closed.
        """
        deadline = self._deadline(deadline)
        ticket = await self._load_ticket(ticket_id, deadline)
        await self.registry.require_staff(ticket.community_id, actor, deadline)
        if not await self._is_staff(ticket.community_id, staff_user, deadline):
            raise ValidationError(f"Assignee is not staff: {staff_user}", field="staff_user")

        def mutate(t: Ticket) -> bool:
            t.assigned_to = staff_user
            if t.status == TicketStatus.OPEN:
                t.status = TicketStatus.IN_PROGRESS
            return True

        ticket = await self._mutate(ticket_id, mutate, deadline, "assign ticket")

        logger.tree("Ticket Assigned", [
            ("Ticket", ticket.id),
            ("Assignee", staff_user),
            ("Status", f"{STATUS_EMOJI[ticket.status]} {ticket.status.value}"),
            ("Actor", actor),
        ], emoji="📌")
        return ticket

    async def set_status(
        self,
        ticket_id: str,
        new_status: TicketStatus,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Ticket:
        """
        Move a ticket through its state machine.

        Setting the current status again is a no-op. Closing stamps closed_at.

        Raises:
            Unauthorized: Actor is not staff.
            TicketClosed: The ticket is already closed.
            ValidationError: Transition not allowed.
        """
        deadline = self._deadline(deadline)
        new_status = Validators.parse_enum(TicketStatus, new_status, "status")

        ticket = await self._load_ticket(ticket_id, deadline)
        await self.registry.require_staff(ticket.community_id, actor, deadline)
        previous = ticket.status

        def mutate(t: Ticket) -> bool:
            nonlocal previous
            previous = t.status
            if t.status == new_status:
                return False
            if new_status not in ALLOWED_TRANSITIONS[t.status]:
                raise ValidationError(
                    f"Cannot move ticket from {t.status.value} to {new_status.value}", field="status",
                )
            t.status = new_status
            if new_status == TicketStatus.CLOSED:
                t.closed_at = now()
            return True

        ticket = await self._mutate(ticket_id, mutate, deadline, "set ticket status")

        logger.tree("Ticket Status Changed", [
            ("Ticket", ticket.id),
            ("From", previous.value),
            ("To", f"{STATUS_EMOJI[ticket.status]} {ticket.status.value}"),
            ("Actor", actor),
        ], emoji="🔄")
        return ticket

    async def set_priority(
        self,
        ticket_id: str,
        priority: TicketPriority,
        actor: str,
        deadline: Optional[Deadline] = None,
    ) -> Ticket:
        deadline = self._deadline(deadline)
        priority = Validators.parse_enum(TicketPriority, priority, "priority")
        ticket = await self._load_ticket(ticket_id, deadline)
        await self.registry.require_staff(ticket.community_id, actor, deadline)

        def mutate(t: Ticket) -> bool:
            if t.priority == priority:
                return False
            t.priority = priority
            return True

        return await self._mutate(ticket_id, mutate, deadline, "set ticket priority")

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_ticket(self, ticket_id: str, actor: str, deadline: Optional[Deadline] = None) -> Ticket:
        """Fetch a ticket; visible to its author and to staff."""
        deadline = self._deadline(deadline)
        ticket = await self._load_ticket(ticket_id, deadline)
        if actor != ticket.created_by and not await self._is_staff(ticket.community_id, actor, deadline):
            raise Unauthorized("Only the ticket author or staff can view this ticket", permission="staff")
        return ticket

    async def list_tickets(
        self,
        community_id: str,
        actor: str,
        status: Optional[TicketStatus] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[Ticket]:
        """Newest first. Staff see every ticket, members only their own."""
        deadline = self._deadline(deadline)
        filters = {}
        if status is not None:
            filters["status"] = Validators.parse_enum(TicketStatus, status, "status")
        if not await self._is_staff(community_id, actor, deadline):
            filters["created_by"] = actor

        records = await self._call(
            self.db.query, COLLECTION_TICKETS, filters or None, community_id=community_id,
            order_by="created_at", descending=True, deadline=deadline,
        )
        return [Ticket.from_doc(r.data, r.version) for r in records]


__all__ = ["TicketWorkflow"]
