from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from uuid import UUID, uuid4

from opentelemetry import trace

from .errors import (
    InvalidTicketTransitionError,
    NothingToCancelError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from .filters import TicketListFilters, resolve_created_at_bounds
from .models import Ticket
from .repository import TicketRepository
from .state import TicketStateMachine, TicketStatus

__all__ = [
    "InvalidTicketTransitionError",
    "NothingToCancelError",
    "TicketNotFoundError",
    "TicketService",
    "TicketServiceError",
    "TicketValidationError",
]

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class TicketService:
    """High level orchestration for ticket lifecycle operations."""

    repository: TicketRepository
    timezone: dt.tzinfo | None = None

    async def ensure_schema(self) -> None:
        await self.repository.ensure_schema()

    async def create_ticket(self, *, title: str, content: str) -> Ticket:
        with tracer.start_as_current_span("tickets.create"):
            ticket = await self.repository.create(
                ticket_id=uuid4(),
                title=title,
                content=content,
                status=TicketStateMachine.initial_state(),
            )
        logger.info("Ticket %s created", ticket.id)
        return ticket

    async def get_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self.repository.find_unique(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(self, filters: TicketListFilters | None = None) -> list[Ticket]:
        filters = filters or TicketListFilters()
        bounds = resolve_created_at_bounds(filters, self.timezone)
        return await self.repository.find_many(
            bounds=bounds,
            status=filters.status,
            skip=filters.offset,
            take=filters.limit,
        )

    async def start_ticket(self, ticket_id: UUID) -> Ticket:
        with tracer.start_as_current_span("tickets.start"):
            return await self._transition(ticket_id, TicketStatus.IN_PROGRESS)

    async def complete_ticket(self, ticket_id: UUID, *, comment: str) -> Ticket:
        with tracer.start_as_current_span("tickets.complete"):
            return await self._transition(ticket_id, TicketStatus.COMPLETED, comment=comment)

    async def cancel_ticket(self, ticket_id: UUID, *, comment: str) -> Ticket:
        """Cancel a ticket whatever its current status."""

        with tracer.start_as_current_span("tickets.cancel"):
            return await self._transition(ticket_id, TicketStatus.CANCELLED, comment=comment)

    async def cancel_all_in_progress(self, *, comment: str) -> int:
        """Cancel every ticket in progress and return how many were cancelled.

        The count and the bulk update share one transaction; the counted rows
        stay locked until the update commits.
        """

        with tracer.start_as_current_span("tickets.cancel_all"):
            async with self.repository.transaction() as repository:
                in_progress = await repository.count(status=TicketStatus.IN_PROGRESS, for_update=True)
                if in_progress == 0:
                    raise NothingToCancelError("There are no tickets in progress")
                cancelled = await repository.update_many(
                    where_status=TicketStatus.IN_PROGRESS,
                    status=TicketStatus.CANCELLED,
                    comment=comment,
                )
        logger.info("Cancelled %d ticket(s) in progress", cancelled)
        return cancelled

    async def _transition(self, ticket_id: UUID, new_status: TicketStatus, *, comment: str | None = None) -> Ticket:
        ticket = await self.repository.find_unique(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        try:
            TicketStateMachine.assert_transition(ticket.status, new_status)
        except InvalidTicketTransitionError:
            logger.warning("Rejected transition of ticket %s: %s -> %s", ticket_id, ticket.status.value, new_status.value)
            raise

        updated = await self.repository.update(ticket_id, status=new_status, comment=comment)
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        # Leaving a terminal state only happens through cancel.
        level = logging.WARNING if TicketStateMachine.is_terminal(ticket.status) else logging.INFO
        logger.log(level, "Ticket %s moved %s -> %s", ticket_id, ticket.status.value, new_status.value)
        return updated
