from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from ticketdesk.tickets.filters import CreatedAtBounds
from ticketdesk.tickets.models import Ticket
from ticketdesk.tickets.service import TicketService
from ticketdesk.tickets.state import TicketStatus


class SteppingClock:
    """Deterministic clock advancing one minute per reading."""

    def __init__(self, start: datetime):
        self._current = start

    def __call__(self) -> datetime:
        value = self._current
        self._current += timedelta(minutes=1)
        return value


class InMemoryTicketRepository:
    """Dictionary backed stand-in honouring the repository contract."""

    def __init__(self, clock=None):
        self.tickets: dict[UUID, Ticket] = {}
        self.transactions = 0
        self._clock = clock or SteppingClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))

    def add(self, *, status: TicketStatus = TicketStatus.NEW, created_at: datetime | None = None, **fields) -> Ticket:
        now = created_at or self._clock()
        ticket = Ticket(
            id=fields.pop("id", uuid4()),
            title=fields.pop("title", "Printer jam"),
            content=fields.pop("content", "Paper stuck in tray 2"),
            status=status,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.tickets[ticket.id] = ticket
        return replace(ticket)

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self

    async def ensure_schema(self) -> None:
        return None

    async def find_unique(self, ticket_id: UUID) -> Ticket | None:
        ticket = self.tickets.get(ticket_id)
        return None if ticket is None else replace(ticket)

    async def find_many(
        self,
        *,
        bounds: CreatedAtBounds,
        status: TicketStatus | None = None,
        skip: int = 0,
        take: int = 10,
    ) -> list[Ticket]:
        matches = [
            ticket
            for ticket in self.tickets.values()
            if bounds.contains(ticket.created_at) and (status is None or ticket.status == status)
        ]
        matches.sort(key=lambda ticket: ticket.created_at, reverse=True)
        return [replace(ticket) for ticket in matches[skip : skip + take]]

    async def create(self, *, ticket_id: UUID, title: str, content: str, status: TicketStatus) -> Ticket:
        return self.add(id=ticket_id, title=title, content=content, status=status)

    async def update(self, ticket_id: UUID, *, status: TicketStatus, comment: str | None = None) -> Ticket | None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        ticket.status = status
        if comment is not None:
            ticket.comment = comment
        ticket.updated_at = self._clock()
        return replace(ticket)

    async def update_many(
        self,
        *,
        where_status: TicketStatus,
        status: TicketStatus,
        comment: str | None = None,
    ) -> int:
        affected = 0
        for ticket in self.tickets.values():
            if ticket.status != where_status:
                continue
            ticket.status = status
            if comment is not None:
                ticket.comment = comment
            ticket.updated_at = self._clock()
            affected += 1
        return affected

    async def count(self, *, status: TicketStatus, for_update: bool = False) -> int:
        return sum(1 for ticket in self.tickets.values() if ticket.status == status)


@pytest.fixture
def repository() -> InMemoryTicketRepository:
    return InMemoryTicketRepository()


@pytest.fixture
def service(repository: InMemoryTicketRepository) -> TicketService:
    return TicketService(repository, timezone=timezone.utc)
