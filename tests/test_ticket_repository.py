from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from ticketdesk.tickets.filters import CreatedAtBounds
from ticketdesk.tickets.repository import TicketRepository
from ticketdesk.tickets.state import TicketStatus


class DummyAcquire:
    def __init__(self, connection):
        self._connection = connection

    async def __aenter__(self):
        return self._connection

    async def __aexit__(self, exc_type, exc, tb):
        return False


class DummyPool:
    def __init__(self, connection):
        self._connection = connection
        self.acquired = 0

    def acquire(self):
        self.acquired += 1
        return DummyAcquire(self._connection)


def _make_connection() -> AsyncMock:
    connection = AsyncMock()
    connection.transaction = MagicMock(return_value=DummyAcquire(None))
    return connection


def _ticket_row(**overrides):
    now = datetime.now(timezone.utc)
    row = {
        "id": uuid4(),
        "title": "Laptop",
        "content": "Screen flickers",
        "comment": None,
        "status": "NEW",
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_ensure_schema_creates_table_and_indexes():
    connection = _make_connection()
    repository = TicketRepository(DummyPool(connection))

    await repository.ensure_schema()

    executed = [call.args[0] for call in connection.execute.await_args_list]
    assert len(executed) == 2
    assert "CREATE TABLE IF NOT EXISTS tickets" in executed[0]
    assert "tickets_created_at_idx" in executed[1]


@pytest.mark.asyncio
async def test_find_unique_maps_row():
    row = _ticket_row(status="COMPLETED", comment="Replaced cable", id=str(uuid4()))
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=row)
    repository = TicketRepository(DummyPool(connection))

    ticket = await repository.find_unique(row["id"])

    assert ticket is not None
    assert str(ticket.id) == row["id"]
    assert ticket.status == TicketStatus.COMPLETED
    assert ticket.comment == "Replaced cable"


@pytest.mark.asyncio
async def test_find_unique_returns_none_for_missing_row():
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=None)
    repository = TicketRepository(DummyPool(connection))

    assert await repository.find_unique(uuid4()) is None


@pytest.mark.asyncio
async def test_find_many_binds_bounds_status_and_pagination():
    lower = datetime(2024, 1, 1, tzinfo=timezone.utc)
    upper = datetime(2024, 1, 2, tzinfo=timezone.utc)
    connection = _make_connection()
    connection.fetch = AsyncMock(return_value=[_ticket_row(), _ticket_row()])
    repository = TicketRepository(DummyPool(connection))

    tickets = await repository.find_many(
        bounds=CreatedAtBounds(lower=lower, upper=upper),
        status=TicketStatus.IN_PROGRESS,
        skip=20,
        take=5,
    )

    assert len(tickets) == 2
    query, *args = connection.fetch.await_args.args
    assert "ORDER BY created_at DESC" in query
    assert args == [lower, upper, "IN_PROGRESS", 20, 5]


@pytest.mark.asyncio
async def test_find_many_without_filters_binds_nulls():
    connection = _make_connection()
    connection.fetch = AsyncMock(return_value=[])
    repository = TicketRepository(DummyPool(connection))

    await repository.find_many(bounds=CreatedAtBounds())

    _, *args = connection.fetch.await_args.args
    assert args == [None, None, None, 0, 10]


@pytest.mark.asyncio
async def test_create_inserts_new_ticket():
    ticket_id = uuid4()
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=_ticket_row(id=ticket_id))
    repository = TicketRepository(DummyPool(connection))

    ticket = await repository.create(ticket_id=ticket_id, title="Laptop", content="Screen flickers", status=TicketStatus.NEW)

    assert ticket.id == ticket_id
    assert connection.fetchrow.await_args.args[1:] == (ticket_id, "Laptop", "Screen flickers", "NEW")


@pytest.mark.asyncio
async def test_update_returns_none_when_ticket_missing():
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=None)
    repository = TicketRepository(DummyPool(connection))

    assert await repository.update(uuid4(), status=TicketStatus.IN_PROGRESS) is None


@pytest.mark.asyncio
async def test_update_many_reports_affected_rows():
    connection = _make_connection()
    connection.execute = AsyncMock(return_value="UPDATE 3")
    repository = TicketRepository(DummyPool(connection))

    affected = await repository.update_many(
        where_status=TicketStatus.IN_PROGRESS,
        status=TicketStatus.CANCELLED,
        comment="bulk cancel",
    )

    assert affected == 3
    assert connection.execute.await_args.args[1:] == ("IN_PROGRESS", "CANCELLED", "bulk cancel")


@pytest.mark.asyncio
async def test_count_can_lock_rows():
    connection = _make_connection()
    connection.fetchval = AsyncMock(return_value=4)
    repository = TicketRepository(DummyPool(connection))

    assert await repository.count(status=TicketStatus.IN_PROGRESS) == 4
    assert "FOR UPDATE" not in connection.fetchval.await_args.args[0]

    assert await repository.count(status=TicketStatus.IN_PROGRESS, for_update=True) == 4
    assert "FOR UPDATE" in connection.fetchval.await_args.args[0]


@pytest.mark.asyncio
async def test_transaction_binds_single_connection():
    connection = _make_connection()
    connection.fetchval = AsyncMock(return_value=1)
    connection.execute = AsyncMock(return_value="UPDATE 1")
    pool = DummyPool(connection)
    repository = TicketRepository(pool)

    async with repository.transaction() as bound:
        await bound.count(status=TicketStatus.IN_PROGRESS, for_update=True)
        await bound.update_many(where_status=TicketStatus.IN_PROGRESS, status=TicketStatus.CANCELLED)

    assert pool.acquired == 1
    connection.transaction.assert_called_once()


@pytest.mark.asyncio
async def test_update_refreshes_timestamp_and_keeps_comment_when_none():
    ticket_id = uuid4()
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=_ticket_row(id=ticket_id, status="IN_PROGRESS"))
    repository = TicketRepository(DummyPool(connection))

    ticket = await repository.update(ticket_id, status=TicketStatus.IN_PROGRESS)

    assert ticket is not None
    assert ticket.status == TicketStatus.IN_PROGRESS
    query, *args = connection.fetchrow.await_args.args
    assert args == [ticket_id, "IN_PROGRESS", None]
    assert "updated_at = CURRENT_TIMESTAMP" in query
    assert "comment = COALESCE($3, comment)" in query
    assert "WHERE id = $1" in query


@pytest.mark.asyncio
async def test_update_binds_comment_on_completion():
    ticket_id = uuid4()
    connection = _make_connection()
    connection.fetchrow = AsyncMock(return_value=_ticket_row(id=ticket_id, status="COMPLETED", comment="Fixed"))
    repository = TicketRepository(DummyPool(connection))

    ticket = await repository.update(ticket_id, status=TicketStatus.COMPLETED, comment="Fixed")

    assert ticket.comment == "Fixed"
    assert connection.fetchrow.await_args.args[1:] == (ticket_id, "COMPLETED", "Fixed")


@pytest.mark.asyncio
async def test_update_many_refreshes_timestamp_of_matching_rows():
    connection = _make_connection()
    connection.execute = AsyncMock(return_value="UPDATE 2")
    repository = TicketRepository(DummyPool(connection))

    await repository.update_many(where_status=TicketStatus.IN_PROGRESS, status=TicketStatus.CANCELLED, comment="bulk")

    query = connection.execute.await_args.args[0]
    assert "updated_at = CURRENT_TIMESTAMP" in query
    assert "comment = COALESCE($3, comment)" in query
    assert "WHERE status = $1" in query
