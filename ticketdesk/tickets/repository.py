from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from uuid import UUID

import asyncpg

from .filters import CreatedAtBounds
from .models import Ticket
from .state import TicketStatus

_TICKET_COLUMNS = "id, title, content, comment, status, created_at, updated_at"


class TicketRepository:
    """Data access layer for ticket records.

    A repository built from a pool acquires a connection per call. The
    repository yielded by :meth:`transaction` is bound to one connection and
    runs every call inside that transaction.
    """

    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id UUID PRIMARY KEY,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        comment TEXT NULL,
        status TEXT NOT NULL DEFAULT 'NEW',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _CREATE_INDEXES_SQL = """
    CREATE INDEX IF NOT EXISTS tickets_created_at_idx ON tickets (created_at DESC);
    CREATE INDEX IF NOT EXISTS tickets_status_idx ON tickets (status)
    """

    _INSERT_TICKET_SQL = f"""
    INSERT INTO tickets (id, title, content, status)
    VALUES ($1, $2, $3, $4)
    RETURNING {_TICKET_COLUMNS}
    """

    _SELECT_TICKET_SQL = f"""
    SELECT {_TICKET_COLUMNS}
    FROM tickets
    WHERE id = $1
    """

    _LIST_TICKETS_SQL = f"""
    SELECT {_TICKET_COLUMNS}
    FROM tickets
    WHERE ($1::timestamptz IS NULL OR created_at >= $1::timestamptz)
      AND ($2::timestamptz IS NULL OR created_at < $2::timestamptz)
      AND ($3::text IS NULL OR status = $3::text)
    ORDER BY created_at DESC
    OFFSET $4
    LIMIT $5
    """

    _UPDATE_TICKET_SQL = f"""
    UPDATE tickets
    SET status = $2,
        comment = COALESCE($3, comment),
        updated_at = CURRENT_TIMESTAMP
    WHERE id = $1
    RETURNING {_TICKET_COLUMNS}
    """

    _UPDATE_MANY_SQL = """
    UPDATE tickets
    SET status = $2,
        comment = COALESCE($3, comment),
        updated_at = CURRENT_TIMESTAMP
    WHERE status = $1
    """

    _COUNT_SQL = """
    SELECT COUNT(*) FROM tickets WHERE status = $1
    """

    _COUNT_FOR_UPDATE_SQL = """
    SELECT COUNT(*) FROM (
        SELECT id FROM tickets WHERE status = $1 FOR UPDATE
    ) AS locked
    """

    def __init__(self, pool: asyncpg.Pool, *, connection: Any | None = None) -> None:
        self._pool = pool
        self._connection = connection

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[Any]:
        if self._connection is not None:
            yield self._connection
            return
        async with self._pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["TicketRepository"]:
        async with self._acquire() as connection:
            async with connection.transaction():
                yield TicketRepository(self._pool, connection=connection)

    async def ensure_schema(self) -> None:
        async with self._acquire() as connection:
            await connection.execute(self._CREATE_TICKETS_SQL)
            await connection.execute(self._CREATE_INDEXES_SQL)

    async def find_unique(self, ticket_id: UUID) -> Ticket | None:
        async with self._acquire() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, ticket_id)
            if row is None:
                return None
            return self._row_to_ticket(row)

    async def find_many(
        self,
        *,
        bounds: CreatedAtBounds,
        status: TicketStatus | None = None,
        skip: int = 0,
        take: int = 10,
    ) -> list[Ticket]:
        async with self._acquire() as connection:
            rows = await connection.fetch(
                self._LIST_TICKETS_SQL,
                bounds.lower,
                bounds.upper,
                None if status is None else status.value,
                skip,
                take,
            )
            return [self._row_to_ticket(row) for row in rows]

    async def create(self, *, ticket_id: UUID, title: str, content: str, status: TicketStatus) -> Ticket:
        async with self._acquire() as connection:
            row = await connection.fetchrow(self._INSERT_TICKET_SQL, ticket_id, title, content, status.value)
            if row is None:
                raise RuntimeError("Failed to insert ticket")
            return self._row_to_ticket(row)

    async def update(self, ticket_id: UUID, *, status: TicketStatus, comment: str | None = None) -> Ticket | None:
        async with self._acquire() as connection:
            row = await connection.fetchrow(self._UPDATE_TICKET_SQL, ticket_id, status.value, comment)
            if row is None:
                return None
            return self._row_to_ticket(row)

    async def update_many(
        self,
        *,
        where_status: TicketStatus,
        status: TicketStatus,
        comment: str | None = None,
    ) -> int:
        async with self._acquire() as connection:
            result = await connection.execute(self._UPDATE_MANY_SQL, where_status.value, status.value, comment)
        return _affected_rows(result)

    async def count(self, *, status: TicketStatus, for_update: bool = False) -> int:
        query = self._COUNT_FOR_UPDATE_SQL if for_update else self._COUNT_SQL
        async with self._acquire() as connection:
            value = await connection.fetchval(query, status.value)
        return int(value or 0)

    @staticmethod
    def _row_to_ticket(row: Any) -> Ticket:
        comment = row["comment"]
        return Ticket(
            id=_to_uuid(row["id"]),
            title=str(row["title"]),
            content=str(row["content"]),
            comment=None if comment is None else str(comment),
            status=TicketStatus(str(row["status"])),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


def _affected_rows(result: Any) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 3".
    if isinstance(result, str):
        tail = result.strip().rsplit(" ", 1)[-1]
        return int(tail) if tail.isdigit() else 0
    return int(result or 0)


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(str(value))
