from __future__ import annotations

from dataclasses import dataclass

import asyncpg


class DatabaseNotConnectedError(RuntimeError):
    """Raised when the pool is used before :meth:`PostgresDatabase.connect`."""


@dataclass(slots=True)
class PostgresDatabase:
    """Explicit handle around the asyncpg pool.

    Opened once at application startup and closed at shutdown.
    """

    dsn: str
    min_size: int = 1
    max_size: int = 10
    _pool: asyncpg.Pool | None = None

    async def connect(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(dsn=self.dsn, min_size=self.min_size, max_size=self.max_size)
        return self._pool

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseNotConnectedError("Database pool has not been opened")
        return self._pool

    async def test_connection(self) -> bool:
        pool = await self.connect()
        async with pool.acquire() as connection:
            await connection.execute("SELECT 1")
        return True

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
