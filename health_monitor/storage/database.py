"""
asyncpg pool for the outreach history store.

Sessions run with ``timezone=UTC`` so TIMESTAMPTZ columns compare and
round-trip against the aware UTC datetimes the engine produces.
"""

import logging
from types import TracebackType
from typing import Any

import asyncpg

from health_monitor.config.settings import get_settings

logger = logging.getLogger(__name__)

APPLICATION_NAME = "llmfeed-health-monitor"


class Database:
    """
    Connection pool used by ``OutreachRepository``.

    Usage:
        async with Database() as db:
            await OutreachRepository(db).create_tables()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()
        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                server_settings={
                    "application_name": APPLICATION_NAME,
                    "timezone": "UTC",
                },
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Cannot open outreach history database: %s", e)
            raise
        logger.info("Outreach history database connected")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the asyncpg status string."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)
