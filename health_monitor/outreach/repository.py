"""Outreach history storage.

History is append-only: these stores insert and read, never update or
delete. ``OutreachStore`` is the interface the service depends on;
``MemoryOutreachStore`` backs tests and one-off runs, and
``OutreachRepository`` persists to PostgreSQL via asyncpg.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

from health_monitor.outreach.schemas import OutreachHistory
from health_monitor.storage.database import Database

logger = logging.getLogger(__name__)


@runtime_checkable
class OutreachStore(Protocol):
    """Durable, authoritative outreach history."""

    async def save_outreach_history(self, entry: OutreachHistory) -> None:
        ...

    async def get_outreach_history(self, feed_id: str) -> list[OutreachHistory]:
        ...

    async def get_recent_outreach(
        self, feed_id: str, channel: str, within: timedelta,
    ) -> list[OutreachHistory]:
        ...


class MemoryOutreachStore:
    """In-process outreach history, lost on restart."""

    def __init__(self, entries: list[OutreachHistory] | None = None) -> None:
        self._entries: list[OutreachHistory] = list(entries or [])

    async def save_outreach_history(self, entry: OutreachHistory) -> None:
        self._entries.append(entry)

    async def get_outreach_history(self, feed_id: str) -> list[OutreachHistory]:
        return [h for h in self._entries if h.feed_id == feed_id]

    async def get_recent_outreach(
        self, feed_id: str, channel: str, within: timedelta,
    ) -> list[OutreachHistory]:
        since = datetime.now(timezone.utc) - within
        return [
            h for h in self._entries
            if h.feed_id == feed_id and h.channel == channel and h.timestamp > since
        ]

    def __len__(self) -> int:
        return len(self._entries)


class OutreachRepository:
    """PostgreSQL-backed outreach history.

    Rows live in the ``outreach_history`` table, indexed on
    ``(feed_id, channel, timestamp)`` for rate-limit lookups.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the outreach_history table and index if missing."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS outreach_history (
                id BIGSERIAL PRIMARY KEY,
                feed_id TEXT NOT NULL,
                channel TEXT NOT NULL,
                timestamp TIMESTAMPTZ NOT NULL,
                success BOOLEAN NOT NULL,
                response TEXT,
                message_id TEXT,
                url TEXT
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_outreach_feed_channel
            ON outreach_history (feed_id, channel, timestamp)
        """)
        logger.info("outreach_history table ready")

    async def save_outreach_history(self, entry: OutreachHistory) -> None:
        """Append one history entry.

        Args:
            entry: Outreach attempt to persist.
        """
        sql = """
            INSERT INTO outreach_history (
                feed_id, channel, timestamp, success, response, message_id, url
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        """
        await self._db.execute(
            sql,
            entry.feed_id,
            entry.channel,
            entry.timestamp,
            entry.success,
            entry.response,
            entry.message_id,
            entry.url,
        )

    async def get_outreach_history(self, feed_id: str) -> list[OutreachHistory]:
        """All attempts for a feed, newest first."""
        sql = """
            SELECT * FROM outreach_history
            WHERE feed_id = $1
            ORDER BY timestamp DESC
        """
        rows = await self._db.fetch(sql, feed_id)
        return [_row_to_history(row) for row in rows]

    async def get_recent_outreach(
        self, feed_id: str, channel: str, within: timedelta,
    ) -> list[OutreachHistory]:
        """Attempts for a feed and channel newer than ``now - within``.

        Args:
            feed_id: Feed identifier.
            channel: Channel name.
            within: Look-back window.

        Returns:
            Matching entries, newest first.
        """
        since = datetime.now(timezone.utc) - within
        sql = """
            SELECT * FROM outreach_history
            WHERE feed_id = $1 AND channel = $2 AND timestamp > $3
            ORDER BY timestamp DESC
        """
        rows = await self._db.fetch(sql, feed_id, channel, since)
        return [_row_to_history(row) for row in rows]


def _row_to_history(row: Any) -> OutreachHistory:
    """Convert an asyncpg Record to an OutreachHistory."""
    return OutreachHistory(
        feed_id=row["feed_id"],
        channel=row["channel"],
        timestamp=row["timestamp"],
        success=row["success"],
        response=row.get("response"),
        message_id=row.get("message_id"),
        url=row.get("url"),
    )
