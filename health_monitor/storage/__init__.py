"""Storage layer - PostgreSQL connection pool for outreach history."""

from health_monitor.storage.database import Database

__all__ = ["Database"]
