"""
structlog configuration for the outreach engine.

Stdlib loggers (``logging.getLogger(__name__)``) are routed through
structlog so every record carries the bound ``feed_id`` and ``channel``
of the dispatch in progress. JSON in production, console otherwise.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import Processor

from health_monitor.config.settings import get_settings

# Libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg")


def setup_logging(level: str | None = None) -> None:
    """
    Route stdlib logging through structlog.

    Args:
        level: Log level name overriding ``LOG_LEVEL`` (the CLI's ``--debug``).
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if settings.is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def outreach_context(feed_id: str, channel: str) -> Iterator[None]:
    """Bind ``feed_id`` and ``channel`` to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(feed_id=feed_id, channel=channel):
        yield
