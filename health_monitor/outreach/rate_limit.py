"""Rate limiting over the append-only outreach history.

Stateless: the engine keeps no counters, so the result is only as good
as the history the caller supplies. Check-then-append is not atomic;
callers running dispatches concurrently must serialize per
``(feed_id, channel)`` (``OutreachService`` does this with a lock map).
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from health_monitor.outreach.schemas import OutreachHistory

DEFAULT_WINDOW = timedelta(hours=24)
DEFAULT_RATE_LIMIT = 1


def recent_outreach(
    history: Iterable[OutreachHistory],
    feed_id: str,
    channel: str,
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> list[OutreachHistory]:
    """Entries for this feed and channel strictly inside the window."""
    since = now - window
    return [
        h for h in history
        if h.feed_id == feed_id and h.channel == channel and h.timestamp > since
    ]


def is_rate_limited(
    history: Iterable[OutreachHistory],
    feed_id: str,
    channel: str,
    now: datetime,
    limit: int = DEFAULT_RATE_LIMIT,
    window: timedelta = DEFAULT_WINDOW,
) -> bool:
    """Check whether another attempt would exceed ``limit`` within ``window``.

    Args:
        history: Outreach history (any feeds/channels; filtered here).
        feed_id: Target feed.
        channel: Target channel.
        now: Reference time for the rolling window.
        limit: Max attempts allowed per window. Values below 1 count as 1.
        window: Rolling window length.

    Returns:
        True if the attempt must be rejected without dispatching.
    """
    count = len(recent_outreach(history, feed_id, channel, now, window))
    return count >= max(limit, 1)


def describe_window(window: timedelta) -> str:
    """Short label for log and response text, e.g. ``24h``."""
    hours = window.total_seconds() / 3600
    if hours.is_integer():
        return f"{int(hours)}h"
    return f"{window.total_seconds() / 60:g}m"
