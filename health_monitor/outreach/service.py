"""Outreach service: one scheduler step from health check to persisted history.

Applies the notification policy, picks a channel, serializes dispatches
per ``(feed_id, channel)`` so the rate-limit check and the history
append happen as one unit, enforces a dispatch deadline, and appends
the resulting action to the store.

Rate-limited rejections are not persisted: they are not attempts, and
recording them would keep pushing the window forward for a feed that a
frequent scheduler re-evaluates.
"""

import asyncio
import logging
import time
from collections import Counter
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from health_monitor.feeds.schemas import FeedSource, HealthCheck
from health_monitor.observability.logging import outreach_context
from health_monitor.observability.metrics import MetricsCollector, get_metrics
from health_monitor.outreach.config import NotifierConfig
from health_monitor.outreach.dispatcher import NotificationDispatcher
from health_monitor.outreach.policy import select_best_channel, should_notify
from health_monitor.outreach.repository import OutreachStore
from health_monitor.outreach.schemas import NotificationPayload, OutreachAction

logger = logging.getLogger(__name__)

OutreachItem = tuple[FeedSource, HealthCheck] | tuple[FeedSource, HealthCheck, str | None]


class OutreachService:
    """Orchestrator for policy, serialization, dispatch and persistence."""

    def __init__(
        self,
        config: NotifierConfig,
        store: OutreachStore,
        dispatcher: NotificationDispatcher | None = None,
        metrics: MetricsCollector | None = None,
        max_concurrency: int = 5,
    ) -> None:
        self._config = config
        self._store = store
        self._dispatcher = dispatcher or NotificationDispatcher(config=config)
        self._metrics = metrics or get_metrics()
        self._max_concurrency = max_concurrency
        # Dropped when the last holder or waiter for a key leaves
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Counter[tuple[str, str]] = Counter()

    @asynccontextmanager
    async def _serialized(self, key: tuple[str, str]) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    def _skip(self, feed: FeedSource, reason: str) -> None:
        logger.info("Skipping outreach for %s: %s", feed.id, reason)
        self._metrics.record_outreach("none", "skipped")

    async def notify(
        self,
        feed: FeedSource,
        health_check: HealthCheck,
        report_url: str | None = None,
    ) -> OutreachAction | None:
        """Contact a feed owner if the health check warrants it.

        Args:
            feed: Feed to evaluate.
            health_check: Its latest health check.
            report_url: Link to a hosted health report, if any.

        Returns:
            The dispatch outcome, or None when the feed was skipped
            (opted out, healthy, filtered, or no contact channel).
        """
        if feed.opted_out:
            self._skip(feed, f"opted out ({feed.opt_out_reason or 'no reason given'})")
            return None

        if not should_notify(
            health_check,
            min_score=self._config.min_score,
            require_errors=self._config.require_errors,
        ):
            self._skip(feed, "health check does not warrant outreach")
            return None

        channel = select_best_channel(feed)
        if channel is None:
            self._skip(feed, "no contact channel available")
            return None

        payload = NotificationPayload(
            feed=feed,
            health_check=health_check,
            channel=channel,
            report_url=report_url,
        )

        async with self._serialized((feed.id, channel)):
            with outreach_context(feed.id, channel):
                started_at = datetime.now(timezone.utc)
                history = await self._store.get_recent_outreach(
                    feed.id, channel, self._config.rate_limit_window,
                )

                start = time.monotonic()
                try:
                    action = await asyncio.wait_for(
                        self._dispatcher.send_notification(payload, history),
                        timeout=self._config.dispatch_timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "Dispatch to %s via %s timed out after %.1fs",
                        feed.id, channel, self._config.dispatch_timeout_seconds,
                    )
                    action = OutreachAction(
                        feed_id=feed.id,
                        channel=channel,
                        timestamp=started_at,
                        success=False,
                        response=(
                            f"Timed out after {self._config.dispatch_timeout_seconds:g}s"
                        ),
                        outcome="timeout",
                    )
                latency = time.monotonic() - start

                if action.outcome != "rate_limited":
                    await self._store.save_outreach_history(action.to_history())

        self._metrics.record_outreach(action.channel, action.outcome, latency=latency)
        return action

    async def notify_batch(self, items: Iterable[OutreachItem]) -> list[OutreachAction]:
        """Run ``notify`` for many feeds, isolating failures per feed.

        Feeds are processed concurrently, bounded by ``max_concurrency``.

        Args:
            items: ``(feed, health_check)`` or ``(feed, health_check, report_url)``.

        Returns:
            Actions for the feeds that were dispatched, in input order.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(item: OutreachItem) -> OutreachAction | None:
            feed, check, *rest = item
            report_url = rest[0] if rest else None
            async with semaphore:
                try:
                    return await self.notify(feed, check, report_url)
                except Exception as e:
                    logger.error("Outreach for %s failed unexpectedly: %s", feed.id, e)
                    return None

        results = await asyncio.gather(*(run(item) for item in items))
        actions = [a for a in results if a is not None]

        sent = sum(1 for a in actions if a.success)
        logger.info(
            "Outreach batch complete: %d dispatched, %d successful", len(actions), sent,
        )
        return actions
