"""Notification dispatcher: the single entry point for sending outreach.

Order of checks for every call:

1. Rate limit against the supplied history. Rejections never touch the
   network and are not reported as "would send" in dry-run mode.
2. Dry run: return a synthetic success without network I/O.
3. Route to the channel; an unknown channel is an unsuccessful action.

Every path returns one ``OutreachAction`` stamped with the same
timestamp, captured on entry. The dispatcher never raises.

Pattern: Orchestrator (like OutreachService), delegates to stateless channels.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from health_monitor.outreach.channels import (
    EmailChannel,
    GitHubIssueChannel,
    OutreachChannel,
    TwitterDMChannel,
)
from health_monitor.outreach.config import NotifierConfig
from health_monitor.outreach.rate_limit import describe_window, is_rate_limited
from health_monitor.outreach.schemas import (
    NotificationPayload,
    OutreachAction,
    OutreachHistory,
)

logger = logging.getLogger(__name__)

DRY_RUN_RESPONSE = "Dry run - notification not sent"


def build_channels(config: NotifierConfig) -> list[OutreachChannel]:
    """Create one channel per transport from the configured credentials.

    Channels without credentials are still created; they answer every
    send with a "not configured" action.
    """
    timeout = config.http_timeout_seconds
    return [
        GitHubIssueChannel(config.github_credentials(), timeout=timeout),
        EmailChannel(config.email_credentials(), timeout=timeout),
        TwitterDMChannel(config.twitter_credentials(), timeout=timeout),
    ]


class NotificationDispatcher:
    """Applies rate limiting and dry-run mode, then routes to a channel."""

    def __init__(
        self,
        config: NotifierConfig | None = None,
        channels: list[OutreachChannel] | None = None,
    ) -> None:
        self._config = config or NotifierConfig()
        if channels is None:
            channels = build_channels(self._config)
        self._channels: dict[str, OutreachChannel] = {ch.name: ch for ch in channels}

    @property
    def config(self) -> NotifierConfig:
        return self._config

    @property
    def channels(self) -> dict[str, OutreachChannel]:
        """Channels keyed by name (for inspection/testing)."""
        return self._channels

    async def send_notification(
        self,
        payload: NotificationPayload,
        history: Iterable[OutreachHistory],
    ) -> OutreachAction:
        """Send one notification, honoring rate limit and dry-run.

        Args:
            payload: Feed, health check, channel and optional report link.
            history: Outreach history for rate limiting. Only entries for
                this feed and channel inside the window are counted.

        Returns:
            The outcome of the attempt.
        """
        feed = payload.feed
        channel = payload.channel
        timestamp = datetime.now(timezone.utc)
        config = self._config

        if is_rate_limited(
            history,
            feed.id,
            channel,
            timestamp,
            limit=config.rate_limit,
            window=config.rate_limit_window,
        ):
            window = describe_window(config.rate_limit_window)
            logger.info(
                "Rate limited: %s already contacted via %s in last %s",
                feed.id, channel, window,
            )
            return OutreachAction(
                feed_id=feed.id,
                channel=channel,
                timestamp=timestamp,
                success=False,
                response=f"Rate limited: already contacted in last {window}",
                outcome="rate_limited",
            )

        if config.dry_run:
            logger.info(
                "[DRY RUN] Would send %s notification for %s", channel, feed.url,
            )
            return OutreachAction(
                feed_id=feed.id,
                channel=channel,
                timestamp=timestamp,
                success=True,
                response=DRY_RUN_RESPONSE,
                outcome="dry_run",
            )

        target = self._channels.get(channel)
        if target is None:
            logger.error("Unknown outreach channel %r for feed %s", channel, feed.id)
            return OutreachAction(
                feed_id=feed.id,
                channel=channel,
                timestamp=timestamp,
                success=False,
                response=f"Unknown channel: {channel}",
                outcome="unknown_channel",
            )

        try:
            action = await target.send(payload, timestamp)
        except Exception as e:
            # Channels convert their own failures; this guards custom ones
            logger.error(
                "Channel %s raised for feed %s: %s", channel, feed.id, e,
            )
            action = OutreachAction(
                feed_id=feed.id,
                channel=channel,
                timestamp=timestamp,
                success=False,
                response=f"Unexpected {channel} error: {e}",
                outcome="failed",
            )

        self._record_delivery(action)
        return action

    def _record_delivery(self, action: OutreachAction) -> None:
        """Log the dispatch outcome."""
        if action.success:
            logger.info(
                "Outreach sent to %s via %s: %s",
                action.feed_id, action.channel, action.response,
            )
        elif action.outcome == "not_configured":
            logger.info(
                "Outreach skipped for %s via %s: %s",
                action.feed_id, action.channel, action.response,
            )
        else:
            logger.warning(
                "Outreach failed for %s via %s: %s",
                action.feed_id, action.channel, action.response,
            )


async def send_notification(
    payload: NotificationPayload,
    config: NotifierConfig,
    history: Iterable[OutreachHistory],
) -> OutreachAction:
    """Send one notification using channels built from ``config``."""
    dispatcher = NotificationDispatcher(config=config)
    return await dispatcher.send_notification(payload, history)
