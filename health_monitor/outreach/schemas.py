"""Schema definitions for outreach requests, results and history.

``OutreachHistory`` maps 1:1 to the ``outreach_history`` table and is
append-only: it is the sole input to rate limiting. ``OutreachAction`` is
what every dispatch attempt returns, including rejections, so callers
can persist it unconditionally.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from health_monitor.feeds.schemas import FeedSource, HealthCheck, parse_timestamp

NotificationChannel = Literal["github", "email", "twitter"]

# Priority order used when choosing a channel for a feed.
CHANNEL_PRIORITY: tuple[str, ...] = ("github", "email", "twitter")

VALID_CHANNELS: frozenset[str] = frozenset(CHANNEL_PRIORITY)

OutreachOutcome = Literal[
    "sent",
    "dry_run",
    "rate_limited",
    "not_configured",
    "failed",
    "unknown_channel",
    "timeout",
]


@dataclass(frozen=True)
class NotificationPayload:
    """Everything a dispatcher needs to contact one feed owner."""

    feed: FeedSource
    health_check: HealthCheck
    channel: str
    report_url: str | None = None
    fix_pr_url: str | None = None


@dataclass(frozen=True)
class OutreachHistory:
    """A persisted outreach attempt. Never mutated after insert."""

    feed_id: str
    channel: str
    timestamp: datetime
    success: bool
    response: str | None = None
    message_id: str | None = None
    url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", parse_timestamp(self.timestamp))

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "feed_id": self.feed_id,
            "channel": self.channel,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "response": self.response,
            "message_id": self.message_id,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutreachHistory":
        return cls(
            feed_id=data.get("feed_id", data.get("feedId")),
            channel=data["channel"],
            timestamp=parse_timestamp(data["timestamp"]),
            success=bool(data["success"]),
            response=data.get("response"),
            message_id=data.get("message_id", data.get("messageId")),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class OutreachAction:
    """Normalized result of one dispatch attempt.

    Attributes:
        feed_id: Feed the attempt was for.
        channel: Channel that was (or would have been) used.
        timestamp: Captured once when the attempt started.
        success: Whether the owner was (or in dry-run, would have been) contacted.
        response: Human-readable description of what happened.
        message_id: Provider identifier (issue number, Message-ID, DM event id).
        url: Canonical URL of the created artifact, when available.
        outcome: Machine-readable classification of the result.
        type: Discriminator, always ``"notification"``.
    """

    feed_id: str
    channel: str
    timestamp: datetime
    success: bool
    response: str | None = None
    message_id: str | None = None
    url: str | None = None
    outcome: OutreachOutcome = "sent"
    type: Literal["notification"] = field(default="notification", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", parse_timestamp(self.timestamp))

    def to_history(self) -> OutreachHistory:
        """Project this action onto the persisted history record."""
        return OutreachHistory(
            feed_id=self.feed_id,
            channel=self.channel,
            timestamp=self.timestamp,
            success=self.success,
            response=self.response,
            message_id=self.message_id,
            url=self.url,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.to_history().to_dict()
        data["type"] = self.type
        data["outcome"] = self.outcome
        return data
