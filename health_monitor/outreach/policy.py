"""Notification policy: whether to contact a feed owner, and how.

Pure functions. ``should_notify`` filters out healthy feeds and applies
per-campaign thresholds; ``select_best_channel`` picks the most
actionable channel the feed has contact data for. The opt-out helpers
read the signals owners use to ask us to stay away; ``apply_opt_out``
marks a feed with them before it reaches ``OutreachService``, which
skips opted-out feeds.
"""

import dataclasses
from collections.abc import Iterable
from typing import Any

from health_monitor.feeds.schemas import FeedSource, HealthCheck

HEALTHY_SCORE = 80

MONITOR_USER_AGENTS: tuple[str, ...] = ("LLMFeed-Health-Monitor", "llm-feed-bot")

_META_OPT_OUT_KEYS = ("health-monitor", "llm-feed-bot")

ROBOTS_OPT_OUT_REASON = "robots.txt: Disallow for LLMFeed-Health-Monitor"


def should_notify(
    check: HealthCheck,
    min_score: int | None = None,
    require_errors: bool = False,
) -> bool:
    """Decide whether a health check warrants contacting the owner.

    A missing validation result is treated as "not known good" and falls
    through to True unless a filter excludes it.

    Args:
        check: Latest health check for the feed.
        min_score: Skip feeds scoring at or above this threshold.
        require_errors: Skip feeds without validation errors.

    Returns:
        True if the feed should be notified.
    """
    validation = check.validation
    score = validation.score if validation else 0

    if validation and validation.valid and score >= HEALTHY_SCORE:
        return False

    if min_score is not None and score >= min_score:
        return False

    if require_errors and not (validation and validation.error_count):
        return False

    return True


def select_best_channel(feed: FeedSource) -> str | None:
    """Pick the preferred channel for a feed.

    GitHub issues first (public and dismissible), then email, then
    Twitter DM. None means the feed cannot be contacted and should be
    skipped.
    """
    if feed.github_repo:
        return "github"

    contact = feed.contact
    if contact and contact.email:
        return "email"

    if contact and contact.twitter:
        return "twitter"

    return None


def robots_txt_opts_out(
    robots_txt: str,
    user_agents: Iterable[str] = MONITOR_USER_AGENTS,
) -> bool:
    """Check robots.txt for a ``Disallow: /`` aimed at the monitor.

    Only groups naming one of ``user_agents`` count; a wildcard group
    does not opt a site out of health checks.
    """
    agents = {ua.lower() for ua in user_agents}
    in_group = False
    group_has_rules = False

    for raw_line in robots_txt.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, value = (part.strip() for part in line.split(":", 1))
        key = key.lower()

        if key == "user-agent":
            # Consecutive User-agent lines share one rule group
            if group_has_rules:
                in_group = False
                group_has_rules = False
            if value.lower() in agents:
                in_group = True
        elif key in ("disallow", "allow"):
            group_has_rules = True
            if in_group and key == "disallow" and value == "/":
                return True

    return False


def feed_meta_opts_out(feed_json: Any) -> str | None:
    """Return the opt-out reason declared inside a feed document, if any."""
    if not isinstance(feed_json, dict):
        return None

    metadata = feed_json.get("metadata")
    if isinstance(metadata, dict) and any(
        metadata.get(key) == "noindex" for key in _META_OPT_OUT_KEYS
    ):
        return "Feed metadata: health-monitor=noindex"

    meta = feed_json.get("_meta")
    if isinstance(meta, dict) and any(
        meta.get(key) == "noindex" for key in _META_OPT_OUT_KEYS
    ):
        return "Feed _meta: health-monitor=noindex"

    return None


def apply_opt_out(
    feed: FeedSource,
    robots_txt: str | None = None,
    feed_document: Any = None,
) -> FeedSource:
    """Return ``feed`` marked opted out if robots.txt or the feed document says so.

    robots.txt wins over feed metadata. A feed already opted out is
    returned unchanged.
    """
    if feed.opted_out:
        return feed

    reason = None
    if robots_txt and robots_txt_opts_out(robots_txt):
        reason = ROBOTS_OPT_OUT_REASON
    elif feed_document is not None:
        reason = feed_meta_opts_out(feed_document)

    if reason is None:
        return feed
    return dataclasses.replace(feed, opted_out=True, opt_out_reason=reason)
