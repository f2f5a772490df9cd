"""Pytest fixtures for health monitor tests."""

from datetime import datetime, timezone

import pytest

from health_monitor.feeds.schemas import (
    ContactInfo,
    FeedSource,
    GitHubRepo,
    HealthCheck,
    ValidationIssue,
    ValidationResult,
)
from health_monitor.outreach.config import NotifierConfig

# Credentials and policy knobs that would otherwise leak in from a developer shell
_NOTIFIER_ENV = (
    "GITHUB_TOKEN",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_FROM",
    "TWITTER_API_KEY",
    "TWITTER_API_SECRET",
    "TWITTER_ACCESS_TOKEN",
    "TWITTER_ACCESS_TOKEN_SECRET",
    "RATE_LIMIT",
    "RATE_LIMIT_WINDOW_HOURS",
    "DRY_RUN",
    "MIN_SCORE",
    "REQUIRE_ERRORS",
)


@pytest.fixture(autouse=True)
def _clean_notifier_env(monkeypatch):
    for name in _NOTIFIER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 2, 7, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def broken_validation() -> ValidationResult:
    """Validation with two errors and a warning, in declaration order."""
    return ValidationResult(
        valid=False,
        score=40,
        issues=(
            ValidationIssue(
                type="error",
                code="MISSING_FEED_TYPE",
                message="Missing required field: feed_type",
                suggestion='Add "feed_type": "mcp" to your feed',
            ),
            ValidationIssue(
                type="warning",
                code="MISSING_ORIGIN",
                message="Missing metadata.origin field",
                suggestion='Add "origin": "https://yourdomain.com" to metadata',
            ),
            ValidationIssue(
                type="error",
                code="MISSING_METADATA",
                message="Missing required field: metadata",
            ),
        ),
        capabilities_count=3,
    )


@pytest.fixture
def broken_check(now, broken_validation) -> HealthCheck:
    return HealthCheck(
        timestamp=now,
        reachable=True,
        http_status=200,
        response_time_ms=120,
        validation=broken_validation,
    )


@pytest.fixture
def healthy_check(now) -> HealthCheck:
    return HealthCheck(
        timestamp=now,
        reachable=True,
        http_status=200,
        validation=ValidationResult(valid=True, score=85, capabilities_count=5),
    )


@pytest.fixture
def github_feed() -> FeedSource:
    return FeedSource(
        id="feed_gh",
        url="https://octo.github.io/tools/.well-known/mcp.llmfeed.json",
        github_repo=GitHubRepo(owner="octo", repo="tools"),
        contact=ContactInfo(email="owner@example.com"),
    )


@pytest.fixture
def email_feed() -> FeedSource:
    return FeedSource(
        id="feed_mail",
        url="https://example.com/.well-known/mcp.llmfeed.json",
        contact=ContactInfo(email="owner@example.com", twitter="@example"),
    )


@pytest.fixture
def twitter_feed() -> FeedSource:
    return FeedSource(
        id="feed_tw",
        url="https://example.org/.well-known/mcp.llmfeed.json",
        contact=ContactInfo(twitter="@exampleorg"),
    )


@pytest.fixture
def uncontactable_feed() -> FeedSource:
    return FeedSource(
        id="feed_none",
        url="https://nobody.example/.well-known/mcp.llmfeed.json",
    )


@pytest.fixture
def live_config() -> NotifierConfig:
    """All three channels configured, dry-run off."""
    return NotifierConfig(
        github_token="ghp_test",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="bot",
        smtp_pass="secret",
        smtp_from="LLMFeed Bot <bot@llm-feed.org>",
        twitter_api_key="key",
        twitter_api_secret="secret",
        twitter_access_token="access",
        twitter_access_token_secret="access-secret",
        dry_run=False,
    )
