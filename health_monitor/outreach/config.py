"""Outreach configuration.

Holds per-channel credentials, the per-feed rate limit, dry-run mode
and the notification thresholds. Credentials are read from their usual
environment variable names (``GITHUB_TOKEN``, ``SMTP_HOST``, ...). A
channel whose bundle is incomplete is simply unavailable; that is a
valid deployment state, not an error.
"""

from dataclasses import dataclass
from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SMTP_IMPLICIT_TLS_PORT = 465


@dataclass(frozen=True)
class GitHubCredentials:
    """Token used to open issues on feed repositories."""

    token: str


@dataclass(frozen=True)
class EmailCredentials:
    """SMTP relay used to mail feed owners."""

    host: str
    port: int
    user: str
    password: str
    sender: str

    @property
    def secure(self) -> bool:
        """Implicit TLS is used on the SMTPS port; STARTTLS elsewhere."""
        return self.port == SMTP_IMPLICIT_TLS_PORT


@dataclass(frozen=True)
class TwitterCredentials:
    """Twitter API v2 credentials. DMs authenticate with the access token."""

    api_key: str
    api_secret: str
    access_token: str
    access_token_secret: str


ChannelCredentials = GitHubCredentials | EmailCredentials | TwitterCredentials


class NotifierConfig(BaseSettings):
    """Configuration for outreach decisions and dispatch."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub issues
    github_token: str | None = None

    # Email (SMTP)
    smtp_host: str | None = None
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_from: str | None = None

    # Twitter DMs
    twitter_api_key: str | None = None
    twitter_api_secret: str | None = None
    twitter_access_token: str | None = None
    twitter_access_token_secret: str | None = None

    # Rate limiting: max messages per feed + channel inside the window
    rate_limit: int = Field(
        default=1,
        ge=1,
        description="Max outreach attempts per (feed, channel) per window",
    )
    rate_limit_window_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 30,
        description="Rolling rate-limit window in hours",
    )

    dry_run: bool = Field(
        default=False,
        description="Run the full decision path but skip the final send",
    )

    # Notification thresholds
    min_score: int | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Skip feeds scoring at or above this value",
    )
    require_errors: bool = Field(
        default=False,
        description="Only notify feeds with at least one validation error",
    )

    # Timeouts
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    dispatch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Deadline for a single dispatch, including all its API calls",
    )

    @property
    def rate_limit_window(self) -> timedelta:
        return timedelta(hours=self.rate_limit_window_hours)

    def github_credentials(self) -> GitHubCredentials | None:
        if not self.github_token:
            return None
        return GitHubCredentials(token=self.github_token)

    def email_credentials(self) -> EmailCredentials | None:
        if not (self.smtp_host and self.smtp_user and self.smtp_pass and self.smtp_from):
            return None
        return EmailCredentials(
            host=self.smtp_host,
            port=self.smtp_port,
            user=self.smtp_user,
            password=self.smtp_pass,
            sender=self.smtp_from,
        )

    def twitter_credentials(self) -> TwitterCredentials | None:
        if not (
            self.twitter_api_key
            and self.twitter_api_secret
            and self.twitter_access_token
            and self.twitter_access_token_secret
        ):
            return None
        return TwitterCredentials(
            api_key=self.twitter_api_key,
            api_secret=self.twitter_api_secret,
            access_token=self.twitter_access_token,
            access_token_secret=self.twitter_access_token_secret,
        )
