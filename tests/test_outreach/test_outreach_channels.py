"""Tests for GitHub, email and Twitter outreach channels."""

from email.message import EmailMessage
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from health_monitor.feeds.schemas import ContactInfo, FeedSource
from health_monitor.outreach.channels import (
    EmailChannel,
    GitHubIssueChannel,
    TwitterDMChannel,
)
from health_monitor.outreach.config import (
    EmailCredentials,
    GitHubCredentials,
    TwitterCredentials,
)
from health_monitor.outreach.schemas import NotificationPayload
from health_monitor.outreach.templates import EMAIL_SUBJECT, GITHUB_ISSUE_TITLE

# ── Fixtures ────────────────────────────────────────────


@pytest.fixture
def github_creds():
    return GitHubCredentials(token="ghp_test")


@pytest.fixture
def email_creds():
    return EmailCredentials(
        host="smtp.example.com",
        port=587,
        user="bot",
        password="secret",
        sender="LLMFeed Bot <bot@llm-feed.org>",
    )


@pytest.fixture
def twitter_creds():
    return TwitterCredentials(
        api_key="key",
        api_secret="secret",
        access_token="access",
        access_token_secret="access-secret",
    )


def _payload(feed, check, channel):
    return NotificationPayload(feed=feed, health_check=check, channel=channel)


def _response(status_code: int = 200, json=None, text=None, method="POST") -> httpx.Response:
    """Create an httpx.Response bound to a dummy request."""
    kwargs = {}
    if json is not None:
        kwargs["json"] = json
    elif text is not None:
        kwargs["text"] = text
    return httpx.Response(
        status_code=status_code,
        request=httpx.Request(method, "http://test"),
        **kwargs,
    )


def _patch_client(mock_client_cls, mock_client):
    mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)


# ── GitHubIssueChannel ──────────────────────────────────


class TestGitHubIssueChannel:
    @pytest.mark.asyncio
    async def test_creates_issue(self, github_creds, github_feed, broken_check, now):
        channel = GitHubIssueChannel(github_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.post.return_value = _response(
                201,
                json={"number": 42, "html_url": "https://github.com/octo/tools/issues/42"},
            )
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(github_feed, broken_check, "github"), now)

        assert action.success is True
        assert action.outcome == "sent"
        assert action.response == "Created issue #42"
        assert action.message_id == "42"
        assert action.url == "https://github.com/octo/tools/issues/42"
        assert action.timestamp == now
        assert action.channel == "github"
        assert action.feed_id == "feed_gh"

        call = mock_client.post.call_args
        assert call.args[0] == "https://api.github.com/repos/octo/tools/issues"
        body = call.kwargs["json"]
        assert body["title"] == GITHUB_ISSUE_TITLE
        assert body["labels"] == ["llmfeed", "bot"]
        assert "MISSING_FEED_TYPE" in body["body"]
        headers = call.kwargs["headers"]
        assert headers["Authorization"] == "Bearer ghp_test"
        assert headers["Accept"] == "application/vnd.github.v3+json"

    @pytest.mark.asyncio
    async def test_missing_token_makes_no_request(self, github_feed, broken_check, now):
        channel = GitHubIssueChannel(None)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            action = await channel.send(_payload(github_feed, broken_check, "github"), now)

        assert action.success is False
        assert action.response == "No GitHub token configured"
        assert action.outcome == "not_configured"
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_repo(self, github_creds, email_feed, broken_check, now):
        channel = GitHubIssueChannel(github_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            action = await channel.send(_payload(email_feed, broken_check, "github"), now)

        assert action.success is False
        assert action.response == "No GitHub repo detected for this feed"
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error(self, github_creds, github_feed, broken_check, now):
        channel = GitHubIssueChannel(github_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.post.return_value = _response(410, text="Issues are disabled")
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(github_feed, broken_check, "github"), now)

        assert action.success is False
        assert action.outcome == "failed"
        assert action.response == "GitHub API error: 410 - Issues are disabled"

    @pytest.mark.asyncio
    async def test_network_exception(self, github_creds, github_feed, broken_check, now):
        channel = GitHubIssueChannel(github_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.post.side_effect = httpx.ConnectError("connection refused")
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(github_feed, broken_check, "github"), now)

        assert action.success is False
        assert action.response == "Failed to create issue: connection refused"

    def test_name(self, github_creds):
        assert GitHubIssueChannel(github_creds).name == "github"


# ── EmailChannel ────────────────────────────────────────


class TestEmailChannel:
    @pytest.mark.asyncio
    async def test_sends_with_starttls(self, email_creds, email_feed, broken_check, now):
        channel = EmailChannel(email_creds)

        with patch("health_monitor.outreach.channels.smtplib.SMTP") as mock_smtp_cls:
            smtp = mock_smtp_cls.return_value
            smtp.__enter__.return_value = smtp
            smtp.__exit__.return_value = False
            smtp.has_extn.return_value = True

            action = await channel.send(_payload(email_feed, broken_check, "email"), now)

        mock_smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "secret")
        smtp.send_message.assert_called_once()

        msg = smtp.send_message.call_args.args[0]
        assert isinstance(msg, EmailMessage)
        assert msg["To"] == "owner@example.com"
        assert msg["From"] == "LLMFeed Bot <bot@llm-feed.org>"
        assert msg["Subject"] == EMAIL_SUBJECT
        assert msg["Message-ID"].endswith("@llm-feed.org>")
        assert "QUICK FIXES:" in msg.get_content()

        assert action.success is True
        assert action.outcome == "sent"
        assert action.message_id == msg["Message-ID"]
        assert action.response == f"Email sent: {msg['Message-ID']}"

    @pytest.mark.asyncio
    async def test_implicit_tls_port(self, email_feed, broken_check, now):
        creds = EmailCredentials(
            host="smtp.example.com",
            port=465,
            user="bot",
            password="secret",
            sender="bot@llm-feed.org",
        )
        channel = EmailChannel(creds)

        with patch("health_monitor.outreach.channels.smtplib.SMTP_SSL") as mock_ssl_cls, \
                patch("health_monitor.outreach.channels.smtplib.SMTP") as mock_smtp_cls:
            smtp = mock_ssl_cls.return_value
            smtp.__enter__.return_value = smtp
            smtp.__exit__.return_value = False

            action = await channel.send(_payload(email_feed, broken_check, "email"), now)

        assert action.success is True
        mock_smtp_cls.assert_not_called()
        smtp.starttls.assert_not_called()
        smtp.login.assert_called_once_with("bot", "secret")

    @pytest.mark.asyncio
    async def test_smtp_failure(self, email_creds, email_feed, broken_check, now):
        channel = EmailChannel(email_creds)

        with patch("health_monitor.outreach.channels.smtplib.SMTP") as mock_smtp_cls:
            smtp = mock_smtp_cls.return_value
            smtp.__enter__.return_value = smtp
            smtp.__exit__.return_value = False
            smtp.has_extn.return_value = False
            smtp.login.side_effect = OSError("auth refused")

            action = await channel.send(_payload(email_feed, broken_check, "email"), now)

        assert action.success is False
        assert action.outcome == "failed"
        assert action.response == "Failed to send email: auth refused"
        smtp.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_configured(self, email_feed, broken_check, now):
        with patch("health_monitor.outreach.channels.smtplib.SMTP") as mock_smtp_cls:
            action = await EmailChannel(None).send(
                _payload(email_feed, broken_check, "email"), now,
            )

        assert action.success is False
        assert action.response == "No email configuration"
        mock_smtp_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_address(self, email_creds, twitter_feed, broken_check, now):
        with patch("health_monitor.outreach.channels.smtplib.SMTP") as mock_smtp_cls:
            action = await EmailChannel(email_creds).send(
                _payload(twitter_feed, broken_check, "email"), now,
            )

        assert action.success is False
        assert action.response == "No email address found for this feed"
        mock_smtp_cls.assert_not_called()


# ── TwitterDMChannel ────────────────────────────────────


class TestTwitterDMChannel:
    @pytest.mark.asyncio
    async def test_sends_dm(self, twitter_creds, twitter_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(
                200, json={"data": {"id": "12345", "username": "exampleorg"}}, method="GET",
            )
            mock_client.post.return_value = _response(
                201, json={"data": {"dm_event_id": "dm-1", "dm_conversation_id": "c-1"}},
            )
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(twitter_feed, broken_check, "twitter"), now)

        assert action.success is True
        assert action.response == "DM sent to @exampleorg"
        assert action.message_id == "dm-1"

        lookup = mock_client.get.call_args
        assert lookup.args[0] == "https://api.twitter.com/2/users/by/username/exampleorg"
        assert lookup.kwargs["headers"]["Authorization"] == "Bearer access"

        dm = mock_client.post.call_args
        assert dm.args[0] == "https://api.twitter.com/2/dm_conversations/with/12345/messages"
        assert dm.kwargs["json"]["text"].startswith("Hey! 👋 Your LLMFeed at")

    @pytest.mark.asyncio
    async def test_unknown_user_never_posts(self, twitter_creds, twitter_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(
                404, json={"title": "Not Found Error"}, method="GET",
            )
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(twitter_feed, broken_check, "twitter"), now)

        assert action.success is False
        assert action.response == "Could not find Twitter user: exampleorg"
        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_without_data(self, twitter_creds, twitter_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(
                200, json={"errors": [{"detail": "suspended"}]}, method="GET",
            )
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(twitter_feed, broken_check, "twitter"), now)

        assert action.response == "Could not find Twitter user: exampleorg"
        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_dm_rejected(self, twitter_creds, twitter_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(
                200, json={"data": {"id": "12345"}}, method="GET",
            )
            mock_client.post.return_value = _response(403, text="DMs closed")
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(twitter_feed, broken_check, "twitter"), now)

        assert action.success is False
        assert action.response == "Twitter DM failed: DMs closed"

    @pytest.mark.asyncio
    async def test_network_exception(self, twitter_creds, twitter_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.side_effect = httpx.ReadTimeout("timed out")
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(twitter_feed, broken_check, "twitter"), now)

        assert action.success is False
        assert action.response == "Twitter error: timed out"

    @pytest.mark.asyncio
    async def test_handle_normalized(self, twitter_creds, email_feed, broken_check, now):
        channel = TwitterDMChannel(twitter_creds)

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(404, json={}, method="GET")
            _patch_client(mock_client_cls, mock_client)

            action = await channel.send(_payload(email_feed, broken_check, "twitter"), now)

        assert mock_client.get.call_args.args[0].endswith("/users/by/username/example")
        assert action.response == "Could not find Twitter user: example"

    @pytest.mark.asyncio
    async def test_not_configured(self, twitter_feed, broken_check, now):
        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            action = await TwitterDMChannel(None).send(
                _payload(twitter_feed, broken_check, "twitter"), now,
            )

        assert action.response == "No Twitter configuration"
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handle", ["@", "  @ ", "   "])
    async def test_blank_handle_makes_no_request(
        self, twitter_creds, broken_check, now, handle,
    ):
        feed = FeedSource(
            id="feed_blank",
            url="https://example.net/.well-known/mcp.llmfeed.json",
            contact=ContactInfo(twitter=handle),
        )

        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            action = await TwitterDMChannel(twitter_creds).send(
                _payload(feed, broken_check, "twitter"), now,
            )

        assert action.success is False
        assert action.outcome == "not_configured"
        assert action.response == "No Twitter handle found for this feed"
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_handle(self, twitter_creds, github_feed, broken_check, now):
        with patch("health_monitor.outreach.channels.httpx.AsyncClient") as mock_client_cls:
            action = await TwitterDMChannel(twitter_creds).send(
                _payload(github_feed, broken_check, "twitter"), now,
            )

        assert action.response == "No Twitter handle found for this feed"
        mock_client_cls.assert_not_called()
