"""Outreach channel implementations.

Each channel wraps exactly one external transport (GitHub REST API,
SMTP, Twitter API v2) and turns every outcome into an ``OutreachAction``:
missing credentials or contact data, upstream errors and network
exceptions all come back as unsuccessful actions. Nothing
transport-specific escapes ``send``. There is no retry here; retrying
is the scheduler's call.

Pattern: Adapter (one per transport) behind the ``OutreachChannel`` ABC.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr

import httpx

from health_monitor.outreach.config import (
    EmailCredentials,
    GitHubCredentials,
    TwitterCredentials,
)
from health_monitor.outreach.schemas import (
    NotificationPayload,
    OutreachAction,
    OutreachOutcome,
)
from health_monitor.outreach.templates import render_message

logger = logging.getLogger(__name__)

USER_AGENT = "LLMFeed-Health-Monitor"

GITHUB_API_URL = "https://api.github.com"
GITHUB_ISSUE_LABELS: tuple[str, ...] = ("llmfeed", "bot")

TWITTER_API_URL = "https://api.twitter.com/2"


class OutreachChannel(ABC):
    """Abstract base for outreach delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier (e.g. 'github', 'email')."""

    @abstractmethod
    async def send(
        self, payload: NotificationPayload, timestamp: datetime,
    ) -> OutreachAction:
        """Deliver a notification through this channel.

        Args:
            payload: Feed, health check and optional report link.
            timestamp: Attempt time, stamped on the returned action.

        Returns:
            Exactly one action describing the outcome. Never raises.
        """

    def _action(
        self,
        payload: NotificationPayload,
        timestamp: datetime,
        success: bool,
        response: str,
        outcome: OutreachOutcome,
        message_id: str | None = None,
        url: str | None = None,
    ) -> OutreachAction:
        return OutreachAction(
            feed_id=payload.feed.id,
            channel=self.name,
            timestamp=timestamp,
            success=success,
            response=response,
            message_id=message_id,
            url=url,
            outcome=outcome,
        )


class GitHubIssueChannel(OutreachChannel):
    """Opens an issue on the repository hosting the feed.

    Creates a new ``httpx.AsyncClient`` per call (short-lived, no pooling).
    """

    def __init__(
        self,
        credentials: GitHubCredentials | None,
        timeout: float = 10.0,
        api_url: str = GITHUB_API_URL,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._api_url = api_url.rstrip("/")

    @property
    def name(self) -> str:
        return "github"

    def _build_request(self, payload: NotificationPayload) -> dict:
        """Build the issue creation body."""
        message = render_message(
            "github", payload.feed, payload.health_check, payload.report_url,
        )
        return {
            "title": message.subject,
            "body": message.body,
            "labels": list(GITHUB_ISSUE_LABELS),
        }

    async def send(
        self, payload: NotificationPayload, timestamp: datetime,
    ) -> OutreachAction:
        if self._credentials is None:
            return self._action(
                payload, timestamp, False,
                "No GitHub token configured", "not_configured",
            )

        repo = payload.feed.github_repo
        if repo is None:
            return self._action(
                payload, timestamp, False,
                "No GitHub repo detected for this feed", "not_configured",
            )

        url = f"{self._api_url}/repos/{repo.owner}/{repo.repo}/issues"
        headers = {
            "Authorization": f"Bearer {self._credentials.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    url, json=self._build_request(payload), headers=headers,
                )
                if not resp.is_success:
                    logger.warning(
                        "GitHub returned %d creating issue on %s/%s",
                        resp.status_code, repo.owner, repo.repo,
                    )
                    return self._action(
                        payload, timestamp, False,
                        f"GitHub API error: {resp.status_code} - {resp.text}",
                        "failed",
                    )
                issue = resp.json()
        except Exception as e:
            logger.warning(
                "GitHub issue creation failed for %s/%s: %s",
                repo.owner, repo.repo, e,
            )
            return self._action(
                payload, timestamp, False,
                f"Failed to create issue: {e}", "failed",
            )

        number = issue.get("number")
        return self._action(
            payload, timestamp, True,
            f"Created issue #{number}", "sent",
            message_id=str(number),
            url=issue.get("html_url"),
        )


class EmailChannel(OutreachChannel):
    """Mails the feed owner through an SMTP relay.

    ``smtplib`` is blocking, so delivery runs in a worker thread.
    Port 465 uses implicit TLS; other ports upgrade with STARTTLS when
    the server offers it.
    """

    def __init__(
        self,
        credentials: EmailCredentials | None,
        timeout: float = 10.0,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "email"

    def _build_message(self, payload: NotificationPayload, recipient: str) -> EmailMessage:
        creds = self._credentials
        rendered = render_message(
            "email", payload.feed, payload.health_check, payload.report_url,
        )

        msg = EmailMessage()
        msg["From"] = creds.sender
        msg["To"] = recipient
        msg["Subject"] = rendered.subject
        domain = parseaddr(creds.sender)[1].rpartition("@")[2]
        msg["Message-ID"] = make_msgid(domain=domain or None)
        msg.set_content(rendered.body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        creds = self._credentials
        if creds.secure:
            smtp = smtplib.SMTP_SSL(creds.host, creds.port, timeout=self._timeout)
        else:
            smtp = smtplib.SMTP(creds.host, creds.port, timeout=self._timeout)

        with smtp:
            if not creds.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
            smtp.login(creds.user, creds.password)
            smtp.send_message(msg)

    async def send(
        self, payload: NotificationPayload, timestamp: datetime,
    ) -> OutreachAction:
        if self._credentials is None:
            return self._action(
                payload, timestamp, False,
                "No email configuration", "not_configured",
            )

        contact = payload.feed.contact
        if contact is None or not contact.email:
            return self._action(
                payload, timestamp, False,
                "No email address found for this feed", "not_configured",
            )

        try:
            msg = self._build_message(payload, contact.email)
            await asyncio.to_thread(self._deliver, msg)
        except Exception as e:
            logger.warning(
                "Email to owner of feed %s failed: %s", payload.feed.id, e,
            )
            return self._action(
                payload, timestamp, False,
                f"Failed to send email: {e}", "failed",
            )

        message_id = msg["Message-ID"]
        return self._action(
            payload, timestamp, True,
            f"Email sent: {message_id}", "sent",
            message_id=message_id,
        )


class TwitterDMChannel(OutreachChannel):
    """Sends a direct message via the Twitter API v2.

    Two calls: resolve the handle to a user id, then post to the DM
    conversation with that user. If the lookup fails the send is never
    attempted. The recipient must accept DMs from the bot account.
    """

    def __init__(
        self,
        credentials: TwitterCredentials | None,
        timeout: float = 10.0,
        api_url: str = TWITTER_API_URL,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._api_url = api_url.rstrip("/")

    @property
    def name(self) -> str:
        return "twitter"

    async def send(
        self, payload: NotificationPayload, timestamp: datetime,
    ) -> OutreachAction:
        if self._credentials is None:
            return self._action(
                payload, timestamp, False,
                "No Twitter configuration", "not_configured",
            )

        contact = payload.feed.contact
        handle = (contact.twitter or "").strip().lstrip("@") if contact else ""
        if not handle:
            return self._action(
                payload, timestamp, False,
                "No Twitter handle found for this feed", "not_configured",
            )

        text = render_message("twitter", payload.feed, payload.health_check).body
        headers = {"Authorization": f"Bearer {self._credentials.access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                user_resp = await client.get(
                    f"{self._api_url}/users/by/username/{handle}", headers=headers,
                )
                user_id = None
                if user_resp.is_success:
                    user_id = (user_resp.json().get("data") or {}).get("id")
                if not user_id:
                    logger.info(
                        "Twitter lookup for @%s returned %d", handle, user_resp.status_code,
                    )
                    return self._action(
                        payload, timestamp, False,
                        f"Could not find Twitter user: {handle}", "failed",
                    )

                dm_resp = await client.post(
                    f"{self._api_url}/dm_conversations/with/{user_id}/messages",
                    json={"text": text},
                    headers=headers,
                )
                if not dm_resp.is_success:
                    logger.warning(
                        "Twitter DM to @%s returned %d", handle, dm_resp.status_code,
                    )
                    return self._action(
                        payload, timestamp, False,
                        f"Twitter DM failed: {dm_resp.text}", "failed",
                    )
                event = dm_resp.json().get("data") or {}
        except Exception as e:
            logger.warning("Twitter DM to @%s failed: %s", handle, e)
            return self._action(
                payload, timestamp, False, f"Twitter error: {e}", "failed",
            )

        return self._action(
            payload, timestamp, True,
            f"DM sent to @{handle}", "sent",
            message_id=event.get("dm_event_id"),
        )
