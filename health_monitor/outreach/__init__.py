"""Outreach engine for notifying feed owners about health problems.

Components:
- NotifierConfig: Pydantic settings for credentials, rate limit and dry-run
- GitHubCredentials / EmailCredentials / TwitterCredentials: Channel capabilities
- should_notify / select_best_channel / apply_opt_out: Notification policy
- is_rate_limited: Pure rate-limit check over outreach history
- render_message / build_render_context: Channel message templates
- OutreachChannel / GitHubIssueChannel / EmailChannel / TwitterDMChannel: Transports
- NotificationDispatcher / send_notification: Rate limit, dry-run and routing
- OutreachStore / MemoryOutreachStore / OutreachRepository: History storage
- OutreachService: Policy + per-feed serialization + persistence
"""

from health_monitor.outreach.channels import (
    EmailChannel,
    GitHubIssueChannel,
    OutreachChannel,
    TwitterDMChannel,
)
from health_monitor.outreach.config import (
    EmailCredentials,
    GitHubCredentials,
    NotifierConfig,
    TwitterCredentials,
)
from health_monitor.outreach.dispatcher import NotificationDispatcher, send_notification
from health_monitor.outreach.policy import (
    apply_opt_out,
    feed_meta_opts_out,
    robots_txt_opts_out,
    select_best_channel,
    should_notify,
)
from health_monitor.outreach.rate_limit import is_rate_limited
from health_monitor.outreach.repository import (
    MemoryOutreachStore,
    OutreachRepository,
    OutreachStore,
)
from health_monitor.outreach.schemas import (
    VALID_CHANNELS,
    NotificationChannel,
    NotificationPayload,
    OutreachAction,
    OutreachHistory,
)
from health_monitor.outreach.service import OutreachService
from health_monitor.outreach.templates import build_render_context, render_message

__all__ = [
    "EmailChannel",
    "EmailCredentials",
    "GitHubCredentials",
    "GitHubIssueChannel",
    "MemoryOutreachStore",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationPayload",
    "NotifierConfig",
    "OutreachAction",
    "OutreachChannel",
    "OutreachHistory",
    "OutreachRepository",
    "OutreachService",
    "OutreachStore",
    "TwitterCredentials",
    "TwitterDMChannel",
    "VALID_CHANNELS",
    "apply_opt_out",
    "build_render_context",
    "feed_meta_opts_out",
    "is_rate_limited",
    "render_message",
    "robots_txt_opts_out",
    "select_best_channel",
    "send_notification",
    "should_notify",
]
