"""Message templates for outreach channels.

Rendering happens in two steps. ``build_render_context`` extracts the
structured facts (issue lines, suggestions, score) from a feed and its
health check; a per-channel strategy then formats that context as
Markdown (GitHub), plain text (email) or a single length-bounded line
(Twitter DM). Output depends only on the inputs, so rendering the same
payload twice yields identical text.

Tone: friendly, slightly chaotic, zero ego.
"""

from collections.abc import Callable
from dataclasses import dataclass

from health_monitor.feeds.schemas import FeedSource, HealthCheck, ValidationIssue

SPEC_URL = "https://llm-feed.org"
PROJECT_URL = "https://github.com/kiarashplusplus/webmcp-tooling-suite"

GITHUB_ISSUE_TITLE = "🤖 LLMFeed Health Check: Your feed has some issues"
EMAIL_SUBJECT = "🤖 Your LLMFeed has some issues - here's how to fix them"

GITHUB_NO_ISSUES_BANNER = (
    "✅ No critical issues found, but there might be room for improvement!"
)
EMAIL_NO_ISSUES_BANNER = "✓ No critical issues found!"

DM_URL_MAX_LENGTH = 50
DM_MAX_LENGTH = 280


@dataclass(frozen=True)
class IssueLine:
    """One validation finding, reduced to what the templates print."""

    type: str
    code: str
    message: str


@dataclass(frozen=True)
class RenderContext:
    """Structured facts shared by every channel template.

    Attributes:
        feed_url: URL of the checked feed.
        score: Validation score, None when the feed was never validated.
        capabilities_count: Declared capabilities.
        error_count: Number of error issues.
        issues: All findings in declaration order.
        suggestions: Non-empty suggestions in declaration order.
        report_url: Link to a hosted health report, if any.
    """

    feed_url: str
    score: int | None
    capabilities_count: int
    error_count: int
    issues: tuple[IssueLine, ...]
    suggestions: tuple[str, ...]
    report_url: str | None = None

    @property
    def errors(self) -> tuple[IssueLine, ...]:
        return tuple(i for i in self.issues if i.type == "error")

    @property
    def warnings(self) -> tuple[IssueLine, ...]:
        return tuple(i for i in self.issues if i.type == "warning")


@dataclass(frozen=True)
class RenderedMessage:
    """Final text for one channel. DMs have no subject."""

    subject: str | None
    body: str


def _issue_line(issue: ValidationIssue) -> IssueLine:
    return IssueLine(type=issue.type, code=issue.code, message=issue.message)


def build_render_context(
    feed: FeedSource,
    check: HealthCheck,
    report_url: str | None = None,
) -> RenderContext:
    """Extract the facts the templates need from a feed and its health check."""
    validation = check.validation
    issues = validation.issues if validation else ()

    return RenderContext(
        feed_url=feed.url,
        score=validation.score if validation else None,
        capabilities_count=validation.capabilities_count if validation else 0,
        error_count=validation.error_count if validation else 0,
        issues=tuple(_issue_line(i) for i in issues),
        suggestions=tuple(i.suggestion for i in issues if i.suggestion),
        report_url=report_url,
    )


def truncate(text: str, max_length: int) -> str:
    """Shorten ``text`` to ``max_length`` characters, ending with ``...``."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


# ── GitHub (Markdown) ───────────────────────────────────


def format_issues_markdown(ctx: RenderContext) -> str:
    if not ctx.issues:
        return GITHUB_NO_ISSUES_BANNER

    parts: list[str] = []
    for heading, group in (("### ❌ Errors", ctx.errors), ("### ⚠️ Warnings", ctx.warnings)):
        if group:
            parts.append(heading)
            parts.append("")
            parts.extend(f"- **{i.code}**: {i.message}" for i in group)
            parts.append("")

    score = ctx.score if ctx.score is not None else "N/A"
    parts.append(f"**Score**: {score}/100 | **Capabilities**: {ctx.capabilities_count}")
    return "\n".join(parts)


def render_github_issue(ctx: RenderContext) -> RenderedMessage:
    if ctx.suggestions:
        quick_fix = "Here are some suggestions:\n" + "\n".join(
            f"- {s}" for s in ctx.suggestions
        )
    else:
        quick_fix = f"Check out the [LLMFeed spec]({SPEC_URL}) for the full schema."

    report = f"📊 [View Full Health Report]({ctx.report_url})" if ctx.report_url else ""
    score = ctx.score if ctx.score is not None else "N/A"

    body = "\n".join([
        "Hey there! 👋",
        "",
        "I'm the LLMFeed Health Monitor bot - I crawl the LLMFeed ecosystem "
        "to help keep feeds healthy and discoverable.",
        "",
        "## What I Found",
        "",
        f"I checked your feed at `{ctx.feed_url}` and found a few things:",
        "",
        format_issues_markdown(ctx),
        "",
        "## Why This Matters",
        "",
        "LLMFeed files help AI assistants discover and understand what your "
        "project can do. A healthy feed means:",
        "- Better discoverability by AI tools",
        "- Cleaner integration with MCP ecosystems",
        "- More trust with signed feeds",
        "",
        "## Quick Fix",
        "",
        quick_fix,
        "",
        report,
        "",
        "## Opt-out",
        "",
        "Don't want these check-ins? No worries! Add this to your robots.txt:",
        "```",
        "User-agent: LLMFeed-Health-Monitor",
        "Disallow: /",
        "```",
        "",
        'Or add `"_meta": { "health-monitor": "noindex" }` to your feed.',
        "",
        "---",
        f"🔧 Sent by [LLMFeed Health Monitor]({PROJECT_URL}) | Score: {score}/100",
    ])
    return RenderedMessage(subject=GITHUB_ISSUE_TITLE, body=body)


# ── Email (plain text) ──────────────────────────────────


def format_issues_plain(ctx: RenderContext) -> str:
    if not ctx.issues:
        return EMAIL_NO_ISSUES_BANNER

    return "\n".join(
        f"{'✗' if i.type == 'error' else '!'} [{i.code}] {i.message}"
        for i in ctx.issues
    )


def render_email(ctx: RenderContext) -> RenderedMessage:
    if ctx.suggestions:
        fixes = "\n".join(f"• {s}" for s in ctx.suggestions)
    else:
        fixes = f"• Check out {SPEC_URL} for the full spec"

    report = f"View full report: {ctx.report_url}" if ctx.report_url else ""
    score = ctx.score if ctx.score is not None else "N/A"

    body = "\n".join([
        "Hey!",
        "",
        "I'm the LLMFeed Health Monitor - a friendly bot that helps keep the "
        "LLMFeed ecosystem healthy.",
        "",
        f"I crawled your feed at {ctx.feed_url} and found some issues:",
        "",
        format_issues_plain(ctx),
        "",
        "QUICK FIXES:",
        fixes,
        "",
        report,
        "",
        "---",
        'Don\'t want these emails? Add "_meta": { "health-monitor": "noindex" } '
        "to your feed.",
        "",
        f"Score: {score}/100",
        "",
        "Cheers,",
        "The LLMFeed Bot 🤖",
    ])
    return RenderedMessage(subject=EMAIL_SUBJECT, body=body)


# ── Twitter DM (single line) ────────────────────────────


def render_twitter_dm(ctx: RenderContext) -> RenderedMessage:
    suggestion = ctx.suggestions[0] if ctx.suggestions else "check llm-feed.org"
    suggestion = " ".join(suggestion.split())
    score = ctx.score if ctx.score is not None else "?"

    text = (
        f"Hey! 👋 Your LLMFeed at {truncate(ctx.feed_url, DM_URL_MAX_LENGTH)} "
        f"has {ctx.error_count} issues. Quick fix: {suggestion}. "
        f"Score: {score}/100"
    )
    if len(text) > DM_MAX_LENGTH:
        # Keep the score visible; shorten the suggestion instead
        tail = f". Score: {score}/100"
        head = text[: -len(f"{suggestion}{tail}")]
        room = DM_MAX_LENGTH - len(head) - len(tail)
        text = f"{head}{truncate(suggestion, max(room, 3))}{tail}"
    return RenderedMessage(subject=None, body=text)


RENDERERS: dict[str, Callable[[RenderContext], RenderedMessage]] = {
    "github": render_github_issue,
    "email": render_email,
    "twitter": render_twitter_dm,
}


def render_message(
    channel: str,
    feed: FeedSource,
    check: HealthCheck,
    report_url: str | None = None,
) -> RenderedMessage:
    """Render the message for ``channel``.

    Raises:
        KeyError: If no template exists for the channel.
    """
    return RENDERERS[channel](build_render_context(feed, check, report_url))
