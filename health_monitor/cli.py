"""
Command-line interface for the LLMFeed outreach engine.

Usage:
    llmfeed-outreach preview feeds.json   # Render messages without sending
    llmfeed-outreach notify feeds.json    # Run one outreach pass
    llmfeed-outreach init-db              # Create the outreach_history table

Input files hold a JSON list of entries, each with a ``feed``, its
latest ``health_check`` and an optional ``report_url``, as exported by
the crawler. Entries may also carry the site's ``robots_txt`` and the
raw ``feed_document``; their opt-out signals are applied before any
other decision.
"""

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from health_monitor.feeds.schemas import FeedSource, HealthCheck
from health_monitor.observability.logging import setup_logging
from health_monitor.observability.metrics import get_metrics
from health_monitor.outreach.config import NotifierConfig
from health_monitor.outreach.policy import apply_opt_out, select_best_channel, should_notify
from health_monitor.outreach.schemas import CHANNEL_PRIORITY
from health_monitor.outreach.templates import render_message


def _load_entries(path: str) -> list[tuple[FeedSource, HealthCheck, str | None]]:
    """Parse a crawler export into (feed, health_check, report_url) tuples."""
    try:
        raw: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}") from e

    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise click.ClickException(
            f"{path} must hold a JSON list of entries, got {type(raw).__name__}"
        )

    entries = []
    for i, item in enumerate(raw):
        try:
            check = item.get("health_check", item.get("healthCheck"))
            feed = apply_opt_out(
                FeedSource.from_dict(item["feed"]),
                robots_txt=item.get("robots_txt", item.get("robotsTxt")),
                feed_document=item.get("feed_document", item.get("feedDocument")),
            )
            entries.append((
                feed,
                HealthCheck.from_dict(check),
                item.get("report_url", item.get("reportUrl")),
            ))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise click.ClickException(f"Entry {i} in {path} is invalid: {e}") from e
    return entries


def _notifier_config(
    dry_run: bool | None = None,
    min_score: int | None = None,
    require_errors: bool = False,
) -> NotifierConfig:
    """NotifierConfig from the environment with CLI overrides applied."""
    overrides: dict[str, Any] = {}
    if dry_run is not None:
        overrides["dry_run"] = dry_run
    if min_score is not None:
        overrides["min_score"] = min_score
    if require_errors:
        overrides["require_errors"] = True
    return NotifierConfig(**overrides)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """LLMFeed Health Monitor - feed owner outreach."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--channel",
    type=click.Choice(CHANNEL_PRIORITY),
    default=None,
    help="Render for this channel instead of each feed's best channel",
)
@click.option("--min-score", type=click.IntRange(0, 100), default=None,
              help="Skip feeds scoring at or above this value")
@click.option("--require-errors", is_flag=True, help="Only notify feeds with errors")
def preview(
    file: str, channel: str | None, min_score: int | None, require_errors: bool,
) -> None:
    """Render outreach messages without sending anything."""
    config = _notifier_config(min_score=min_score, require_errors=require_errors)
    for feed, check, report_url in _load_entries(file):
        target = channel or select_best_channel(feed)
        if target is None:
            click.echo(f"# {feed.url}: no contact channel, skipped\n")
            continue

        message = render_message(target, feed, check, report_url)
        would_notify = not feed.opted_out and should_notify(
            check,
            min_score=config.min_score,
            require_errors=config.require_errors,
        )
        notify = "yes" if would_notify else "no"
        click.echo(f"# {feed.url} [{target}] (would notify: {notify})")
        if message.subject:
            click.echo(f"Subject: {message.subject}")
        click.echo(message.body)
        click.echo("")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--dry-run/--live",
    default=None,
    help="Override DRY_RUN from the environment",
)
@click.option("--min-score", type=click.IntRange(0, 100), default=None,
              help="Skip feeds scoring at or above this value")
@click.option("--require-errors", is_flag=True, help="Only notify feeds with errors")
@click.option("--db", "use_db", is_flag=True, help="Use PostgreSQL outreach history")
@click.option("--metrics-port", type=int, default=None,
              help="Expose Prometheus metrics on this port")
def notify(
    file: str,
    dry_run: bool | None,
    min_score: int | None,
    require_errors: bool,
    use_db: bool,
    metrics_port: int | None,
) -> None:
    """Run one outreach pass over the feeds in FILE."""
    from health_monitor.outreach.repository import MemoryOutreachStore, OutreachRepository
    from health_monitor.outreach.service import OutreachService
    from health_monitor.storage.database import Database

    config = _notifier_config(dry_run, min_score, require_errors)

    entries = _load_entries(file)
    if metrics_port:
        get_metrics().start_server(port=metrics_port)

    async def run():
        if not use_db:
            service = OutreachService(config=config, store=MemoryOutreachStore())
            return await service.notify_batch(entries)

        async with Database() as db:
            repo = OutreachRepository(db)
            await repo.create_tables()
            service = OutreachService(config=config, store=repo)
            return await service.notify_batch(entries)

    actions = asyncio.run(run())

    mode = " (dry run)" if config.dry_run else ""
    click.echo(f"Outreach pass{mode}: {len(entries)} feeds, {len(actions)} dispatched")
    for action in actions:
        line = f"  [{action.outcome}] {action.feed_id} via {action.channel}: {action.response}"
        if action.url:
            line += f" ({action.url})"
        click.echo(line)


@main.command("init-db")
def init_db() -> None:
    """Create the outreach history schema."""
    from health_monitor.outreach.repository import OutreachRepository
    from health_monitor.storage.database import Database

    async def run():
        async with Database() as db:
            await OutreachRepository(db).create_tables()

    asyncio.run(run())
    click.echo("Database initialized")


if __name__ == "__main__":
    main()
