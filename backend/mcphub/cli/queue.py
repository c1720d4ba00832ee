"""Flask CLI commands for event queue maintenance."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from mcphub.api.deps import queue_service
from mcphub.services.queue.service import DEFAULT_RETENTION_DAYS


@click.group("queue")
def queue_cli() -> None:
    """Inspect and maintain the generic event queue."""


@queue_cli.command("stats")
@with_appcontext
def stats_command() -> None:
    """Print item counts per status."""
    counts = queue_service().stats()
    width = max(len(status) for status in counts)
    for status, total in counts.items():
        click.echo(f"{status.ljust(width)}  {total:>6}")


@queue_cli.command("claim")
@with_appcontext
def claim_command() -> None:
    """Claim the next due item and print it (moves it to ``processing``)."""
    item = queue_service().claim_next()
    if item is None:
        click.echo("No pending items.")
        return
    click.echo(
        f"{item.id}  {item.priority:<8}  {item.event_type}  "
        f"from={item.source_service}  retries={item.retry_count}"
    )


@queue_cli.command("cleanup")
@click.option(
    "--days",
    type=click.IntRange(min=0),
    default=DEFAULT_RETENTION_DAYS,
    show_default=True,
    help="Delete completed/failed items older than this many days.",
)
@with_appcontext
def cleanup_command(days: int) -> None:
    """Delete finished items past the retention window."""
    deleted = queue_service().cleanup(older_than_days=days)
    click.echo(f"Deleted {deleted} finished item(s).")
