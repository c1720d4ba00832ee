"""Flask CLI commands for administrative token operations."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from mcphub.api.deps import get_clock, get_denylist_store
from mcphub.constants import SERVICE_IDS
from mcphub.services.tokens import TokenRevoker


@click.group("tokens")
def tokens_cli() -> None:
    """Administrative service token commands."""


@tokens_cli.command("revoke-service")
@click.argument("service_id", type=click.Choice(SERVICE_IDS))
@click.option("--reason", default="admin_revocation", show_default=True)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@with_appcontext
def revoke_service_command(service_id: str, reason: str, yes: bool) -> None:
    """Revoke every still-valid token of SERVICE_ID."""
    if not yes:
        click.confirm(f"Revoke all tokens of {service_id}?", abort=True)
    revoker = TokenRevoker(
        denylist_store=get_denylist_store(),
        same_service_only=bool(current_app.config.get("MCP_REVOKE_SAME_SERVICE_ONLY")),
        clock=get_clock(),
    )
    count = revoker.revoke_service(service_id, reason=reason)
    click.echo(f"Revoked {count} token(s) of {service_id}.")
