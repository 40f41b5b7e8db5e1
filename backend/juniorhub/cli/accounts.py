"""Flask CLI commands for account administration."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from juniorhub.api.deps import identity_service
from juniorhub.services._shared.errors import ConflictError


@click.group("accounts")
def accounts_cli() -> None:
    """Account administration commands."""


@accounts_cli.command("create-admin")
@click.option("--email", required=True, help="Login email of the administrator.")
@click.option("--name", default="Administrator", show_default=True)
@click.password_option(help="Password; prompted when omitted.")
@with_appcontext
def create_admin_command(email: str, name: str, password: str) -> None:
    """Create an administrator account."""
    if len(password) < 8:
        raise click.BadParameter("must be at least 8 characters", param_hint="--password")
    try:
        account = identity_service().create_admin(email=email, password=password, name=name)
    except ConflictError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created admin #{account.id} <{account.email}>")
