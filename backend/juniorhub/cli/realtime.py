"""Flask CLI commands for the realtime gateway."""

from __future__ import annotations

import asyncio
import json
import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from juniorhub.api.deps import realtime_events, token_service
from juniorhub.realtime.gateway import ChannelGateway
from juniorhub.realtime.relay import RedisEventRelay
from juniorhub.realtime.server import run_gateway
from juniorhub.services import AccessClaims

LOGGER = logging.getLogger(__name__)


@click.group("realtime")
def realtime_cli() -> None:
    """Realtime gateway commands."""


@realtime_cli.command("run")
@click.option("--host", default=None, help="Bind address (REALTIME_HOST).")
@click.option("--port", type=int, default=None, help="Bind port (REALTIME_PORT).")
@with_appcontext
def run_command(host: str | None, port: int | None) -> None:
    """Serve the WebSocket gateway until interrupted."""
    app = current_app._get_current_object()  # type: ignore[attr-defined]
    config = app.config

    def verify_access(token: str) -> AccessClaims:
        # Runs in a worker thread, which has no app context of its own
        with app.app_context():
            return token_service().verify_access(token)

    gateway = ChannelGateway(verify_access, queue_size=int(config["REALTIME_QUEUE_SIZE"]))
    relay = None
    if config.get("REDIS_URL"):
        relay = RedisEventRelay.from_url(config["REDIS_URL"], config["REALTIME_CHANNEL"], gateway)
    else:
        LOGGER.warning("realtime.no_relay: REDIS_URL not set, API events will not reach clients")

    try:
        asyncio.run(
            run_gateway(
                gateway,
                host=host or config["REALTIME_HOST"],
                port=port or int(config["REALTIME_PORT"]),
                relay=relay,
            )
        )
    except KeyboardInterrupt:
        click.echo("Gateway stopped")


@realtime_cli.command("notify")
@click.argument("account_id", type=int)
@click.argument("message")
@click.option("--data", default=None, help="Extra JSON object merged into the payload.")
@with_appcontext
def notify_command(account_id: int, message: str, data: str | None) -> None:
    """Push a notification to every live connection of ACCOUNT_ID."""
    payload: dict = {"message": message}
    if data:
        try:
            extra = json.loads(data)
        except ValueError as exc:
            raise click.BadParameter("must be a JSON object", param_hint="--data") from exc
        if not isinstance(extra, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--data")
        payload.update(extra)
    realtime_events().notify_account(account_id, payload)
    click.echo(f"Notification queued for account {account_id}")
