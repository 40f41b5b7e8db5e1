"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .accounts import accounts_cli
from .realtime import realtime_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry will receive the
        ``accounts`` and ``realtime`` command groups.
    """
    app.cli.add_command(accounts_cli)
    app.cli.add_command(realtime_cli)
