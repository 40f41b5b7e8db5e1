"""Reverse-proxy awareness for the WSGI app."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` when ``USE_PROXYFIX`` is set.

    ``PROXY_HOPS`` (default 1) is the number of trusted proxies in front of
    the app. The login rate limiter keys on the client address, so the value
    must match the deployment or every caller shares the proxy's bucket.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
