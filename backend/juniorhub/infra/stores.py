"""
Session and realtime store wiring.

With ``REDIS_URL`` configured every store is Redis-backed, so several API
workers and the gateway share state. Without it the in-process doubles are
used; that is fine for tests and a single development worker, not for
production.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, current_app

from juniorhub.core import extensions
from juniorhub.infra.redis.redis_denylist_store import RedisFamilyDenylistStore
from juniorhub.infra.redis.redis_ephemeral_store import RedisEphemeralStore
from juniorhub.infra.redis.redis_event_publisher import RedisEventPublisher
from juniorhub.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from juniorhub.services._shared.ports import (
    EphemeralStore,
    EventPublisher,
    FamilyDenylistStore,
    InMemoryDenylistStore,
    InMemoryEphemeralStore,
    InMemoryEventPublisher,
    InMemoryRefreshTokenStore,
    RefreshTokenStore,
)

log = logging.getLogger(__name__)

EXTENSION_KEY = "juniorhub_stores"


@dataclass(frozen=True, slots=True)
class Stores:
    refresh: RefreshTokenStore
    denylist: FamilyDenylistStore
    ephemeral: EphemeralStore
    publisher: EventPublisher


def build_stores(app: Flask) -> Stores:
    r = extensions.redis_client
    if r is None:
        if not app.testing:
            log.warning("stores.in_memory: REDIS_URL not set, sessions are per-process")
        return Stores(
            refresh=InMemoryRefreshTokenStore(),
            denylist=InMemoryDenylistStore(),
            ephemeral=InMemoryEphemeralStore(),
            publisher=InMemoryEventPublisher(),
        )
    return Stores(
        refresh=RedisRefreshTokenStore(r),
        denylist=RedisFamilyDenylistStore(r),
        ephemeral=RedisEphemeralStore(r),
        publisher=RedisEventPublisher(r, app.config["REALTIME_CHANNEL"]),
    )


def init_app(app: Flask, stores: Stores | None = None) -> None:
    """Attach the stores to ``app``; tests may pass their own."""
    app.extensions[EXTENSION_KEY] = stores or build_stores(app)


def get_stores() -> Stores:
    return current_app.extensions[EXTENSION_KEY]
