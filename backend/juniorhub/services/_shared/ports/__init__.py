"""
Ports (hexagonal interfaces) for session and realtime infrastructure.

These keep the service layer independent from Redis, flask-jwt-extended and
the gateway transport. Concrete adapters live under
:mod:`juniorhub.infra`; the in-memory doubles defined next to each port
are used by unit tests and when no Redis is configured.

Modules
-------
- :mod:`token_provider`: JWT signing and verification.
- :mod:`refresh_token_store`: refresh-token records, rotation and families.
- :mod:`denylist_store`: revoked families checked on access-token verify.
- :mod:`ephemeral_store`: TTL'd single-use documents (tickets, login state).
- :mod:`identity_verifier`: provider credential checks.
- :mod:`event_publisher`: fire-and-forget room events for the gateway.
"""

from __future__ import annotations

from .denylist_store import FamilyDenylistStore, InMemoryDenylistStore
from .ephemeral_store import EphemeralStore, InMemoryEphemeralStore
from .event_publisher import EventPublisher, InMemoryEventPublisher, PublishedEvent
from .identity_verifier import IdentityVerifier, StaticIdentityVerifier
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshRecordView,
    RefreshTokenStore,
    RotationResult,
)
from .token_provider import (
    ExpiredTokenError,
    InvalidTokenError,
    StubTokenProvider,
    TokenProvider,
)

__all__ = [
    "EphemeralStore",
    "EventPublisher",
    "ExpiredTokenError",
    "FamilyDenylistStore",
    "IdentityVerifier",
    "InMemoryDenylistStore",
    "InMemoryEphemeralStore",
    "InMemoryEventPublisher",
    "InMemoryRefreshTokenStore",
    "InvalidTokenError",
    "PublishedEvent",
    "RefreshRecordView",
    "RefreshTokenStore",
    "RotationResult",
    "StaticIdentityVerifier",
    "StubTokenProvider",
    "TokenProvider",
]
