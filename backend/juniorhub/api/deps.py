"""Shared API helpers: service wiring, authentication and responses."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from juniorhub.core.errors import Unauthorized
from juniorhub.infra.federation import build_identity_verifiers, build_provider_configs
from juniorhub.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from juniorhub.infra.stores import get_stores
from juniorhub.services import (
    AccessClaims,
    FederationBroker,
    IdentityService,
    RealtimeEventService,
    RegistrationService,
    ServiceContext,
    TicketBook,
    TokenConfig,
    TokenService,
)
from juniorhub.services._shared.ports import IdentityVerifier

F = TypeVar("F", bound=Callable[..., Any])

VERIFIERS_EXTENSION_KEY = "identity_verifiers"


# ---- service wiring ---- #


def service_context() -> ServiceContext:
    claims: AccessClaims | None = g.get("access_claims")
    return ServiceContext(
        actor_id=claims.account_id if claims else None,
        request_id=g.get("request_id"),
    )


def token_service() -> TokenService:
    stores = get_stores()
    return TokenService(
        token_provider=JWTTokenProvider(),
        refresh_store=stores.refresh,
        denylist_store=stores.denylist,
        token_cfg=TokenConfig.from_mapping(current_app.config),
        ctx=service_context(),
    )


def ticket_book() -> TicketBook:
    ttl = timedelta(seconds=int(current_app.config["PENDING_TICKET_TTL_SECONDS"]))
    return TicketBook(get_stores().ephemeral, ttl=ttl)


def identity_service() -> IdentityService:
    return IdentityService(tokens=token_service(), tickets=ticket_book(), ctx=service_context())


def registration_service() -> RegistrationService:
    return RegistrationService(tokens=token_service(), tickets=ticket_book(), ctx=service_context())


def identity_verifiers() -> dict[str, IdentityVerifier]:
    """Per-app verifier map, built once; tests may replace the extension entry."""
    default = build_identity_verifiers(current_app.config)
    return cast(
        dict[str, IdentityVerifier],
        current_app.extensions.setdefault(VERIFIERS_EXTENSION_KEY, default),
    )


def federation_broker() -> FederationBroker:
    return FederationBroker(
        tokens=token_service(),
        tickets=ticket_book(),
        states=get_stores().ephemeral,
        providers=build_provider_configs(current_app.config),
        verifiers=identity_verifiers(),
        state_ttl=timedelta(seconds=int(current_app.config["FEDERATION_STATE_TTL_SECONDS"])),
        ctx=service_context(),
    )


def realtime_events() -> RealtimeEventService:
    return RealtimeEventService(get_stores().publisher)


# ---- authentication ---- #


def bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, unrevoked access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        if token is None:
            raise Unauthorized("Missing bearer token")
        g.access_claims = token_service().verify_access(token)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_claims() -> AccessClaims:
    claims: AccessClaims | None = g.get("access_claims")
    if claims is None:
        raise Unauthorized()
    return claims


# ---- responses ---- #


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
