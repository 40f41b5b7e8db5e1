from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol


class InvalidTokenError(Exception):
    """The token is malformed, badly signed or otherwise unusable."""


class ExpiredTokenError(InvalidTokenError):
    """The token is well-formed and correctly signed but past its ``exp``."""


class TokenProvider(Protocol):
    """Port for signing and decoding JWTs."""

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str: ...

    def create_refresh_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str: ...

    def decode(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        """
        Verify and decode ``token``.

        :raises ExpiredTokenError: When past ``exp`` and not ``allow_expired``.
        :raises InvalidTokenError: For any other verification failure.
        """
        ...


class StubTokenProvider(TokenProvider):
    """Deterministic, unsigned token provider used in unit tests.

    Tokens are opaque strings remembered by the instance; a negative
    ``expires_delta`` produces an already-expired token.
    """

    def __init__(self) -> None:
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}

    def _mk(
        self,
        *,
        identity: str,
        ttype: str,
        exp_delta: timedelta,
        jti: str | None = None,
        additional_claims: dict[str, Any] | None = None,
        fresh: bool | None = None,
    ) -> str:
        self._seq += 1
        jti_value = jti or f"jti-{self._seq}"
        token = f"{ttype}.{identity}.{jti_value}.{self._seq}"
        payload: dict[str, Any] = {
            "sub": identity,
            "type": ttype,
            "jti": jti_value,
            "exp": int((datetime.now(UTC) + exp_delta).timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        if fresh is not None:
            payload["fresh"] = bool(fresh)
        self._issued[token] = payload
        return token

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str:
        return self._mk(
            identity=identity,
            ttype="access",
            exp_delta=expires_delta if expires_delta is not None else timedelta(hours=1),
            additional_claims=additional_claims,
            fresh=fresh,
        )

    def create_refresh_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str:
        return self._mk(
            identity=identity,
            ttype="refresh",
            exp_delta=expires_delta if expires_delta is not None else timedelta(days=7),
            jti=jti,
            additional_claims=additional_claims,
        )

    def decode(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None:
            raise InvalidTokenError("unknown token")
        if not allow_expired and payload["exp"] <= int(datetime.now(UTC).timestamp()):
            raise ExpiredTokenError("token expired")
        return dict(payload)
