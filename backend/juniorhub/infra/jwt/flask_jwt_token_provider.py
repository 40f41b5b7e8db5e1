from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import ExpiredSignatureError, PyJWTError

from juniorhub.services._shared.ports import ExpiredTokenError, InvalidTokenError, TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    .. note::
       Requires an active Flask app context with the ``JWT_*`` settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str:
        return cast(
            str,
            create_access_token(
                identity=identity,
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
                fresh=fresh,
            ),
        )

    def create_refresh_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str:
        # The refresh jti comes from the store that performs atomic rotation.
        claims = dict(additional_claims or {})
        claims["jti"] = jti
        token = cast(
            str,
            create_refresh_token(
                identity=identity,
                additional_claims=claims,
                expires_delta=expires_delta,
            ),
        )
        # Fail fast if the library ever overrides our jti
        if decode_token(token)["jti"] != jti:
            raise RuntimeError("Refresh token jti mismatch after creation.")
        return token

    def decode(self, token: str, *, allow_expired: bool = False) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], decode_token(token, allow_expired=allow_expired))
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError(str(exc)) from exc
        except (PyJWTError, JWTExtendedException) as exc:
            raise InvalidTokenError(str(exc)) from exc
