"""Identity provider catalog built from the Flask config."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from juniorhub.infra.federation.facebook import FacebookAccessTokenVerifier
from juniorhub.infra.federation.google import GoogleIdTokenVerifier
from juniorhub.services._shared.ports.identity_verifier import IdentityVerifier
from juniorhub.services.federation.dto import ProviderConfig

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
FACEBOOK_AUTHORIZE_URL = "https://www.facebook.com/v19.0/dialog/oauth"


def build_provider_configs(config: Mapping[str, Any]) -> dict[str, ProviderConfig]:
    """Providers with a client id configured; the others stay unknown."""
    providers: dict[str, ProviderConfig] = {}
    if config.get("GOOGLE_CLIENT_ID"):
        providers["google"] = ProviderConfig(
            name="google",
            authorize_url=GOOGLE_AUTHORIZE_URL,
            client_id=config["GOOGLE_CLIENT_ID"],
            callback_url=config["GOOGLE_CALLBACK_URL"],
            scopes=("openid", "email", "profile"),
            response_type="id_token",
        )
    if config.get("FACEBOOK_APP_ID"):
        providers["facebook"] = ProviderConfig(
            name="facebook",
            authorize_url=FACEBOOK_AUTHORIZE_URL,
            client_id=config["FACEBOOK_APP_ID"],
            callback_url=config["FACEBOOK_CALLBACK_URL"],
            scopes=("email", "public_profile"),
            response_type="token",
            scope_separator=",",
        )
    return providers


def build_identity_verifiers(config: Mapping[str, Any]) -> dict[str, IdentityVerifier]:
    timeout = float(config.get("FEDERATION_HTTP_TIMEOUT", 5))
    verifiers: dict[str, IdentityVerifier] = {}
    if config.get("GOOGLE_CLIENT_ID"):
        verifiers["google"] = GoogleIdTokenVerifier(config["GOOGLE_CLIENT_ID"], timeout=timeout)
    if config.get("FACEBOOK_APP_ID"):
        verifiers["facebook"] = FacebookAccessTokenVerifier(timeout=timeout)
    return verifiers


__all__ = [
    "FacebookAccessTokenVerifier",
    "GoogleIdTokenVerifier",
    "build_identity_verifiers",
    "build_provider_configs",
]
