from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode


@dataclass(frozen=True, slots=True)
class ExternalProfile:
    """
    Identity asserted by a provider after its credential was verified.

    :param provider: Provider name (``google``, ``facebook``).
    :param subject: Stable provider user id.
    :param email: Email reported by the provider.
    :param name: Display name; falls back to the email's local part.
    :param avatar_url: Profile picture, when the provider shares one.
    """

    provider: str
    subject: str
    email: str
    name: str
    avatar_url: str | None = None


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Static settings of an OAuth/OIDC provider's consent screen."""

    name: str
    authorize_url: str
    client_id: str
    callback_url: str
    scopes: tuple[str, ...] = ("email", "profile")
    response_type: str = "code"
    scope_separator: str = " "

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": self.response_type,
            "scope": self.scope_separator.join(self.scopes),
            "state": state,
        }
        if "id_token" in self.response_type.split():
            # OIDC implicit flow refuses requests without a nonce
            params["nonce"] = state
        return f"{self.authorize_url}?{urlencode(params)}"


@dataclass(frozen=True, slots=True)
class ProviderRedirect:
    """Where to send the browser to start a provider login."""

    provider: str
    url: str
    state: str
