"""
Shared HTTP plumbing for provider credential verifiers.

Transport problems (timeouts, refused connections, 5xx) surface as
:class:`FederationUnavailableError`; a provider saying "no" (4xx) surfaces
as :class:`InvalidCredentialError`.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from juniorhub.services._shared.errors import FederationUnavailableError, InvalidCredentialError
from juniorhub.services._shared.ports.identity_verifier import IdentityVerifier

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class HttpIdentityVerifier(IdentityVerifier):
    provider = ""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.http = session or requests.Session()

    def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            resp = self.http.get(url, params=params, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as exc:
            log.warning("federation.provider_unreachable", extra={"provider": self.provider})
            raise FederationUnavailableError() from exc

        if resp.status_code >= 500:
            log.warning(
                "federation.provider_error status=%s",
                resp.status_code,
                extra={"provider": self.provider},
            )
            raise FederationUnavailableError()
        if resp.status_code >= 400:
            raise InvalidCredentialError("Invalid provider credential")

        try:
            data = resp.json()
        except ValueError as exc:
            raise FederationUnavailableError("Identity provider sent an unreadable reply") from exc
        if not isinstance(data, dict):
            raise InvalidCredentialError("Invalid provider credential")
        return data

    @staticmethod
    def _display_name(name: Any, email: str) -> str:
        if isinstance(name, str) and name.strip():
            return name.strip()
        return email.split("@", 1)[0]
