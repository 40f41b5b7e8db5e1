from __future__ import annotations

import requests

from juniorhub.infra.federation.http_verifier import DEFAULT_TIMEOUT, HttpIdentityVerifier
from juniorhub.services._shared.errors import InvalidCredentialError
from juniorhub.services.federation.dto import ExternalProfile

TOKENINFO_URL = "https://www.googleapis.com/oauth2/v3/tokeninfo"


class GoogleIdTokenVerifier(HttpIdentityVerifier):
    """
    Checks a Google ID token against Google's ``tokeninfo`` endpoint.

    :param client_id: Expected ``aud``. When empty the audience is not checked,
        which is only acceptable in development.
    """

    provider = "google"

    def __init__(
        self,
        client_id: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout=timeout, session=session)
        self.client_id = client_id

    def verify(self, credential: str) -> ExternalProfile:
        data = self._get_json(TOKENINFO_URL, {"id_token": credential})

        if self.client_id and data.get("aud") != self.client_id:
            raise InvalidCredentialError("Invalid provider credential")
        subject = data.get("sub")
        email = data.get("email")
        if not subject or not email:
            raise InvalidCredentialError("Invalid provider credential")
        # tokeninfo returns booleans as strings
        if str(data.get("email_verified", "true")).lower() != "true":
            raise InvalidCredentialError("Provider email is not verified")

        return ExternalProfile(
            provider=self.provider,
            subject=str(subject),
            email=str(email),
            name=self._display_name(data.get("name"), str(email)),
            avatar_url=data.get("picture") or None,
        )
