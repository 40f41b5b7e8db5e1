from __future__ import annotations

from juniorhub.infra.federation.http_verifier import HttpIdentityVerifier
from juniorhub.services._shared.errors import InvalidCredentialError
from juniorhub.services.federation.dto import ExternalProfile

GRAPH_ME_URL = "https://graph.facebook.com/me"
GRAPH_FIELDS = "id,name,email,picture"


class FacebookAccessTokenVerifier(HttpIdentityVerifier):
    """Resolves a Facebook user access token through the Graph ``/me`` edge."""

    provider = "facebook"

    def verify(self, credential: str) -> ExternalProfile:
        data = self._get_json(GRAPH_ME_URL, {"fields": GRAPH_FIELDS, "access_token": credential})

        subject = data.get("id")
        email = data.get("email")
        if not subject:
            raise InvalidCredentialError("Invalid provider credential")
        if not email:
            # Accounts are keyed by email; a user who withheld it cannot sign in
            raise InvalidCredentialError("Provider did not share an email address")

        picture = data.get("picture")
        avatar = None
        if isinstance(picture, dict):
            avatar = (picture.get("data") or {}).get("url")

        return ExternalProfile(
            provider=self.provider,
            subject=str(subject),
            email=str(email),
            name=self._display_name(data.get("name"), str(email)),
            avatar_url=avatar or None,
        )
