from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from juniorhub.services._shared.errors import InvalidCredentialError
from juniorhub.services.federation.dto import ExternalProfile


class IdentityVerifier(Protocol):
    """
    Port for checking a provider credential (ID token, access token).

    :raises InvalidCredentialError: The provider rejected the credential.
    :raises FederationUnavailableError: The provider could not be reached.
    """

    provider: str

    def verify(self, credential: str) -> ExternalProfile: ...


class StaticIdentityVerifier(IdentityVerifier):
    """Maps known credentials to fixed profiles; used in tests."""

    def __init__(self, provider: str, profiles: Mapping[str, ExternalProfile]) -> None:
        self.provider = provider
        self.profiles = dict(profiles)

    def verify(self, credential: str) -> ExternalProfile:
        try:
            return self.profiles[credential]
        except KeyError:
            raise InvalidCredentialError("Invalid provider credential") from None
