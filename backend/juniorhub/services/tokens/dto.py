from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

DEFAULT_ACCESS_EXPIRES = timedelta(hours=1)
DEFAULT_REFRESH_EXPIRES = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Access and refresh tokens of one family.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param expires_in: Access token lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    What a verified access token asserts.

    :param account_id: Authenticated account.
    :param role: Role at issuance (never ``unassigned``).
    :param family_id: Rotation family the token belongs to.
    """

    account_id: int
    role: str
    family_id: str


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Token lifetimes.

    :param access_expires: Access token lifetime.
    :param refresh_expires: Refresh token lifetime.
    """

    access_expires: timedelta = DEFAULT_ACCESS_EXPIRES
    refresh_expires: timedelta = DEFAULT_REFRESH_EXPIRES

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenConfig:
        """Build from a Flask config (``JWT_*_TOKEN_EXPIRES``)."""
        return cls(
            access_expires=config.get("JWT_ACCESS_TOKEN_EXPIRES", DEFAULT_ACCESS_EXPIRES),
            refresh_expires=config.get("JWT_REFRESH_TOKEN_EXPIRES", DEFAULT_REFRESH_EXPIRES),
        )
