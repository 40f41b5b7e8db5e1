"""
DTOs shared by the identity, federation and registration services.

Every sign-in path ends in one of two outcomes: a session
(:class:`SessionEstablished`) or a pending registration
(:class:`AwaitingCompletion`) when the account has no role yet.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from juniorhub.services.tokens.dto import TokenPairOut


@dataclass(frozen=True, slots=True)
class AccountOut:
    """
    Public-safe view of an account.

    :param id: Account id.
    :param email: Normalized email.
    :param name: Display name.
    :param role: Current role.
    :param providers: Names of linked identity providers.
    """

    id: int
    email: str
    name: str
    role: str
    avatar_url: str | None = None
    providers: tuple[str, ...] = ()
    experience_level: str | None = None
    skills: tuple[str, ...] = ()
    portfolio: tuple[str, ...] = ()
    company_name: str | None = None
    industry: str | None = None
    website: str | None = None

    @classmethod
    def from_model(cls, account: Any) -> AccountOut:
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            role=account.role,
            avatar_url=account.avatar_url,
            providers=tuple(sorted(account.provider_ids)),
            experience_level=account.experience_level,
            skills=tuple(account.skills or ()),
            portfolio=tuple(account.portfolio or ()),
            company_name=account.company_name,
            industry=account.industry,
            website=account.website,
        )


@dataclass(frozen=True, slots=True)
class PendingTicket:
    """
    Proof that an identity was verified but registration is unfinished.

    :param ticket_id: Opaque single-use identifier handed to the client.
    :param provider: Identity provider name; ``None`` for password sign-up.
    :param subject: Provider subject; ``None`` for password sign-up.
    :param email: Verified email.
    :param name: Display name from the provider or sign-up form.
    :param account_id: Existing unassigned account to complete, when any.
    :param expires_at: Absolute expiry (UTC).
    """

    ticket_id: str
    email: str
    name: str
    expires_at: datetime
    provider: str | None = None
    subject: str | None = None
    avatar_url: str | None = None
    account_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingTicket:
        values = dict(data)
        expires_at = datetime.fromisoformat(values.pop("expires_at"))
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return cls(expires_at=expires_at, **values)


@dataclass(frozen=True, slots=True)
class SessionEstablished:
    """Sign-in succeeded; ``created`` is ``True`` for a brand-new account."""

    account: AccountOut
    tokens: TokenPairOut
    created: bool = False


@dataclass(frozen=True, slots=True)
class AwaitingCompletion:
    """The identity is known but a role must be chosen first."""

    ticket: PendingTicket
    requirements: dict[str, dict[str, list[str]]] = field(default_factory=dict)


AuthOutcome = SessionEstablished | AwaitingCompletion
