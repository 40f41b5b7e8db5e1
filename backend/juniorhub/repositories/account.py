"""Account repository: lookups by email and provider identity, linking."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import select

from juniorhub.models.account import Account, AccountRole, FederatedIdentity
from juniorhub.repositories.base import BaseRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    It NEVER issues tokens or decides roles; it only stores what the
    services tell it to.
    """

    model = Account

    def _filterable_fields(self):
        return {"email": Account.email, "role": Account.role}

    def _updatable_fields(self):
        """Profile fields assignable after creation (not email or password)."""
        return {
            "name",
            "avatar_url",
            "role",
            "experience_level",
            "skills",
            "portfolio",
            "company_name",
            "industry",
            "website",
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: Account or ``None`` when not found.
        """
        stmt = select(Account).where(Account.email == normalize_email(email))
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(Account.id).where(Account.email == normalize_email(email))
        return bool(self.session.execute(stmt).first())

    def get_by_provider_id(self, provider: str, subject: str) -> Account | None:
        """Fetch the account linked to ``(provider, subject)``.

        :param provider: Provider name, e.g. ``"google"``.
        :param subject: Stable id the provider assigns to the user.
        :returns: Linked account or ``None``.
        """
        stmt = (
            select(Account)
            .join(FederatedIdentity, FederatedIdentity.account_id == Account.id)
            .where(FederatedIdentity.provider == provider, FederatedIdentity.subject == subject)
        )
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def authenticate(self, email: str, password: str) -> Account | None:
        """Return the account when ``password`` matches, else ``None``.

        Provider-only accounts have no password hash and never match.
        """
        account = self.get_by_email(email)
        if account is None or not account.verify_password(password):
            return None
        return account

    # ---------------------------- Writes ----------------------------

    def create(
        self,
        *,
        email: str,
        name: str,
        role: AccountRole | str = AccountRole.UNASSIGNED,
        password: str | None = None,
        avatar_url: str | None = None,
        profile: Mapping[str, Any] | None = None,
    ) -> Account:
        """Insert a new account and flush to obtain its id.

        :param profile: Role-specific fields (see :meth:`assign_role`).
        :raises sqlalchemy.exc.IntegrityError: On duplicate email at flush.
        """
        account = Account(
            email=email,
            name=name,
            role=role.value if isinstance(role, AccountRole) else role,
            avatar_url=avatar_url,
            skills=[],
            portfolio=[],
        )
        if password is not None:
            account.password = password
        if profile:
            self.assign_updates(account, profile, flush=False)
        return self.add(account)

    def assign_role(
        self, account: Account, role: AccountRole | str, profile: Mapping[str, Any]
    ) -> Account:
        """Set ``role`` and its profile fields in one flush."""
        fields = dict(profile)
        fields["role"] = role.value if isinstance(role, AccountRole) else role
        return self.assign_updates(account, fields)

    def link_provider(self, account: Account, provider: str, subject: str) -> bool:
        """Link ``(provider, subject)`` to ``account`` if it has no link for that provider.

        Idempotent: an existing link for the provider is left untouched.

        :returns: ``True`` when a new link was created.
        """
        if provider in account.provider_ids:
            return False
        account.identities.append(FederatedIdentity(provider=provider, subject=subject))
        self.flush()
        return True
