"""
IdentityService
===============

Password sign-up and sign-in for the :class:`Account` aggregate.

Accounts created without a role are stored as ``unassigned``; signing in to
one yields a registration ticket instead of tokens.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from juniorhub.models.account import AccountRole
from juniorhub.repositories.account import AccountRepository
from juniorhub.services._shared.base import BaseService, ServiceContext
from juniorhub.services._shared.dto import (
    AccountOut,
    AuthOutcome,
    AwaitingCompletion,
    SessionEstablished,
)
from juniorhub.services._shared.errors import (
    ConflictError,
    InvalidCredentialError,
    NotFoundError,
    violates,
)
from juniorhub.services._shared.policies.roles import (
    clean_role_fields,
    completion_requirements,
    ensure_assignable_role,
)
from juniorhub.services.identity.dto import LoginIn, RegisterIn
from juniorhub.services.registration.tickets import TicketBook
from juniorhub.services.tokens.service import TokenService

log = logging.getLogger(__name__)


class IdentityService(BaseService):
    """
    Application service for password-based identities.

    :param tokens: Issues the session once an account holds a role.
    :param tickets: Issues registration tickets for unassigned accounts.
    """

    def __init__(
        self,
        *,
        tokens: TokenService,
        tickets: TicketBook,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.tokens = tokens
        self.tickets = tickets

    # --------------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------------- #

    def register(self, dto: RegisterIn) -> AuthOutcome:
        """
        Create a password account.

        With a role, the profile is validated up front and a session is
        returned. Without one, an ``unassigned`` account is stored and a
        ticket is returned for :meth:`RegistrationService.complete`.

        :raises InvalidRoleError: When ``dto.role`` is given but not assignable.
        :raises MissingRoleFieldsError: When the role's required fields are absent.
        :raises InvalidRoleFieldsError: When a role field holds an unknown value.
        :raises ConflictError: When the email is already registered.
        """
        role: str | None = None
        profile: dict = {}
        if dto.role is not None:
            role = ensure_assignable_role(dto.role)
            profile = clean_role_fields(role, dto.profile)

        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            if repo.exists_by_email(dto.email):
                raise ConflictError("Account", "email already in use")
            try:
                account = repo.create(
                    email=dto.email,
                    name=dto.name,
                    password=dto.password,
                    role=role or AccountRole.UNASSIGNED,
                    profile=profile,
                )
            except IntegrityError as exc:
                if violates(exc, "uq_accounts_email") or violates(exc, "accounts.email"):
                    raise ConflictError("Account", "email already in use") from exc
                raise
            out = AccountOut.from_model(account)

        log.info("identity.registered role=%s", out.role, extra={"account_id": out.id})
        return self._outcome(out, created=True)

    def create_admin(self, *, email: str, password: str, name: str) -> AccountOut:
        """
        Create an administrator; the API never hands out this role.

        :raises ConflictError: When the email is already registered.
        """
        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            if repo.exists_by_email(email):
                raise ConflictError("Account", "email already in use")
            account = repo.create(
                email=email, name=name, password=password, role=AccountRole.ADMIN
            )
            out = AccountOut.from_model(account)
        log.info("identity.admin_created", extra={"account_id": out.id})
        return out

    # --------------------------------------------------------------------- #
    # Authentication
    # --------------------------------------------------------------------- #

    def login(self, dto: LoginIn) -> AuthOutcome:
        """
        Check credentials.

        :raises InvalidCredentialError: Unknown email, wrong password, or a
            provider-only account; the message never says which.
        """
        with self.ro_uow() as uow:
            account = uow.accounts.authenticate(dto.email, dto.password)
            if account is None:
                raise InvalidCredentialError("Invalid credentials")
            out = AccountOut.from_model(account)
        return self._outcome(out, created=False)

    def get_account(self, account_id: int) -> AccountOut:
        """:raises NotFoundError: When the account does not exist."""
        with self.ro_uow() as uow:
            account = uow.accounts.get(account_id)
            if account is None:
                raise NotFoundError("Account", account_id)
            return AccountOut.from_model(account)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _outcome(self, account: AccountOut, *, created: bool) -> AuthOutcome:
        if account.role == AccountRole.UNASSIGNED.value:
            ticket = self.tickets.issue(
                email=account.email,
                name=account.name,
                avatar_url=account.avatar_url,
                account_id=account.id,
            )
            return AwaitingCompletion(ticket=ticket, requirements=completion_requirements())
        return SessionEstablished(
            account=account,
            tokens=self.tokens.issue(account.id, account.role),
            created=created,
        )
