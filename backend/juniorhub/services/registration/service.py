"""
RegistrationService
===================

Turns a pending-registration ticket into an account with a role and a
session.

The role and its required fields are checked *before* the ticket is
consumed, so a client that forgot a field can retry with the same ticket
and nothing is written in between.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from juniorhub.models.account import Account
from juniorhub.repositories.account import AccountRepository
from juniorhub.services._shared.base import BaseService, ServiceContext
from juniorhub.services._shared.dto import AccountOut, PendingTicket, SessionEstablished
from juniorhub.services._shared.errors import ConflictError, InvalidTicketError, violates
from juniorhub.services._shared.policies.roles import clean_role_fields, ensure_assignable_role
from juniorhub.services.registration.dto import CompletionIn
from juniorhub.services.registration.tickets import TicketBook
from juniorhub.services.tokens.service import TokenService

log = logging.getLogger(__name__)


class RegistrationService(BaseService):
    """
    Completes registrations started by password sign-up or federation.

    :param tokens: Issues the session for the completed account.
    :param tickets: Source of pending tickets.
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

    def complete(self, dto: CompletionIn) -> SessionEstablished:
        """
        Assign a role to the ticket's identity and open a session.

        The account is resolved in order: the account bound to the ticket,
        the account linked to the ticket's provider subject, the account
        with the ticket's email. If none exists one is created.

        :raises InvalidTicketError: Unknown, expired or already-used ticket.
        :raises InvalidRoleError: Role missing or not self-assignable.
        :raises MissingRoleFieldsError: Required profile fields are absent.
        :raises InvalidRoleFieldsError: A profile field holds an unknown value.
        :raises ConflictError: The resolved account already holds a role.
        """
        if self.tickets.peek(dto.ticket_id) is None:
            raise InvalidTicketError()

        role = ensure_assignable_role(dto.role)
        profile = clean_role_fields(role, dto.profile)

        ticket = self.tickets.consume(dto.ticket_id)
        if ticket is None:
            # Lost a race with a concurrent completion of the same ticket
            raise InvalidTicketError()

        created = False
        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            account = self._resolve(repo, ticket)
            if account is None:
                try:
                    account = repo.create(
                        email=ticket.email,
                        name=ticket.name,
                        role=role,
                        avatar_url=ticket.avatar_url,
                        profile=profile,
                    )
                except IntegrityError as exc:
                    if violates(exc, "uq_accounts_email") or violates(exc, "accounts.email"):
                        raise ConflictError("Account", "email already in use") from exc
                    raise
                created = True
            elif not account.is_unassigned:
                raise ConflictError("Account", "registration already completed")
            else:
                repo.assign_role(account, role, profile)
                if ticket.avatar_url and not account.avatar_url:
                    repo.update(account, avatar_url=ticket.avatar_url)

            if ticket.provider and ticket.subject:
                repo.link_provider(account, ticket.provider, ticket.subject)
            out = AccountOut.from_model(account)

        log.info(
            "registration.completed role=%s created=%s",
            out.role,
            created,
            extra={"account_id": out.id, "provider": ticket.provider},
        )
        return SessionEstablished(
            account=out,
            tokens=self.tokens.issue(out.id, out.role),
            created=created,
        )

    @staticmethod
    def _resolve(repo: AccountRepository, ticket: PendingTicket) -> Account | None:
        if ticket.account_id is not None:
            account = repo.get(ticket.account_id)
            if account is not None:
                return account
        if ticket.provider and ticket.subject:
            account = repo.get_by_provider_id(ticket.provider, ticket.subject)
            if account is not None:
                return account
        return repo.get_by_email(ticket.email)
