"""RegistrationService: turning tickets into accounts with a role."""

from __future__ import annotations

import pytest
from juniorhub.repositories.account import AccountRepository
from juniorhub.services._shared.errors import (
    ConflictError,
    InvalidRoleError,
    InvalidTicketError,
    MissingRoleFieldsError,
)
from juniorhub.services.registration.dto import CompletionIn
from juniorhub.services.registration.service import RegistrationService
from juniorhub.services.registration.tickets import TicketBook
from tests.factories.account import AccountFactory

JUNIOR_PROFILE = {"experience_level": "intermediate", "skills": "django"}


class TestRegistrationService:
    """Completion of password and provider registrations."""

    @pytest.fixture()
    def tickets(self, stores) -> TicketBook:
        return TicketBook(stores.ephemeral)

    @pytest.fixture()
    def service(self, token_service, tickets) -> RegistrationService:
        return RegistrationService(tokens=token_service, tickets=tickets)

    @pytest.fixture()
    def repo(self, session) -> AccountRepository:
        return AccountRepository(session=session)

    # -------------------------- Happy paths ------------------------------- #

    def test_provider_ticket_creates_linked_account(self, service, tickets, repo, token_service):
        ticket = tickets.issue(
            email="New.User@example.com",
            name="New User",
            provider="google",
            subject="g-123",
            avatar_url="https://img.example.com/a.png",
        )

        out = service.complete(CompletionIn(ticket.ticket_id, "junior", JUNIOR_PROFILE))

        assert out.created is True
        assert out.account.role == "junior"
        assert out.account.skills == ("django",)
        assert out.account.providers == ("google",)
        assert out.account.avatar_url == "https://img.example.com/a.png"
        assert token_service.verify_access(out.tokens.access_token).account_id == out.account.id

        stored = repo.get_by_provider_id("google", "g-123")
        assert stored is not None and stored.email == "new.user@example.com"
        # Provider-created accounts cannot sign in with a password
        assert stored.password_hash is None

    def test_ticket_bound_to_unassigned_account_assigns_role(self, service, tickets, repo):
        account = AccountFactory(unassigned=True, email="half@example.com")
        ticket = tickets.issue(email=account.email, name=account.name, account_id=account.id)

        out = service.complete(
            CompletionIn(
                ticket.ticket_id, "company", {"company_name": "Acme", "industry": "retail"}
            )
        )

        assert out.created is False
        assert out.account.id == account.id
        assert repo.get(account.id).role == "company"
        assert repo.get(account.id).company_name == "Acme"

    def test_ticket_resolves_existing_unassigned_account_by_email(self, service, tickets):
        account = AccountFactory(unassigned=True, email="same@example.com", password=False)
        ticket = tickets.issue(
            email="same@example.com", name="Same", provider="facebook", subject="fb-9"
        )

        out = service.complete(CompletionIn(ticket.ticket_id, "junior", JUNIOR_PROFILE))

        assert out.account.id == account.id
        assert out.account.providers == ("facebook",)

    # -------------------------- Ticket handling --------------------------- #

    def test_ticket_is_single_use(self, service, tickets):
        ticket = tickets.issue(email="once@example.com", name="Once", provider="google", subject="g-1")
        service.complete(CompletionIn(ticket.ticket_id, "junior", JUNIOR_PROFILE))

        with pytest.raises(InvalidTicketError):
            service.complete(CompletionIn(ticket.ticket_id, "junior", JUNIOR_PROFILE))

    def test_unknown_ticket(self, service):
        with pytest.raises(InvalidTicketError):
            service.complete(CompletionIn("does-not-exist", "junior", JUNIOR_PROFILE))

    def test_missing_fields_keep_the_ticket(self, service, tickets, repo):
        """A rejected role payload leaves the ticket usable for a retry."""
        ticket = tickets.issue(email="retry@example.com", name="Retry", provider="google", subject="g-2")

        with pytest.raises(MissingRoleFieldsError) as exc:
            service.complete(CompletionIn(ticket.ticket_id, "company", {"company_name": "Acme"}))

        assert exc.value.fields == ("industry",)
        assert tickets.peek(ticket.ticket_id) is not None
        assert repo.get_by_email("retry@example.com") is None

        out = service.complete(
            CompletionIn(ticket.ticket_id, "company", {"company_name": "Acme", "industry": "it"})
        )
        assert out.account.role == "company"

    @pytest.mark.parametrize("role", [None, "admin", "unassigned"])
    def test_invalid_role_keeps_the_ticket(self, service, tickets, role):
        ticket = tickets.issue(email="role@example.com", name="Role")

        with pytest.raises(InvalidRoleError):
            service.complete(CompletionIn(ticket.ticket_id, role, JUNIOR_PROFILE))

        assert tickets.peek(ticket.ticket_id) is not None

    def test_completed_account_cannot_be_completed_again(self, service, tickets):
        account = AccountFactory(email="done@example.com")
        ticket = tickets.issue(email=account.email, name=account.name, account_id=account.id)

        with pytest.raises(ConflictError):
            service.complete(CompletionIn(ticket.ticket_id, "company", {"company_name": "X", "industry": "Y"}))
