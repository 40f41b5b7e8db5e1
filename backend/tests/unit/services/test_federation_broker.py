"""FederationBroker: provider identities resolved onto accounts."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from juniorhub.repositories.account import AccountRepository
from juniorhub.services._shared.dto import AwaitingCompletion, SessionEstablished
from juniorhub.services._shared.errors import (
    InvalidCredentialError,
    LoginAttemptExpiredError,
    UnknownProviderError,
)
from juniorhub.services._shared.ports import StaticIdentityVerifier
from juniorhub.services.federation.dto import ExternalProfile, ProviderConfig
from juniorhub.services.federation.service import FederationBroker
from juniorhub.services.registration.tickets import TicketBook
from tests.factories.account import AccountFactory, FederatedIdentityFactory

GOOGLE = ProviderConfig(
    name="google",
    authorize_url="https://accounts.example.com/auth",
    client_id="client-1",
    callback_url="http://localhost/cb",
    scopes=("openid", "email"),
    response_type="id_token",
)


def _profile(subject="g-1", email="person@example.com", **kw) -> ExternalProfile:
    return ExternalProfile(provider="google", subject=subject, email=email, name="Person", **kw)


class TestFederationBroker:
    @pytest.fixture()
    def broker(self, token_service, stores) -> FederationBroker:
        verifier = StaticIdentityVerifier(
            "google",
            {
                "good-token": _profile(),
                "linked-token": _profile(subject="g-linked", email="linked@example.com"),
            },
        )
        return FederationBroker(
            tokens=token_service,
            tickets=TicketBook(stores.ephemeral),
            states=stores.ephemeral,
            providers={"google": GOOGLE},
            verifiers={"google": verifier},
        )

    @pytest.fixture()
    def repo(self, session) -> AccountRepository:
        return AccountRepository(session=session)

    # ------------------------------------------------------------------ #
    # begin
    # ------------------------------------------------------------------ #

    def test_begin_builds_consent_url_with_state(self, broker):
        redirect = broker.begin("google")

        query = parse_qs(urlparse(redirect.url).query)
        assert query["state"] == [redirect.state]
        assert query["nonce"] == [redirect.state]
        assert query["client_id"] == ["client-1"]
        assert query["scope"] == ["openid email"]

    def test_begin_unknown_provider(self, broker):
        with pytest.raises(UnknownProviderError):
            broker.begin("myspace")

    # ------------------------------------------------------------------ #
    # callback
    # ------------------------------------------------------------------ #

    def test_linked_account_gets_a_session(self, broker, token_service):
        account = AccountFactory(email="linked@example.com")
        FederatedIdentityFactory(account=account, provider="google", subject="g-linked")
        state = broker.begin("google").state

        outcome = broker.callback_with_credential("google", "linked-token", state=state)

        assert isinstance(outcome, SessionEstablished)
        assert outcome.account.id == account.id
        assert token_service.verify_access(outcome.tokens.access_token).account_id == account.id

    def test_email_match_links_the_provider(self, broker, repo):
        account = AccountFactory(email="person@example.com")
        state = broker.begin("google").state

        outcome = broker.callback(_profile(avatar_url="https://img/p.png"), state=state)

        assert isinstance(outcome, SessionEstablished)
        assert outcome.account.id == account.id
        assert outcome.account.providers == ("google",)
        assert outcome.account.avatar_url == "https://img/p.png"
        assert repo.get_by_provider_id("google", "g-1").id == account.id

    def test_unknown_identity_gets_a_ticket(self, broker, repo):
        state = broker.begin("google").state

        outcome = broker.callback(_profile(email="Fresh@Example.com"), state=state)

        assert isinstance(outcome, AwaitingCompletion)
        assert outcome.ticket.email == "fresh@example.com"
        assert outcome.ticket.provider == "google"
        assert outcome.ticket.subject == "g-1"
        assert outcome.ticket.account_id is None
        assert repo.get_by_email("fresh@example.com") is None

    def test_unassigned_account_gets_bound_ticket(self, broker):
        account = AccountFactory(email="person@example.com", unassigned=True)
        state = broker.begin("google").state

        outcome = broker.callback(_profile(), state=state)

        assert isinstance(outcome, AwaitingCompletion)
        assert outcome.ticket.account_id == account.id

    # ------------------------------------------------------------------ #
    # state handling
    # ------------------------------------------------------------------ #

    def test_state_is_single_use(self, broker):
        state = broker.begin("google").state
        broker.callback(_profile(), state=state)

        with pytest.raises(LoginAttemptExpiredError):
            broker.callback(_profile(), state=state)

    def test_unknown_state(self, broker):
        with pytest.raises(LoginAttemptExpiredError):
            broker.callback_with_credential("google", "good-token", state="forged")

    def test_state_of_another_provider(self, broker):
        broker.providers["facebook"] = GOOGLE
        state = broker.begin("facebook").state

        with pytest.raises(LoginAttemptExpiredError):
            broker.callback(_profile(), state=state)

    def test_rejected_credential_keeps_state(self, broker):
        state = broker.begin("google").state

        with pytest.raises(InvalidCredentialError):
            broker.callback_with_credential("google", "forged-token", state=state)

        outcome = broker.callback_with_credential("google", "good-token", state=state)
        assert isinstance(outcome, AwaitingCompletion)

    def test_callback_unknown_provider(self, broker):
        with pytest.raises(UnknownProviderError):
            broker.callback_with_credential("github", "x", state="s")
