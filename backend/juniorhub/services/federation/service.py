"""
FederationBroker
================

Sign-in through an external identity provider.

``begin`` hands out a provider redirect guarded by a single-use ``state``
nonce. ``callback`` takes the verified provider profile and resolves it to
an account:

1. an account already linked to ``(provider, subject)``;
2. otherwise an account with the same email, which gets the provider
   linked to it;
3. otherwise nobody, and the caller receives a registration ticket.

Matched accounts that already hold a role get a session; unassigned ones
get a ticket bound to the account.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping
from datetime import timedelta

from juniorhub.models.account import AccountRole
from juniorhub.repositories.account import AccountRepository, normalize_email
from juniorhub.services._shared.base import BaseService, ServiceContext
from juniorhub.services._shared.dto import (
    AccountOut,
    AuthOutcome,
    AwaitingCompletion,
    SessionEstablished,
)
from juniorhub.services._shared.errors import LoginAttemptExpiredError, UnknownProviderError
from juniorhub.services._shared.policies.roles import completion_requirements
from juniorhub.services._shared.ports.ephemeral_store import EphemeralStore
from juniorhub.services._shared.ports.identity_verifier import IdentityVerifier
from juniorhub.services.federation.dto import ExternalProfile, ProviderConfig, ProviderRedirect
from juniorhub.services.registration.tickets import TicketBook
from juniorhub.services.tokens.service import TokenService

log = logging.getLogger(__name__)

STATE_PREFIX = "fedstate:"
DEFAULT_STATE_TTL = timedelta(minutes=10)


class FederationBroker(BaseService):
    """
    Maps provider identities onto accounts.

    :param tokens: Issues sessions for matched accounts with a role.
    :param tickets: Issues tickets for new or unassigned identities.
    :param states: Store for login ``state`` nonces.
    :param providers: Provider consent-screen settings by name.
    :param verifiers: Credential verifiers by provider name.
    :param state_ttl: How long a started login stays valid.
    """

    def __init__(
        self,
        *,
        tokens: TokenService,
        tickets: TicketBook,
        states: EphemeralStore,
        providers: Mapping[str, ProviderConfig],
        verifiers: Mapping[str, IdentityVerifier] | None = None,
        state_ttl: timedelta = DEFAULT_STATE_TTL,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.tokens = tokens
        self.tickets = tickets
        self.states = states
        self.providers = dict(providers)
        self.verifiers = dict(verifiers or {})
        self.state_ttl = state_ttl

    # ------------------------------------------------------------------ #
    # Start
    # ------------------------------------------------------------------ #

    def begin(self, provider: str) -> ProviderRedirect:
        """
        Start a provider login.

        :raises UnknownProviderError: When ``provider`` is not configured.
        """
        cfg = self.providers.get(provider)
        if cfg is None:
            raise UnknownProviderError(provider)
        state = secrets.token_urlsafe(24)
        self.states.put(STATE_PREFIX + state, {"provider": provider}, ttl=self.state_ttl)
        return ProviderRedirect(provider=provider, url=cfg.authorization_url(state), state=state)

    # ------------------------------------------------------------------ #
    # Callback
    # ------------------------------------------------------------------ #

    def callback_with_credential(self, provider: str, credential: str, *, state: str) -> AuthOutcome:
        """
        Verify ``credential`` with the provider, then run :meth:`callback`.

        The ``state`` is only consumed once the provider has vouched for the
        credential, so a provider outage does not burn the login attempt.

        :raises UnknownProviderError: No verifier for ``provider``.
        :raises LoginAttemptExpiredError: Unknown or expired ``state``.
        :raises InvalidCredentialError: The provider rejected the credential.
        :raises FederationUnavailableError: The provider could not be reached.
        """
        verifier = self.verifiers.get(provider)
        if verifier is None:
            raise UnknownProviderError(provider)
        self._check_state(provider, state, consume=False)
        profile = verifier.verify(credential)
        return self.callback(profile, state=state)

    def callback(self, profile: ExternalProfile, *, state: str) -> AuthOutcome:
        """
        Resolve a verified provider profile to a session or a ticket.

        :raises LoginAttemptExpiredError: Unknown, expired or mismatched ``state``.
        """
        self._check_state(profile.provider, state, consume=True)
        email = normalize_email(profile.email)

        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            account = repo.get_by_provider_id(profile.provider, profile.subject)
            if account is None:
                account = repo.get_by_email(email)
                if account is not None and repo.link_provider(
                    account, profile.provider, profile.subject
                ):
                    log.info(
                        "federation.linked_by_email",
                        extra={"account_id": account.id, "provider": profile.provider},
                    )
            if account is not None and profile.avatar_url and not account.avatar_url:
                repo.update(account, avatar_url=profile.avatar_url)
            matched = AccountOut.from_model(account) if account is not None else None

        if matched is None:
            ticket = self.tickets.issue(
                email=email,
                name=profile.name,
                provider=profile.provider,
                subject=profile.subject,
                avatar_url=profile.avatar_url,
            )
            return AwaitingCompletion(ticket=ticket, requirements=completion_requirements())

        if matched.role == AccountRole.UNASSIGNED.value:
            ticket = self.tickets.issue(
                email=matched.email,
                name=matched.name,
                provider=profile.provider,
                subject=profile.subject,
                avatar_url=matched.avatar_url or profile.avatar_url,
                account_id=matched.id,
            )
            return AwaitingCompletion(ticket=ticket, requirements=completion_requirements())

        return SessionEstablished(
            account=matched,
            tokens=self.tokens.issue(matched.id, matched.role),
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _check_state(self, provider: str, state: str, *, consume: bool) -> None:
        key = STATE_PREFIX + state
        data = self.states.take(key) if consume else self.states.peek(key)
        if data is None or data.get("provider") != provider:
            raise LoginAttemptExpiredError()
