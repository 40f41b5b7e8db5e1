"""Service layer public API.

Callers import services and their DTOs from :mod:`juniorhub.services`
without knowing the internal layout.

Re-exports
----------
- Base primitives: :class:`BaseService`, :class:`ServiceContext`
- Sessions: :class:`TokenService`, :class:`TokenPairOut`, :class:`AccessClaims`
- Password identities: :class:`IdentityService`, :class:`RegisterIn`, :class:`LoginIn`
- Providers: :class:`FederationBroker`, :class:`ExternalProfile`
- Completion: :class:`RegistrationService`, :class:`CompletionIn`, :class:`TicketBook`
- Realtime producers: :class:`RealtimeEventService`
- Outcomes: :class:`SessionEstablished`, :class:`AwaitingCompletion`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from ._shared.dto import AccountOut, AwaitingCompletion, PendingTicket, SessionEstablished
from .federation.dto import ExternalProfile, ProviderConfig, ProviderRedirect
from .federation.service import FederationBroker
from .identity.dto import LoginIn, RegisterIn
from .identity.service import IdentityService
from .realtime.service import RealtimeEventService
from .registration.dto import CompletionIn
from .registration.service import RegistrationService
from .registration.tickets import TicketBook
from .tokens.dto import AccessClaims, TokenConfig, TokenPairOut
from .tokens.service import TokenService

__all__ = [
    "AccessClaims",
    "AccountOut",
    "AwaitingCompletion",
    "BaseService",
    "CompletionIn",
    "ExternalProfile",
    "FederationBroker",
    "IdentityService",
    "LoginIn",
    "PendingTicket",
    "ProviderConfig",
    "ProviderRedirect",
    "RealtimeEventService",
    "RegisterIn",
    "RegistrationService",
    "ServiceContext",
    "SessionEstablished",
    "TicketBook",
    "TokenConfig",
    "TokenPairOut",
    "TokenService",
]
