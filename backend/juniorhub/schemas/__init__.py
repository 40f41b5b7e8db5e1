"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AccountSchema,
    CompleteRegistrationSchema,
    FederationCallbackSchema,
    LoginSchema,
    PendingTicketSchema,
    ProviderRedirectSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
)

__all__ = [
    "AccountSchema",
    "CompleteRegistrationSchema",
    "FederationCallbackSchema",
    "LoginSchema",
    "PendingTicketSchema",
    "ProviderRedirectSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenPairSchema",
]
