"""
Domain-level exceptions used within the service layer.

These exceptions are framework-agnostic: they never depend on Flask or HTTP.
They are the stable contract between services and their callers (the REST
API and the realtime gateway).

The translation to HTTP responses (RFC 7807) is handled by
:func:`juniorhub.services._shared.base.to_api_error`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The database constraint to match (e.g., ``'uq_accounts_email'``).

    Returns
    -------
    bool
        True if the error message names the constraint. SQLite reports the
        column list instead of the name, so ``accounts.email`` style
        fragments are matched too when the caller passes them.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them to ``APIError``; the realtime gateway
      maps authentication failures to a close frame.
    """


# --------------------------------------------------------------------------- #
# Credentials and sessions
# --------------------------------------------------------------------------- #


class InvalidCredentialError(ServiceError):
    """
    Wrong password, or a token that is malformed, badly signed, of the wrong
    type, or revoked.

    The message is deliberately uniform so callers cannot tell which check
    failed.
    """

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class TokenExpiredError(ServiceError):
    """A well-formed token whose lifetime has elapsed."""

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message)


class ReuseDetectedError(ServiceError):
    """
    A refresh token was presented after it had already been used.

    The whole token family has been revoked by the time this is raised.
    """

    def __init__(self, message: str = "Refresh token reuse detected; please log in again") -> None:
        super().__init__(message)


class UnauthorizedError(ServiceError):
    """An operation attempted by a caller that has not been admitted."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class StorageUnavailableError(ServiceError):
    """The refresh-token store or the database could not be reached.

    Callers should retry later; this is never reported as an auth failure.
    """

    def __init__(self, message: str = "Session storage unavailable") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Registration
# --------------------------------------------------------------------------- #


class InvalidTicketError(ServiceError):
    """A pending-registration ticket that is unknown, expired or already used."""

    def __init__(self, message: str = "Registration ticket is invalid or expired") -> None:
        super().__init__(message)


@dataclass(slots=True)
class InvalidRoleError(ServiceError):
    """
    A role that cannot be used for the requested operation.

    :param role: The rejected role value.
    """

    role: str | None

    def __str__(self) -> str:
        return f"Invalid role: {self.role!r}"


class MissingRoleFieldsError(ServiceError):
    """
    Role-specific required fields are absent.

    :param role: Role being assigned.
    :param fields: Names of the missing fields.
    """

    def __init__(self, role: str, fields: Iterable[str]) -> None:
        self.role = role
        self.fields = tuple(fields)
        super().__init__(f"Missing required fields for role {role!r}: {', '.join(self.fields)}")


class InvalidRoleFieldsError(ServiceError):
    """
    Role-specific fields are present but hold values the role does not accept.

    :param role: Role being assigned.
    :param errors: Field name to message.
    """

    def __init__(self, role: str, errors: Mapping[str, str]) -> None:
        self.role = role
        self.errors = dict(errors)
        super().__init__(f"Invalid fields for role {role!r}: {', '.join(self.errors)}")


# --------------------------------------------------------------------------- #
# Federation
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class UnknownProviderError(ServiceError):
    provider: str

    def __str__(self) -> str:
        return f"Unknown identity provider: {self.provider!r}"


class LoginAttemptExpiredError(ServiceError):
    """The ``state`` of a provider login is unknown or has expired."""

    def __init__(self, message: str = "Login attempt expired; please start again") -> None:
        super().__init__(message)


class FederationUnavailableError(ServiceError):
    """The identity provider could not be reached or answered garbage."""

    def __init__(self, message: str = "Identity provider unavailable") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Generic
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Account").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Account").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"
