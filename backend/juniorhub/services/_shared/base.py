"""Base service: unit-of-work helpers, storage guard and error translation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import OperationalError

from juniorhub.core import errors as api_errors
from juniorhub.services._shared.errors import (
    ConflictError,
    FederationUnavailableError,
    InvalidCredentialError,
    InvalidRoleError,
    InvalidRoleFieldsError,
    InvalidTicketError,
    LoginAttemptExpiredError,
    MissingRoleFieldsError,
    NotFoundError,
    ReuseDetectedError,
    ServiceError,
    StorageUnavailableError,
    TokenExpiredError,
    UnauthorizedError,
    UnknownProviderError,
)
from juniorhub.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """
    Cross-cutting request-scoped data.

    :param actor_id: Authenticated account identifier, when any.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    request_id: str | None = None


def to_api_error(exc: ServiceError) -> api_errors.APIError:
    """
    Map a service-level error to its HTTP counterpart.

    :param exc: Error raised within a service.
    :returns: API error ready to be rendered as problem+json.
    """
    if isinstance(exc, TokenExpiredError):
        return api_errors.Unauthorized(str(exc), code="token_expired")
    if isinstance(exc, ReuseDetectedError):
        return api_errors.Unauthorized(str(exc), code="token_reused")
    if isinstance(exc, InvalidCredentialError):
        return api_errors.Unauthorized(str(exc), code="invalid_credentials")
    if isinstance(exc, UnauthorizedError):
        return api_errors.Unauthorized(str(exc))
    if isinstance(exc, MissingRoleFieldsError):
        return api_errors.Unprocessable(
            str(exc),
            code="missing_role_fields",
            details={"role": exc.role, "fields": list(exc.fields)},
        )
    if isinstance(exc, InvalidRoleFieldsError):
        return api_errors.Unprocessable(
            str(exc),
            code="invalid_role_fields",
            details={"role": exc.role, "errors": {k: [v] for k, v in exc.errors.items()}},
        )
    if isinstance(exc, InvalidRoleError):
        return api_errors.Unprocessable(str(exc), code="invalid_role")
    if isinstance(exc, InvalidTicketError):
        return api_errors.APIError(str(exc), status_code=400, code="invalid_ticket")
    if isinstance(exc, LoginAttemptExpiredError):
        return api_errors.APIError(str(exc), status_code=400, code="login_attempt_expired")
    if isinstance(exc, (UnknownProviderError, NotFoundError)):
        return api_errors.NotFound(str(exc))
    if isinstance(exc, ConflictError):
        return api_errors.Conflict(str(exc))
    if isinstance(exc, (StorageUnavailableError, FederationUnavailableError)):
        return api_errors.ServiceUnavailable(str(exc))
    return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide read-only and read-write units of work.
    * Turn backing-store outages into :class:`StorageUnavailableError`.
    * Centralize error translation.

    Notes
    -----
    Services never touch the global session directly; they always go through
    a unit of work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    # -------------------------- Storage ---------------------------------

    @contextmanager
    def storage_guard(self, operation: str) -> Iterator[None]:
        """
        Re-raise Redis and database connectivity failures as
        :class:`StorageUnavailableError`.

        :param operation: Short label used in the log record.
        """
        try:
            yield
        except (RedisError, OperationalError) as exc:
            log.error("storage.unavailable op=%s error=%s", operation, type(exc).__name__)
            raise StorageUnavailableError() from exc

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """Map service errors to API errors; anything else is returned untouched."""
        if isinstance(exc, ServiceError):
            return to_api_error(exc)
        return exc
