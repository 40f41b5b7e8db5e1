from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Protocol
from uuid import uuid4


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()
    REVOKED = auto()
    REUSED = auto()


@dataclass(frozen=True, slots=True)
class RefreshRecordView:
    """
    Read-model for a refresh token record.

    :ivar jti: Refresh token identifier.
    :ivar account_id: Owner account id.
    :ivar family_id: Rotation chain the token belongs to.
    :ivar used: Whether the token has been consumed (rotated or logged out).
    :ivar revoked: Whether the token's family has been revoked.
    :ivar expires_at: Absolute expiration (UTC).
    """

    jti: str
    account_id: str
    family_id: str
    used: bool
    revoked: bool
    issued_at: datetime
    expires_at: datetime


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh-token records grouped in families.

    ``rotate`` and ``consume`` MUST be atomic: when two callers race on the
    same ``jti`` exactly one of them wins.
    """

    def new_jti(self) -> str:
        """Generate a new random refresh token identifier."""
        return uuid4().hex

    def new_family_id(self) -> str:
        """Generate a new random family identifier."""
        return uuid4().hex

    def register(
        self,
        *,
        jti: str,
        account_id: str,
        family_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        """
        Create a brand-new refresh record.

        This MUST run *before* the JWT is handed to the client.
        """

    def rotate(
        self,
        *,
        old_jti: str,
        new_jti: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        """
        Atomically consume ``old_jti`` and register ``new_jti`` in the same
        family and for the same account.

        :returns: ``RotationResult.OK`` on success, otherwise the failure.
        """

    def consume(self, jti: str) -> bool:
        """
        Mark ``jti`` as used without issuing a replacement.

        :returns: ``True`` only when the token was live (known, unused, not
            revoked).
        """

    def revoke_family(self, family_id: str, *, expires_at: datetime | None = None) -> int:
        """
        Revoke every record in the family, and the family itself.

        Once this returns, ``rotate`` and ``consume`` refuse every token of
        the family, including one minted by a rotation racing with the
        revocation.

        :param expires_at: How long the family must stay revoked; at least
            the lifetime of its newest refresh token.
        :returns: Number of records affected.
        """

    def get(self, jti: str) -> RefreshRecordView | None:
        """Fetch a single record snapshot (if present)."""


@dataclass(frozen=True, slots=True)
class _Record:
    account_id: str
    family_id: str
    issued_at: int
    expires_at: int
    used: bool = False
    revoked: bool = False


def _ts(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp())


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-process refresh store.

    A single lock makes ``rotate`` and ``consume`` atomic across threads,
    which is enough for tests and for a single-process development server.
    """

    def __init__(self) -> None:
        self._by_jti: dict[str, _Record] = {}
        self._by_family: dict[str, set[str]] = {}
        # family id -> revoked-until timestamp (None: for as long as we run)
        self._revoked_families: dict[str, int | None] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def new_jti(self) -> str:
        with self._lock:
            self._seq += 1
            return f"rt-{self._seq}"

    def new_family_id(self) -> str:
        with self._lock:
            self._seq += 1
            return f"fam-{self._seq}"

    def register(
        self,
        *,
        jti: str,
        account_id: str,
        family_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        with self._lock:
            self._by_jti[jti] = _Record(
                account_id=account_id,
                family_id=family_id,
                issued_at=_ts(issued_at),
                expires_at=_ts(expires_at),
            )
            self._by_family.setdefault(family_id, set()).add(jti)

    def rotate(
        self,
        *,
        old_jti: str,
        new_jti: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        with self._lock:
            rec = self._by_jti.get(old_jti)
            if rec is None:
                return RotationResult.NOT_FOUND
            if rec.revoked or self._family_revoked(rec.family_id):
                return RotationResult.REVOKED
            if rec.used:
                return RotationResult.REUSED
            if rec.expires_at <= _ts(now):
                return RotationResult.EXPIRED

            self._by_jti[old_jti] = replace(rec, used=True)
            self._by_jti[new_jti] = _Record(
                account_id=rec.account_id,
                family_id=rec.family_id,
                issued_at=_ts(now),
                expires_at=_ts(new_expires_at),
            )
            self._by_family.setdefault(rec.family_id, set()).add(new_jti)
            return RotationResult.OK

    def consume(self, jti: str) -> bool:
        with self._lock:
            rec = self._by_jti.get(jti)
            if rec is None or rec.used or rec.revoked:
                return False
            if self._family_revoked(rec.family_id):
                return False
            self._by_jti[jti] = replace(rec, used=True)
            return True

    def revoke_family(self, family_id: str, *, expires_at: datetime | None = None) -> int:
        with self._lock:
            self._revoked_families[family_id] = _ts(expires_at) if expires_at is not None else None
            jtis = self._by_family.get(family_id, set())
            for jti in jtis:
                rec = self._by_jti.get(jti)
                if rec is not None:
                    self._by_jti[jti] = replace(rec, revoked=True)
            return len(jtis)

    def _family_revoked(self, family_id: str) -> bool:
        # Caller holds the lock
        if family_id not in self._revoked_families:
            return False
        until = self._revoked_families[family_id]
        if until is not None and until <= _ts(datetime.now(UTC)):
            del self._revoked_families[family_id]
            return False
        return True

    def get(self, jti: str) -> RefreshRecordView | None:
        rec = self._by_jti.get(jti)
        if rec is None:
            return None
        return RefreshRecordView(
            jti=jti,
            account_id=rec.account_id,
            family_id=rec.family_id,
            used=rec.used,
            revoked=rec.revoked,
            issued_at=datetime.fromtimestamp(rec.issued_at, tz=UTC),
            expires_at=datetime.fromtimestamp(rec.expires_at, tz=UTC),
        )
