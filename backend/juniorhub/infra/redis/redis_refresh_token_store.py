from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import redis  # type: ignore[import-untyped]

from juniorhub.services._shared.ports import RefreshRecordView, RefreshTokenStore, RotationResult


def _s(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


def _field(h: dict[Any, Any], name: str, default: str = "") -> str:
    # Works with and without ``decode_responses``
    return _s(h.get(name, h.get(name.encode())), default)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store.

    Layout: one hash per token (``rt:{jti}``) expiring with the token, one
    set per family (``rt:f:{family_id}``) listing its tokens, and a marker
    (``rt:f:{family_id}:revoked``) once the family is revoked.
    ``rotate`` and ``consume`` use WATCH/MULTI/EXEC on the token and on the
    family marker, so two callers racing on the same token cannot both
    succeed and nothing in a revoked family can be rotated or consumed.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(jti: str) -> str:
        return f"rt:{jti}"

    @staticmethod
    def _kf(family_id: str) -> str:
        return f"rt:f:{family_id}"

    @staticmethod
    def _kr(family_id: str) -> str:
        return f"rt:f:{family_id}:revoked"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return int(dt.timestamp())

    # -------------------- API ------------------------

    def new_jti(self) -> str:
        return uuid.uuid4().hex

    def new_family_id(self) -> str:
        return uuid.uuid4().hex

    def register(
        self,
        *,
        jti: str,
        account_id: str,
        family_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Insert the record *before* the JWT is issued to the client."""
        key = self._k(jti)
        exp_ts = self._to_ts(expires_at)
        ttl = max(1, exp_ts - self._to_ts(datetime.now(UTC)))

        pipe = self.r.pipeline(transaction=True)
        pipe.hset(
            key,
            mapping={
                "account_id": account_id,
                "family_id": family_id,
                "issued_at": str(self._to_ts(issued_at)),
                "expires_at": str(exp_ts),
                "used": "0",
                "revoked": "0",
            },
        )
        pipe.expire(key, ttl)
        pipe.sadd(self._kf(family_id), jti)
        pipe.expire(self._kf(family_id), ttl)
        pipe.execute()

    def rotate(
        self,
        *,
        old_jti: str,
        new_jti: str,
        now: datetime,
        new_expires_at: datetime,
    ) -> RotationResult:
        now_ts = self._to_ts(now)
        new_exp_ts = self._to_ts(new_expires_at)
        ttl = max(1, new_exp_ts - now_ts)
        k_old = self._k(old_jti)
        k_new = self._k(new_jti)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_old)
                    h = p.hgetall(k_old)
                    if not h:
                        p.unwatch()
                        return RotationResult.NOT_FOUND
                    if _field(h, "revoked", "0") == "1":
                        p.unwatch()
                        return RotationResult.REVOKED
                    if _field(h, "used", "0") == "1":
                        p.unwatch()
                        return RotationResult.REUSED
                    if int(_field(h, "expires_at", "0")) <= now_ts:
                        p.unwatch()
                        return RotationResult.EXPIRED

                    family_id = _field(h, "family_id")
                    k_family = self._kf(family_id)
                    p.watch(self._kr(family_id))
                    if p.exists(self._kr(family_id)):
                        p.unwatch()
                        return RotationResult.REVOKED

                    p.multi()
                    p.hset(k_old, "used", "1")
                    p.hset(
                        k_new,
                        mapping={
                            "account_id": _field(h, "account_id"),
                            "family_id": family_id,
                            "issued_at": str(now_ts),
                            "expires_at": str(new_exp_ts),
                            "used": "0",
                            "revoked": "0",
                        },
                    )
                    p.expire(k_new, ttl)
                    p.sadd(k_family, new_jti)
                    p.expire(k_family, ttl)
                    p.execute()
                return RotationResult.OK
            except redis.WatchError:
                # Someone touched the old record; re-read and decide again
                continue

    def consume(self, jti: str) -> bool:
        key = self._k(jti)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    h = p.hgetall(key)
                    if (
                        not h
                        or _field(h, "used", "0") == "1"
                        or _field(h, "revoked", "0") == "1"
                    ):
                        p.unwatch()
                        return False
                    k_revoked = self._kr(_field(h, "family_id"))
                    p.watch(k_revoked)
                    if p.exists(k_revoked):
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(key, "used", "1")
                    p.execute()
                return True
            except redis.WatchError:
                continue

    def revoke_family(self, family_id: str, *, expires_at: datetime | None = None) -> int:
        k_family = self._kf(family_id)
        if expires_at is not None:
            ttl = self._to_ts(expires_at) - self._to_ts(datetime.now(UTC))
        else:
            ttl = int(self.r.ttl(k_family))
        # Marker first: a rotation committing after this line sees it, one
        # committing before it is already listed in the family set
        self.r.set(self._kr(family_id), "1", ex=max(1, ttl))

        jtis = [_s(m) for m in self.r.smembers(k_family)]
        if not jtis:
            return 0

        read = self.r.pipeline(transaction=False)
        for jti in jtis:
            read.hget(self._k(jti), "expires_at")
        expiries = read.execute()

        live = [(jti, int(_s(exp))) for jti, exp in zip(jtis, expiries, strict=True) if exp]
        if not live:
            return 0
        pipe = self.r.pipeline(transaction=True)
        for jti, exp_ts in live:
            pipe.hset(self._k(jti), "revoked", "1")
            # Bound the key even if it expired between the read and this write
            pipe.expireat(self._k(jti), exp_ts)
        pipe.execute()
        return len(live)

    def get(self, jti: str) -> RefreshRecordView | None:
        h = self.r.hgetall(self._k(jti))
        if not h:
            return None
        return RefreshRecordView(
            jti=jti,
            account_id=_field(h, "account_id"),
            family_id=_field(h, "family_id"),
            used=_field(h, "used", "0") == "1",
            revoked=_field(h, "revoked", "0") == "1",
            issued_at=datetime.fromtimestamp(int(_field(h, "issued_at", "0")), tz=UTC),
            expires_at=datetime.fromtimestamp(int(_field(h, "expires_at", "0")), tz=UTC),
        )
