from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from juniorhub.services._shared.ports import EphemeralStore


class RedisEphemeralStore(EphemeralStore):
    """
    JSON documents under ``eph:{key}`` with a Redis TTL.

    ``take`` runs GET and DEL inside one MULTI block, so only one caller can
    obtain a given document.
    """

    def __init__(self, r: redis.Redis, *, prefix: str = "eph:") -> None:
        self.r = r
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def put(self, key: str, value: dict[str, Any], *, ttl: timedelta) -> None:
        self.r.set(self._k(key), json.dumps(value), ex=max(1, int(ttl.total_seconds())))

    def peek(self, key: str) -> dict[str, Any] | None:
        raw = self.r.get(self._k(key))
        return json.loads(raw) if raw is not None else None

    def take(self, key: str) -> dict[str, Any] | None:
        pipe = self.r.pipeline(transaction=True)
        pipe.get(self._k(key))
        pipe.delete(self._k(key))
        raw, _deleted = pipe.execute()
        return json.loads(raw) if raw is not None else None
