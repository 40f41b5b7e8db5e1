from __future__ import annotations

from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]

from juniorhub.services._shared.ports import FamilyDenylistStore


class RedisFamilyDenylistStore(FamilyDenylistStore):
    """
    Revoked token families as TTL'd marker keys (``deny:fam:{family_id}``).
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(family_id: str) -> str:
        return f"deny:fam:{family_id}"

    def is_revoked(self, family_id: str) -> bool:
        return cast(int, self.r.exists(self._k(family_id))) == 1

    def revoke_family(self, family_id: str, *, expires_at: datetime) -> None:
        ttl = max(1, int(expires_at.timestamp() - datetime.now(UTC).timestamp()))
        # Idempotent; a later revocation only ever pushes the expiry out
        self.r.set(self._k(family_id), "1", ex=ttl)
