from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Protocol


class FamilyDenylistStore(Protocol):
    """
    Denylist of revoked token **families**.

    Access tokens carry their family id, so revoking a family invalidates
    every outstanding access token of that chain without tracking each
    ``jti``. Entries only need to outlive the longest access-token lifetime.
    """

    def is_revoked(self, family_id: str) -> bool: ...
    def revoke_family(self, family_id: str, *, expires_at: datetime) -> None: ...


class InMemoryDenylistStore(FamilyDenylistStore):
    """In-process family denylist with lazy expiry."""

    def __init__(self) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def is_revoked(self, family_id: str) -> bool:
        with self._lock:
            until = self._revoked.get(family_id)
            if until is None:
                return False
            if until <= datetime.now(UTC):
                del self._revoked[family_id]
                return False
            return True

    def revoke_family(self, family_id: str, *, expires_at: datetime) -> None:
        with self._lock:
            current = self._revoked.get(family_id)
            if current is None or current < expires_at:
                self._revoked[family_id] = expires_at
