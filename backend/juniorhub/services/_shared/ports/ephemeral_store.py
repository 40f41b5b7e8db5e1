from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Any, Protocol


class EphemeralStore(Protocol):
    """
    Short-lived JSON documents keyed by string, with single-use retrieval.

    Used for pending-registration tickets and provider login ``state``
    nonces. ``take`` MUST be atomic: a key can be taken at most once.
    """

    def put(self, key: str, value: dict[str, Any], *, ttl: timedelta) -> None: ...

    def peek(self, key: str) -> dict[str, Any] | None:
        """Read without consuming; ``None`` when missing or expired."""
        ...

    def take(self, key: str) -> dict[str, Any] | None:
        """Read and delete in one step; ``None`` when missing or expired."""
        ...


class InMemoryEphemeralStore(EphemeralStore):
    """In-process store with monotonic-clock expiry."""

    def __init__(self) -> None:
        self._items: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> dict[str, Any] | None:
        item = self._items.get(key)
        if item is None:
            return None
        deadline, value = item
        if deadline <= time.monotonic():
            del self._items[key]
            return None
        return value

    def put(self, key: str, value: dict[str, Any], *, ttl: timedelta) -> None:
        with self._lock:
            self._items[key] = (time.monotonic() + ttl.total_seconds(), dict(value))

    def peek(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._live(key)
            return dict(value) if value is not None else None

    def take(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._live(key)
            if value is None:
                return None
            del self._items[key]
            return value
