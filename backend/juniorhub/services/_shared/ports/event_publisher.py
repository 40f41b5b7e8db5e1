from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class PublishedEvent:
    """Envelope handed to the realtime gateway."""

    room_id: str
    type: str
    payload: Any

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type, "roomId": self.room_id, "payload": self.payload}


class EventPublisher(Protocol):
    """
    Port for pushing room events from the HTTP process to the gateway.

    Publishing is fire-and-forget: delivery to connected clients is
    at-most-once.
    """

    def publish(self, event: PublishedEvent) -> None: ...


class InMemoryEventPublisher(EventPublisher):
    """Collects published events; used in tests and single-process dev."""

    def __init__(self) -> None:
        self.events: list[PublishedEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: PublishedEvent) -> None:
        with self._lock:
            self.events.append(event)

    def for_room(self, room_id: str) -> list[PublishedEvent]:
        with self._lock:
            return [e for e in self.events if e.room_id == room_id]
