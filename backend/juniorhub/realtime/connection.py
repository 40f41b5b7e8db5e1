"""
Per-connection state for the realtime gateway.

Each WebSocket gets one :class:`Connection`. Outbound events go through a
bounded queue so a slow client can never stall a broadcaster: when the
queue is full the oldest event is dropped and the connection is flagged
for a resync, which the writer announces before the next event it sends.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from juniorhub.services._shared.ports.event_publisher import PublishedEvent
from juniorhub.services.tokens.dto import AccessClaims

log = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
RESYNC_FRAME_TYPE = "resync"

_ids = itertools.count(1)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ADMITTED = "admitted"
    REJECTED = "rejected"
    CLOSED = "closed"


# Allowed transitions; CLOSED is reachable from everywhere
_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.CONNECTING: frozenset({ConnectionState.AUTHENTICATING}),
    ConnectionState.AUTHENTICATING: frozenset(
        {ConnectionState.ADMITTED, ConnectionState.REJECTED}
    ),
    ConnectionState.ADMITTED: frozenset(),
    ConnectionState.REJECTED: frozenset(),
    ConnectionState.CLOSED: frozenset(),
}


class Connection:
    """
    A single client of the gateway.

    :param connection_id: Identifier used in logs; generated when omitted.
    :param queue_size: Capacity of the outbound queue.
    """

    def __init__(self, connection_id: str | None = None, *, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be positive")
        self.id = connection_id or f"conn-{next(_ids)}"
        self.state = ConnectionState.CONNECTING
        self.claims: AccessClaims | None = None
        self.queue: asyncio.Queue[PublishedEvent] = asyncio.Queue(maxsize=queue_size)
        self.resync_required = False
        self.dropped = 0

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.state.value}>"

    # ---- state machine ---- #

    @property
    def is_admitted(self) -> bool:
        return self.state is ConnectionState.ADMITTED

    @property
    def account_id(self) -> int | None:
        return self.claims.account_id if self.claims else None

    def transition(self, target: ConnectionState) -> None:
        if target is ConnectionState.CLOSED:
            self.state = target
            return
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {target.value}")
        self.state = target

    def admit(self, claims: AccessClaims) -> None:
        self.transition(ConnectionState.ADMITTED)
        self.claims = claims

    # ---- outbound ---- #

    def enqueue(self, event: PublishedEvent) -> bool:
        """
        Queue ``event`` without waiting.

        :returns: ``False`` when an older event had to be dropped to make room.
        """
        if self.state is not ConnectionState.ADMITTED:
            return True
        delivered_all = True
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:  # pragma: no cover
                pass
            else:
                self.dropped += 1
                self.resync_required = True
                delivered_all = False
                log.warning(
                    "realtime.event_dropped dropped=%s",
                    self.dropped,
                    extra={"connection_id": self.id, "room": event.room_id},
                )
        self.queue.put_nowait(event)
        return delivered_all

    async def frames(self) -> AsyncIterator[dict[str, Any]]:
        """Yield wire frames in queue order, with a resync marker after drops."""
        while True:
            event = await self.queue.get()
            if self.resync_required:
                self.resync_required = False
                yield {"type": RESYNC_FRAME_TYPE, "payload": {"dropped": self.dropped}}
            yield event.to_wire()
