"""
ChannelGateway
==============

Admission and room fan-out for realtime connections.

A connection must present a valid access token before it can join rooms.
Once admitted it is placed in its personal room (``user-<id>``) and may
join or leave project rooms at will. :meth:`ChannelGateway.broadcast`
hands an event to every admitted member of a room, the sender included,
without waiting on any of them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from juniorhub.realtime.connection import DEFAULT_QUEUE_SIZE, Connection, ConnectionState
from juniorhub.realtime.registry import RoomRegistry
from juniorhub.services._shared.errors import (
    InvalidCredentialError,
    StorageUnavailableError,
    UnauthorizedError,
)
from juniorhub.services._shared.ports.event_publisher import PublishedEvent
from juniorhub.services.realtime.rooms import (
    EVENT_TYPES,
    EventType,
    is_personal_room,
    personal_room,
)
from juniorhub.services.tokens.dto import AccessClaims

log = logging.getLogger(__name__)

MAX_ROOM_ID_LENGTH = 128

AccessVerifier = Callable[[str], AccessClaims]


class ChannelGateway:
    """
    :param verify_access: Blocking access-token check, normally
        :meth:`TokenService.verify_access`. It runs in a worker thread.
    :param registry: Room membership; a fresh one when omitted.
    :param queue_size: Outbound queue capacity of each connection.
    """

    def __init__(
        self,
        verify_access: AccessVerifier,
        *,
        registry: RoomRegistry | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._verify = verify_access
        self.registry = registry or RoomRegistry()
        self.queue_size = queue_size

    def open(self, connection_id: str | None = None) -> Connection:
        return Connection(connection_id, queue_size=self.queue_size)

    # ------------------------------------------------------------------ #
    # Admission
    # ------------------------------------------------------------------ #

    async def authenticate(self, conn: Connection, token: str | None) -> AccessClaims:
        """
        Verify ``token`` and admit ``conn``.

        :raises InvalidCredentialError: Missing, expired, malformed or revoked
            token. The connection ends up ``REJECTED``.
        :raises StorageUnavailableError: The revocation list could not be
            read. The connection ends up ``REJECTED``.
        """
        conn.transition(ConnectionState.AUTHENTICATING)
        if not token:
            conn.transition(ConnectionState.REJECTED)
            log.warning("realtime.rejected reason=missing_token", extra={"connection_id": conn.id})
            raise InvalidCredentialError("Authentication error")
        try:
            claims = await asyncio.to_thread(self._verify, token)
        except InvalidCredentialError:
            conn.transition(ConnectionState.REJECTED)
            log.warning("realtime.rejected reason=invalid_token", extra={"connection_id": conn.id})
            raise
        except StorageUnavailableError:
            conn.transition(ConnectionState.REJECTED)
            log.error("realtime.rejected reason=storage_unavailable", extra={"connection_id": conn.id})
            raise

        conn.admit(claims)
        await self.registry.join(personal_room(claims.account_id), conn)
        log.info(
            "realtime.admitted",
            extra={"connection_id": conn.id, "account_id": claims.account_id},
        )
        return claims

    # ------------------------------------------------------------------ #
    # Membership
    # ------------------------------------------------------------------ #

    async def join(self, conn: Connection, room_id: Any) -> bool:
        """
        Subscribe ``conn`` to ``room_id``.

        :returns: ``False`` when it was already a member.
        :raises UnauthorizedError: ``conn`` is not admitted, or the room is
            another account's personal room.
        :raises ValueError: ``room_id`` is not a usable room name.
        """
        self._require_admitted(conn)
        room = self._check_room(room_id)
        if is_personal_room(room) and room != personal_room(conn.account_id or ""):
            raise UnauthorizedError("Cannot join another account's room")
        joined = await self.registry.join(room, conn)
        if joined:
            log.debug("realtime.joined", extra={"connection_id": conn.id, "room": room})
        return joined

    async def leave(self, conn: Connection, room_id: Any) -> bool:
        self._require_admitted(conn)
        return await self.registry.leave(self._check_room(room_id), conn)

    async def disconnect(self, conn: Connection) -> None:
        """Drop ``conn`` from every room and mark it closed."""
        rooms = await self.registry.discard(conn)
        conn.transition(ConnectionState.CLOSED)
        log.info(
            "realtime.closed rooms=%s",
            len(rooms),
            extra={"connection_id": conn.id, "account_id": conn.account_id},
        )

    # ------------------------------------------------------------------ #
    # Fan-out
    # ------------------------------------------------------------------ #

    async def broadcast(self, room_id: str, event_type: str, payload: Any) -> int:
        """
        Queue an event for every admitted member of ``room_id``.

        Never waits on a member: full queues drop their oldest event.

        :returns: How many connections received the event.
        :raises ValueError: Unknown ``event_type``.
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type!r}")
        event = PublishedEvent(room_id=room_id, type=event_type, payload=payload)
        members = await self.registry.members(room_id)
        delivered = 0
        for member in members:
            if member.is_admitted:
                member.enqueue(event)
                delivered += 1
        return delivered

    async def notify_account(self, account_id: int | str, payload: Any) -> int:
        return await self.broadcast(personal_room(account_id), EventType.NOTIFICATION.value, payload)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_admitted(conn: Connection) -> None:
        if not conn.is_admitted:
            raise UnauthorizedError()

    @staticmethod
    def _check_room(room_id: Any) -> str:
        if not isinstance(room_id, str) or not room_id.strip():
            raise ValueError("roomId must be a non-empty string")
        room = room_id.strip()
        if len(room) > MAX_ROOM_ID_LENGTH:
            raise ValueError("roomId is too long")
        return room
