"""Room membership owned by the gateway."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from juniorhub.realtime.connection import Connection


class RoomRegistry:
    """
    ``room -> connections`` plus the reverse index.

    Every read and write goes through one :class:`asyncio.Lock`; callers get
    snapshots, never the live sets.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._members: defaultdict[str, set[Connection]] = defaultdict(set)
        self._rooms: defaultdict[Connection, set[str]] = defaultdict(set)

    async def join(self, room_id: str, conn: Connection) -> bool:
        """Add ``conn`` to ``room_id``; ``False`` if it was already a member."""
        async with self._lock:
            members = self._members[room_id]
            if conn in members:
                return False
            members.add(conn)
            self._rooms[conn].add(room_id)
            return True

    async def leave(self, room_id: str, conn: Connection) -> bool:
        async with self._lock:
            members = self._members.get(room_id)
            if not members or conn not in members:
                return False
            members.discard(conn)
            if not members:
                del self._members[room_id]
            rooms = self._rooms.get(conn)
            if rooms is not None:
                rooms.discard(room_id)
                if not rooms:
                    del self._rooms[conn]
            return True

    async def members(self, room_id: str) -> frozenset[Connection]:
        async with self._lock:
            return frozenset(self._members.get(room_id, ()))

    async def rooms_of(self, conn: Connection) -> frozenset[str]:
        async with self._lock:
            return frozenset(self._rooms.get(conn, ()))

    async def discard(self, conn: Connection) -> frozenset[str]:
        """Remove ``conn`` from every room; returns the rooms it left."""
        async with self._lock:
            rooms = self._rooms.pop(conn, set())
            for room_id in rooms:
                members = self._members.get(room_id)
                if members is None:
                    continue
                members.discard(conn)
                if not members:
                    del self._members[room_id]
            return frozenset(rooms)

    async def room_count(self) -> int:
        async with self._lock:
            return len(self._members)
