"""
WebSocket transport for :class:`~juniorhub.realtime.gateway.ChannelGateway`.

Wire protocol
-------------
- Handshake: access token in ``Authorization: Bearer <token>`` or in the
  ``token`` query parameter. A rejected token closes the socket with code
  4401 (``Authentication error``).
- Client -> server: ``{"op": "join" | "leave", "roomId": "project-42"}``,
  answered with ``{"type": "ack", "op": ..., "roomId": ...}`` or an
  ``error`` frame.
- Server -> client: ``{"type": created|updated|deleted|notification,
  "roomId": ..., "payload": ...}``, preceded by a ``resync`` frame when
  events had to be dropped for a slow client.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any
from urllib.parse import parse_qs, urlsplit

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request

from juniorhub.realtime.connection import Connection
from juniorhub.realtime.gateway import ChannelGateway
from juniorhub.realtime.relay import RedisEventRelay
from juniorhub.services._shared.errors import (
    InvalidCredentialError,
    StorageUnavailableError,
    UnauthorizedError,
)

log = logging.getLogger(__name__)

AUTH_ERROR_CODE = 4401
AUTH_ERROR_REASON = "Authentication error"
TRY_AGAIN_LATER_CODE = 1013
ROOM_OPS = ("join", "leave")


def extract_token(request: Request | None) -> str | None:
    """Bearer header first, then ``?token=``."""
    if request is None:
        return None
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    values = parse_qs(urlsplit(request.path).query).get("token")
    if values and values[0].strip():
        return values[0].strip()
    return None


def error_frame(code: str, message: str) -> dict[str, Any]:
    return {"type": "error", "payload": {"code": code, "message": message}}


class GatewayServer:
    def __init__(self, gateway: ChannelGateway) -> None:
        self.gateway = gateway

    async def handler(self, ws: ServerConnection) -> None:
        conn = self.gateway.open()
        try:
            await self.gateway.authenticate(conn, extract_token(ws.request))
        except InvalidCredentialError:
            await ws.close(code=AUTH_ERROR_CODE, reason=AUTH_ERROR_REASON)
            await self.gateway.disconnect(conn)
            return
        except StorageUnavailableError:
            await ws.close(code=TRY_AGAIN_LATER_CODE, reason="Try again later")
            await self.gateway.disconnect(conn)
            return

        writer = asyncio.create_task(self._pump(ws, conn))
        try:
            async for raw in ws:
                reply = await self.handle_message(conn, raw)
                await ws.send(json.dumps(reply))
        except ConnectionClosed:
            pass
        finally:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
            await self.gateway.disconnect(conn)

    async def handle_message(self, conn: Connection, raw: str | bytes) -> dict[str, Any]:
        try:
            message = json.loads(raw)
        except ValueError:
            return error_frame("bad_message", "Frames must be JSON objects")
        if not isinstance(message, dict):
            return error_frame("bad_message", "Frames must be JSON objects")

        op = message.get("op")
        room_id = message.get("roomId")
        if op not in ROOM_OPS:
            return error_frame("unknown_op", f"Unsupported op: {op!r}")
        try:
            if op == "join":
                await self.gateway.join(conn, room_id)
            else:
                await self.gateway.leave(conn, room_id)
        except UnauthorizedError as exc:
            return error_frame("unauthorized", str(exc))
        except ValueError as exc:
            return error_frame("invalid_room", str(exc))
        return {"type": "ack", "op": op, "roomId": room_id}

    @staticmethod
    async def _pump(ws: ServerConnection, conn: Connection) -> None:
        try:
            async for frame in conn.frames():
                await ws.send(json.dumps(frame, default=str))
        except ConnectionClosed:
            return


def _report_relay_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("realtime.relay_stopped", exc_info=exc)
    else:
        log.warning("realtime.relay_stopped")


async def run_gateway(
    gateway: ChannelGateway,
    *,
    host: str,
    port: int,
    relay: RedisEventRelay | None = None,
    stop: asyncio.Future[None] | None = None,
) -> None:
    """Serve until ``stop`` resolves (forever when omitted)."""
    server = GatewayServer(gateway)
    async with serve(server.handler, host, port):
        log.info("realtime.listening host=%s port=%s", host, port)
        relay_task = None
        if relay is not None:
            relay_task = asyncio.create_task(relay.run(), name="realtime-relay")
            # A dead relay leaves sockets open but silent
            relay_task.add_done_callback(_report_relay_exit)
        try:
            await (stop if stop is not None else asyncio.get_running_loop().create_future())
        finally:
            if relay_task is not None and not relay_task.done():
                relay_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await relay_task
