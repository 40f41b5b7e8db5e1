"""GatewayServer over real sockets."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging

import pytest
from juniorhub.realtime.server import (
    AUTH_ERROR_CODE,
    GatewayServer,
    error_frame,
    extract_token,
    run_gateway,
)
from websockets.asyncio.client import connect
from websockets.asyncio.server import serve
from websockets.datastructures import Headers
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request


@contextlib.asynccontextmanager
async def running(gateway):
    server = GatewayServer(gateway)
    async with serve(server.handler, "127.0.0.1", 0) as ws_server:
        port = ws_server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}"


async def _recv_json(ws) -> dict:
    return json.loads(await asyncio.wait_for(ws.recv(), timeout=2))


class TestExtractToken:
    def test_bearer_header_wins(self):
        request = Request("/?token=from-query", Headers({"Authorization": "Bearer from-header"}))

        assert extract_token(request) == "from-header"

    def test_query_parameter(self):
        assert extract_token(Request("/ws?token=abc", Headers())) == "abc"

    @pytest.mark.parametrize("path,header", [("/", ""), ("/?token=", "Basic xyz"), ("/", "Bearer ")])
    def test_nothing_usable(self, path, header):
        headers = Headers({"Authorization": header}) if header else Headers()

        assert extract_token(Request(path, headers)) is None

    def test_no_request(self):
        assert extract_token(None) is None


class TestHandleMessage:
    @pytest.fixture()
    def server(self, gateway):
        return GatewayServer(gateway)

    async def test_join_is_acknowledged(self, server, admitted):
        conn = await admitted(1)

        reply = await server.handle_message(conn, json.dumps({"op": "join", "roomId": "project-3"}))

        assert reply == {"type": "ack", "op": "join", "roomId": "project-3"}

    @pytest.mark.parametrize(
        "raw,code",
        [
            ("not json", "bad_message"),
            ("[1, 2]", "bad_message"),
            (json.dumps({"op": "shout", "roomId": "project-1"}), "unknown_op"),
            (json.dumps({"op": "join", "roomId": ""}), "invalid_room"),
            (json.dumps({"op": "join", "roomId": "user-2"}), "unauthorized"),
        ],
    )
    async def test_bad_frames_get_error_frames(self, server, admitted, raw, code):
        conn = await admitted(1)

        reply = await server.handle_message(conn, raw)

        assert reply["type"] == "error"
        assert reply["payload"]["code"] == code


def test_error_frame_shape():
    assert error_frame("x", "y") == {"type": "error", "payload": {"code": "x", "message": "y"}}


class TestOverTheWire:
    async def test_admitted_client_receives_room_events(self, gateway, token_for):
        async with running(gateway) as url:
            async with connect(url, additional_headers={"Authorization": f"Bearer {token_for(1)}"}) as ws:
                await ws.send(json.dumps({"op": "join", "roomId": "project-9"}))
                assert (await _recv_json(ws))["type"] == "ack"

                delivered = await gateway.broadcast("project-9", "created", {"id": 1})
                event = await _recv_json(ws)

        assert delivered == 1
        assert event == {"type": "created", "roomId": "project-9", "payload": {"id": 1}}

    async def test_token_in_query_string(self, gateway, token_for):
        async with running(gateway) as url:
            async with connect(f"{url}/?token={token_for(4)}") as ws:
                await ws.send(json.dumps({"op": "join", "roomId": "user-4"}))
                reply = await _recv_json(ws)

        assert reply == {"type": "ack", "op": "join", "roomId": "user-4"}

    @pytest.mark.parametrize("use_expired", [False, True])
    async def test_rejected_handshake_closes_with_auth_error(self, gateway, expired_token, use_expired):
        headers = {"Authorization": f"Bearer {expired_token}"} if use_expired else {}
        async with running(gateway) as url:
            async with connect(url, additional_headers=headers) as ws:
                with pytest.raises(ConnectionClosed) as exc:
                    await asyncio.wait_for(ws.recv(), timeout=2)

        assert exc.value.rcvd.code == AUTH_ERROR_CODE
        assert exc.value.rcvd.reason == "Authentication error"
        assert await gateway.registry.room_count() == 0

    async def test_closing_the_socket_frees_its_rooms(self, gateway, token_for):
        async with running(gateway) as url:
            async with connect(url, additional_headers={"Authorization": f"Bearer {token_for(2)}"}) as ws:
                await ws.send(json.dumps({"op": "join", "roomId": "project-1"}))
                await _recv_json(ws)

            for _ in range(50):
                if await gateway.registry.room_count() == 0:
                    break
                await asyncio.sleep(0.02)

        assert await gateway.registry.room_count() == 0


class _CrashingRelay:
    async def run(self) -> None:
        raise RuntimeError("subscriber crashed")


async def test_relay_failure_is_logged_while_gateway_keeps_serving(gateway, caplog):
    stop = asyncio.get_running_loop().create_future()

    with caplog.at_level(logging.ERROR, logger="juniorhub.realtime.server"):
        serving = asyncio.create_task(
            run_gateway(gateway, host="127.0.0.1", port=0, relay=_CrashingRelay(), stop=stop)
        )
        for _ in range(100):
            if "realtime.relay_stopped" in caplog.text:
                break
            await asyncio.sleep(0.01)

        assert "realtime.relay_stopped" in caplog.text
        assert "subscriber crashed" in caplog.text
        assert not serving.done()

        stop.set_result(None)
        await asyncio.wait_for(serving, timeout=2)
