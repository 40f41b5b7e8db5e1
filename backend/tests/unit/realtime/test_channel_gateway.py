"""ChannelGateway: admission, membership and fan-out."""

from __future__ import annotations

import pytest
from juniorhub.realtime import ChannelGateway, ConnectionState
from juniorhub.services._shared.errors import (
    InvalidCredentialError,
    StorageUnavailableError,
    UnauthorizedError,
)


def _drain(conn) -> list:
    events = []
    while not conn.queue.empty():
        events.append(conn.queue.get_nowait())
    return events


class TestAdmission:
    async def test_valid_token_admits_into_personal_room(self, gateway, token_for):
        conn = gateway.open()

        claims = await gateway.authenticate(conn, token_for(7))

        assert claims.account_id == 7
        assert conn.state is ConnectionState.ADMITTED
        assert await gateway.registry.rooms_of(conn) == frozenset({"user-7"})

    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token_is_rejected(self, gateway, token):
        conn = gateway.open()

        with pytest.raises(InvalidCredentialError):
            await gateway.authenticate(conn, token)

        assert conn.state is ConnectionState.REJECTED

    async def test_expired_token_is_rejected_before_any_join(self, gateway, expired_token):
        conn = gateway.open()

        with pytest.raises(InvalidCredentialError):
            await gateway.authenticate(conn, expired_token)
        with pytest.raises(UnauthorizedError):
            await gateway.join(conn, "project-1")

        assert await gateway.registry.room_count() == 0

    async def test_storage_outage_rejects_without_auth_error(self):
        def verify(token):
            raise StorageUnavailableError()

        gateway = ChannelGateway(verify)
        conn = gateway.open()

        with pytest.raises(StorageUnavailableError):
            await gateway.authenticate(conn, "whatever")
        assert conn.state is ConnectionState.REJECTED


class TestMembership:
    async def test_join_and_leave(self, gateway, admitted):
        conn = await admitted(1)

        assert await gateway.join(conn, "project-1") is True
        assert await gateway.join(conn, " project-1 ") is False
        assert await gateway.leave(conn, "project-1") is True
        assert await gateway.leave(conn, "project-1") is False

    async def test_own_personal_room_is_fine(self, gateway, admitted):
        conn = await admitted(1)

        assert await gateway.join(conn, "user-1") is False

    async def test_someone_elses_personal_room_is_refused(self, gateway, admitted):
        conn = await admitted(1)

        with pytest.raises(UnauthorizedError):
            await gateway.join(conn, "user-2")

    @pytest.mark.parametrize("room", [None, "", "   ", 42, "x" * 129])
    async def test_unusable_room_ids(self, gateway, admitted, room):
        conn = await admitted(1)

        with pytest.raises(ValueError):
            await gateway.join(conn, room)

    async def test_disconnect_leaves_every_room(self, gateway, admitted):
        conn = await admitted(1)
        await gateway.join(conn, "project-1")

        await gateway.disconnect(conn)

        assert conn.state is ConnectionState.CLOSED
        assert await gateway.broadcast("project-1", "created", {}) == 0
        assert await gateway.registry.room_count() == 0


class TestBroadcast:
    async def test_members_receive_and_outsiders_do_not(self, gateway, admitted):
        alice = await admitted(1)
        bob = await admitted(2)
        carol = await admitted(3)
        await gateway.join(alice, "project-1")
        await gateway.join(bob, "project-1")
        await gateway.join(carol, "project-2")

        delivered = await gateway.broadcast("project-1", "created", {"id": 10, "body": "hi"})

        assert delivered == 2
        for member in (alice, bob):
            (event,) = _drain(member)
            assert event.to_wire() == {
                "type": "created",
                "roomId": "project-1",
                "payload": {"id": 10, "body": "hi"},
            }
        assert _drain(carol) == []

    async def test_unknown_event_type(self, gateway):
        with pytest.raises(ValueError):
            await gateway.broadcast("project-1", "exploded", {})

    async def test_notify_reaches_every_connection_of_the_account(self, gateway, admitted):
        laptop = await admitted(5)
        phone = await admitted(5)
        other = await admitted(6)

        assert await gateway.notify_account(5, {"message": "hired"}) == 2
        assert [e.type for e in _drain(laptop)] == ["notification"]
        assert [e.type for e in _drain(phone)] == ["notification"]
        assert _drain(other) == []

    async def test_slow_member_never_blocks_the_broadcast(self, stub_token_service, token_for):
        gateway = ChannelGateway(stub_token_service.verify_access, queue_size=1)
        slow = gateway.open()
        await gateway.authenticate(slow, token_for(1))
        await gateway.join(slow, "project-1")

        for n in range(3):
            assert await gateway.broadcast("project-1", "updated", {"n": n}) == 1

        assert slow.dropped == 2
        assert slow.resync_required is True
        assert [e.payload for e in _drain(slow)] == [{"n": 2}]
