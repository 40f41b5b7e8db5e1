from juniorhub.realtime import Connection, RoomRegistry


class TestRoomRegistry:
    async def test_join_is_idempotent(self):
        registry = RoomRegistry()
        conn = Connection()

        assert await registry.join("project-1", conn) is True
        assert await registry.join("project-1", conn) is False
        assert await registry.members("project-1") == frozenset({conn})

    async def test_leave_drops_empty_rooms(self):
        registry = RoomRegistry()
        conn = Connection()
        await registry.join("project-1", conn)

        assert await registry.leave("project-1", conn) is True
        assert await registry.leave("project-1", conn) is False
        assert await registry.room_count() == 0
        assert await registry.rooms_of(conn) == frozenset()

    async def test_discard_leaves_every_room(self):
        registry = RoomRegistry()
        a, b = Connection(), Connection()
        await registry.join("project-1", a)
        await registry.join("project-2", a)
        await registry.join("project-2", b)

        left = await registry.discard(a)

        assert left == frozenset({"project-1", "project-2"})
        assert await registry.members("project-2") == frozenset({b})
        assert await registry.room_count() == 1

    async def test_members_is_a_snapshot(self):
        registry = RoomRegistry()
        a, b = Connection(), Connection()
        await registry.join("project-1", a)

        snapshot = await registry.members("project-1")
        await registry.join("project-1", b)

        assert snapshot == frozenset({a})
        assert await registry.members("unknown") == frozenset()
