"""Unit tests for the in-memory room registry."""

import pytest

from src.api.middleware.error_handler import AuthenticationError
from src.realtime.registry import (
    InMemoryRoomRegistry,
    call_room,
    chat_room,
    company_room,
    user_room,
)


@pytest.fixture
def registry() -> InMemoryRoomRegistry:
    return InMemoryRoomRegistry()


class TestRoomNames:
    def test_room_names(self) -> None:
        assert user_room("u1") == "user:u1"
        assert company_room("c1") == "company:c1"
        assert call_room("42") == "call:42"
        assert chat_room("7") == "chat:7"


class TestRegister:
    """Tests for connection registration."""

    def test_joins_user_and_company_rooms(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")

        registry.register(conn, "u1", "co1")

        assert registry.rooms_of(conn) == {"user:u1", "company:co1"}
        assert conn.user_id == "u1"
        assert conn.company_id == "co1"
        assert registry.members_of("user:u1") == [conn]

    @pytest.mark.parametrize(
        "user_id,company_id", [(None, "co1"), ("u1", None), ("", "co1"), ("   ", "co1"), ("u1", "\t")]
    )
    def test_missing_ids_rejected(self, registry, connection_factory, user_id, company_id) -> None:
        conn = connection_factory("c1")

        with pytest.raises(AuthenticationError):
            registry.register(conn, user_id, company_id)

        assert registry.get_stats() == {"connections": 0, "rooms": 0}

    def test_two_sockets_same_user_share_room(self, registry, connection_factory) -> None:
        a, b = connection_factory("a"), connection_factory("b")

        registry.register(a, "u1", "co1")
        registry.register(b, "u1", "co1")

        assert {c.id for c in registry.members_of("user:u1")} == {"a", "b"}
        assert registry.get_stats() == {"connections": 2, "rooms": 2}


class TestRooms:
    """Tests for join/leave/unregister."""

    def test_join_is_idempotent(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        registry.join_room(conn, "call:1")
        registry.join_room(conn, "call:1")

        assert registry.members_of("call:1") == [conn]

    def test_leave_non_member_is_noop(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        registry.leave_room(conn, "call:999")

        assert registry.rooms_of(conn) == {"user:u1", "company:co1"}

    def test_leave_drops_empty_room(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")
        registry.join_room(conn, "chat:5")

        registry.leave_room(conn, "chat:5")

        assert registry.members_of("chat:5") == []
        assert registry.get_stats()["rooms"] == 2

    def test_join_ignored_for_unregistered(self, registry, connection_factory) -> None:
        conn = connection_factory("ghost")

        registry.join_room(conn, "call:1")

        assert registry.members_of("call:1") == []

    def test_unregister_releases_every_room(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")
        other = connection_factory("c2")
        registry.register(conn, "u1", "co1")
        registry.register(other, "u2", "co1")
        registry.join_room(conn, "call:1")

        registry.unregister(conn)

        assert registry.rooms_of(conn) == set()
        assert registry.members_of("call:1") == []
        assert registry.members_of("company:co1") == [other]
        assert registry.get_stats() == {"connections": 1, "rooms": 2}

    def test_unregister_twice_is_safe(self, registry, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        registry.unregister(conn)
        registry.unregister(conn)

        assert registry.get_stats() == {"connections": 0, "rooms": 0}
