"""Unit tests for EventDispatcher fan-out."""

import pytest

from src.realtime.dispatcher import DispatchKind, DispatchPayload, EventDispatcher
from src.realtime.registry import InMemoryRoomRegistry


@pytest.fixture
def registry() -> InMemoryRoomRegistry:
    return InMemoryRoomRegistry()


@pytest.fixture
def dispatcher(registry: InMemoryRoomRegistry) -> EventDispatcher:
    return EventDispatcher(registry)


class TestDispatch:
    """Tests for room delivery."""

    @pytest.mark.asyncio
    async def test_empty_room_delivers_nothing(self, dispatcher: EventDispatcher) -> None:
        delivered = await dispatcher.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, "user:nobody", {}))

        assert delivered == 0

    @pytest.mark.asyncio
    async def test_delivers_to_every_member(self, registry, dispatcher, connection_factory) -> None:
        a, b = connection_factory("a"), connection_factory("b")
        registry.register(a, "u1", "co1")
        registry.register(b, "u1", "co1")

        delivered = await dispatcher.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, "user:u1", {"x": 1}))

        assert delivered == 2
        assert a.sent == [("notification", {"x": 1})]
        assert b.sent == [("notification", {"x": 1})]

    @pytest.mark.asyncio
    async def test_failed_send_does_not_block_others(self, registry, dispatcher, connection_factory) -> None:
        broken = connection_factory("broken", fail=True)
        healthy = connection_factory("healthy")
        registry.register(broken, "u1", "co1")
        registry.register(healthy, "u1", "co1")

        delivered = await dispatcher.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, "user:u1", {}))

        assert delivered == 1
        assert len(healthy.sent) == 1

    @pytest.mark.asyncio
    async def test_excluded_connection_is_skipped(self, registry, dispatcher, connection_factory) -> None:
        sender, peer = connection_factory("sender"), connection_factory("peer")
        registry.register(sender, "u1", "co1")
        registry.register(peer, "u2", "co1")
        registry.join_room(sender, "chat:9")
        registry.join_room(peer, "chat:9")

        delivered = await dispatcher.dispatch(
            DispatchPayload(DispatchKind.TYPING_START, "chat:9", {}, exclude_connection_id="sender")
        )

        assert delivered == 1
        assert sender.sent == []
        assert peer.sent[0][0] == "typing:start"

    @pytest.mark.asyncio
    async def test_other_users_do_not_receive(self, registry, dispatcher, connection_factory) -> None:
        mine, theirs = connection_factory("mine"), connection_factory("theirs")
        registry.register(mine, "u1", "co1")
        registry.register(theirs, "u2", "co2")

        await dispatcher.send_notification("u1", {"id": "n1"})

        assert theirs.sent == []

    @pytest.mark.asyncio
    async def test_unregister_during_dispatch(self, registry, dispatcher, connection_factory) -> None:
        first, second = connection_factory("first"), connection_factory("second")
        registry.register(first, "u1", "co1")
        registry.register(second, "u1", "co1")

        async def send_and_unregister(event: str, data: dict) -> None:
            registry.unregister(first)
            registry.unregister(second)
            first.sent.append((event, data))

        first.send = send_and_unregister

        delivered = await dispatcher.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, "user:u1", {"x": 1}))

        assert delivered == 2
        assert first.sent == [("notification", {"x": 1})]
        assert second.sent == [("notification", {"x": 1})]
        assert registry.get_stats() == {"connections": 0, "rooms": 0}


class TestHelpers:
    """Tests for the typed send helpers."""

    @pytest.mark.asyncio
    async def test_send_ai_suggestion(self, registry, dispatcher, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        await dispatcher.send_ai_suggestion("u1", {"content": "Oferecer desconto"}, call_id="42")

        event, body = conn.sent[0]
        assert event == "ai:suggestion"
        assert body["suggestion"] == {"content": "Oferecer desconto"}
        assert body["callId"] == "42"
        assert "chatId" not in body
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_send_call_status(self, registry, dispatcher, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        await dispatcher.send_call_status("u1", "42", "completed", previous_status="in_progress", duration=95)

        event, body = conn.sent[0]
        assert event == "call:status"
        assert body["callId"] == "42"
        assert body["status"] == "completed"
        assert body["previousStatus"] == "in_progress"
        assert body["duration"] == 95

    @pytest.mark.asyncio
    async def test_send_call_status_omits_optional_fields(self, registry, dispatcher, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        await dispatcher.send_call_status("u1", "42", "ringing")

        body = conn.sent[0][1]
        assert "previousStatus" not in body
        assert "duration" not in body

    @pytest.mark.asyncio
    async def test_send_whatsapp_message(self, registry, dispatcher, connection_factory) -> None:
        conn = connection_factory("c1")
        registry.register(conn, "u1", "co1")

        await dispatcher.send_whatsapp_message("u1", "7", {"content": "Oi"})

        event, body = conn.sent[0]
        assert event == "whatsapp:message"
        assert body["chatId"] == "7"
        assert body["message"] == {"content": "Oi"}

    @pytest.mark.asyncio
    async def test_send_company_notification(self, registry, dispatcher, connection_factory) -> None:
        a, b = connection_factory("a"), connection_factory("b")
        registry.register(a, "u1", "co1")
        registry.register(b, "u2", "co1")

        delivered = await dispatcher.send_company_notification("co1", {"title": "Nova conversa"})

        assert delivered == 2
        assert a.sent[0][1]["notification"] == {"title": "Nova conversa"}
