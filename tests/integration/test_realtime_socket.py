"""Integration tests for the /ws realtime endpoint."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

CALL = {
    "id": "call-1",
    "company_id": "company-1",
    "user_id": "user-1",
    "phone_number": "+5511999990000",
    "status": "in_progress",
    "started_at": "2024-05-01T12:00:00+00:00",
}

SOCKET_URL = "/ws?userId=user-1&companyId=company-1"


def set_call_lookup(calls, call) -> None:
    calls.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value.data = call


class TestHandshake:
    """Tests for socket authentication."""

    def test_missing_company_closes_with_policy_violation(self, client: TestClient) -> None:
        with client.websocket_connect("/ws?userId=user-1") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == 1008

    def test_token_for_other_user_closes(self, client: TestClient, token_factory) -> None:
        token = token_factory(sub="user-2")

        with client.websocket_connect(f"{SOCKET_URL}&token={token}") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == 1008

    def test_matching_token_is_accepted(self, client: TestClient, token_factory) -> None:
        with client.websocket_connect(f"{SOCKET_URL}&token={token_factory()}") as ws:
            ws.send_json({"event": "ping", "ackId": 1})

            assert ws.receive_json()["data"]["pong"] is True


class TestClientEvents:
    """Tests for acks and room membership."""

    def test_ping_ack(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_json({"event": "ping", "ackId": "a1"})
            ack = ws.receive_json()

        assert ack["event"] == "ack"
        assert ack["ackId"] == "a1"
        assert ack["data"]["pong"] is True
        assert "timestamp" in ack["data"]

    def test_join_call_ack_and_room(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_json({"event": "join:call", "data": {"callId": "call-1"}, "ackId": 7})

            assert ws.receive_json() == {"event": "ack", "ackId": 7, "data": {"success": True}}
            assert client.get("/health/realtime").json()["rooms"] == 3

    def test_unknown_event_ack(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_json({"event": "call.completed", "ackId": 2})

            assert ws.receive_json()["data"] == {"success": False, "error": "Unknown event: call.completed"}

    def test_invalid_envelope(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_text("not json")

            message = ws.receive_json()

        assert message["event"] == "error"
        assert message["data"]["success"] is False

    def test_binary_frame_is_parsed_as_envelope(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_bytes(b'{"event": "ping", "ackId": 7}')

            message = ws.receive_json()

        assert message["event"] == "ack"
        assert message["ackId"] == 7
        assert message["data"]["pong"] is True

    def test_undecodable_binary_frame_is_rejected(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_bytes(b"\x80\x81")

            message = ws.receive_json()

        assert message["event"] == "error"
        assert message["data"]["error"] == "Invalid message envelope"

    def test_disconnect_releases_rooms(self, client: TestClient) -> None:
        with client.websocket_connect(SOCKET_URL) as ws:
            ws.send_json({"event": "ping", "ackId": 1})
            ws.receive_json()
            assert client.get("/health/realtime").json()["connections"] == 1

        stats = client.get("/health/realtime").json()
        assert stats["connections"] == 0
        assert stats["rooms"] == 0


class TestServerPush:
    """Tests for events pushed by HTTP operations."""

    def test_status_change_reaches_agent_socket(
        self, client: TestClient, auth_headers: dict, supabase_tables
    ) -> None:
        calls = supabase_tables["calls"]
        set_call_lookup(calls, {**CALL, "status": "ringing"})
        calls.update.return_value.eq.return_value.execute.return_value.data = [CALL]

        with client.websocket_connect(SOCKET_URL) as ws:
            response = client.put("/api/v1/calls/call-1", json={"status": "in_progress"}, headers=auth_headers)
            assert response.status_code == 200

            message = ws.receive_json()

        assert message["event"] == "call:status"
        assert message["data"]["callId"] == "call-1"
        assert message["data"]["status"] == "in_progress"
        assert message["data"]["previousStatus"] == "ringing"

    def test_customer_line_pushes_suggestion(
        self, client: TestClient, auth_headers: dict, supabase_tables
    ) -> None:
        calls = supabase_tables["calls"]
        set_call_lookup(calls, CALL)
        calls.update.return_value.eq.return_value.execute.return_value.data = [CALL]
        supabase_tables["ai_suggestions"].insert.return_value.execute.return_value.data = [{"id": "sug-1"}]

        with client.websocket_connect(SOCKET_URL) as ws:
            response = client.post(
                "/api/v1/calls/call-1/transcript",
                json={"speaker": "customer", "text": "Está muito caro"},
                headers=auth_headers,
            )
            assert response.status_code == 200

            message = ws.receive_json()

        assert message["event"] == "ai:suggestion"
        assert message["data"]["callId"] == "call-1"
        assert message["data"]["suggestion"]["id"] == "sug-1"
        assert message["data"]["suggestion"]["type"] == "objection"
