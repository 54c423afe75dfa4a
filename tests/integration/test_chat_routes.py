"""Integration tests for WhatsApp chat endpoints."""

from fastapi.testclient import TestClient

CHAT = {
    "id": "chat-1",
    "company_id": "company-1",
    "user_id": "user-1",
    "customer_phone": "5511999990000",
    "customer_name": "Maria",
    "status": "active",
    "unread_count": 0,
}


def set_fetch_chat(chats, chat) -> None:
    chats.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value.data = chat


class TestChats:
    def test_create_chat(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        chats = supabase_tables["whatsapp_chats"]
        chats.select.return_value.eq.return_value.eq.return_value.limit.return_value.execute.return_value.data = []
        chats.insert.return_value.execute.return_value.data = [{**CHAT, "status": "open"}]

        response = client.post(
            "/api/v1/whatsapp/chats",
            json={"customerPhone": "5511999990000", "customerName": "Maria"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["status"] == "open"

    def test_get_missing_chat_is_404(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        set_fetch_chat(supabase_tables["whatsapp_chats"], None)

        response = client.get("/api/v1/whatsapp/chats/missing", headers=auth_headers)

        assert response.status_code == 404

    def test_get_chat_with_messages(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        set_fetch_chat(supabase_tables["whatsapp_chats"], CHAT)
        supabase_tables["whatsapp_messages"].select.return_value.eq.return_value.order.return_value.limit.return_value.execute.return_value.data = [
            {"id": "m1", "chat_id": "chat-1", "content": "Oi", "direction": "incoming"}
        ]

        response = client.get("/api/v1/whatsapp/chats/chat-1", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["messages"][0]["content"] == "Oi"


class TestMessagesAndSuggestions:
    def test_outgoing_message_is_pushed_to_socket(
        self, client: TestClient, auth_headers: dict, supabase_tables
    ) -> None:
        set_fetch_chat(supabase_tables["whatsapp_chats"], CHAT)
        supabase_tables["whatsapp_messages"].insert.return_value.execute.return_value.data = [
            {"id": "m2", "chat_id": "chat-1", "content": "Bom dia!", "direction": "outgoing", "status": "sent"}
        ]

        with client.websocket_connect("/ws?userId=user-1&companyId=company-1") as ws:
            response = client.post(
                "/api/v1/whatsapp/chats/chat-1/messages",
                json={"content": "Bom dia!"},
                headers=auth_headers,
            )
            assert response.status_code == 201

            message = ws.receive_json()

        assert message["event"] == "whatsapp:message"
        assert message["data"]["chatId"] == "chat-1"
        assert message["data"]["message"]["id"] == "m2"

    def test_suggestion_placeholder_without_customer_message(
        self, client: TestClient, auth_headers: dict, supabase_tables
    ) -> None:
        set_fetch_chat(supabase_tables["whatsapp_chats"], CHAT)
        supabase_tables["whatsapp_messages"].select.return_value.eq.return_value.order.return_value.limit.return_value.execute.return_value.data = []

        response = client.get("/api/v1/whatsapp/chats/chat-1/suggestion", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["confidence"] == 0.5
        assert response.json()["type"] == "general"

    def test_suggestion_for_latest_customer_message(
        self, client: TestClient, auth_headers: dict, supabase_tables
    ) -> None:
        set_fetch_chat(supabase_tables["whatsapp_chats"], CHAT)
        supabase_tables["whatsapp_messages"].select.return_value.eq.return_value.order.return_value.limit.return_value.execute.return_value.data = [
            {"id": "m1", "chat_id": "chat-1", "content": "Como funciona?", "direction": "incoming"}
        ]
        supabase_tables["ai_suggestions"].insert.return_value.execute.return_value.data = [{"id": "sug-1"}]

        response = client.get("/api/v1/whatsapp/chats/chat-1/suggestion", headers=auth_headers)

        assert response.json()["type"] == "question"
        assert response.json()["context"] is None
