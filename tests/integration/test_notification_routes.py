"""Integration tests for notification endpoints."""

from fastapi.testclient import TestClient

NOTIFICATION = {
    "id": "n1",
    "user_id": "user-1",
    "company_id": "company-1",
    "type": "new_chat",
    "title": "Nova conversa",
    "message": "Nova conversa com Maria",
    "read": False,
}


class TestListNotifications:
    def test_paginated_list(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        response_mock = (
            supabase_tables["notifications"]
            .select.return_value.eq.return_value.eq.return_value.order.return_value.range.return_value.execute.return_value
        )
        response_mock.data = [NOTIFICATION]
        response_mock.count = 1

        response = client.get("/api/v1/notifications?page=1&limit=10", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["has_next"] is False
        assert data["data"][0]["id"] == "n1"

    def test_limit_above_max_is_400(self, client: TestClient, auth_headers: dict) -> None:
        response = client.get("/api/v1/notifications?limit=500", headers=auth_headers)

        assert response.status_code == 400


class TestUnreadAndRead:
    def test_unread_count(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        supabase_tables["notifications"].select.return_value.eq.return_value.eq.return_value.execute.return_value.count = 3

        response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)

        assert response.json() == {"unread": 3}

    def test_mark_as_read(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        table = supabase_tables["notifications"]
        table.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value.data = {
            "id": "n1"
        }
        table.update.return_value.eq.return_value.execute.return_value.data = [{**NOTIFICATION, "read": True}]

        response = client.patch("/api/v1/notifications/n1/read", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["read"] is True

    def test_mark_unknown_is_404(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        table = supabase_tables["notifications"]
        table.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value.data = None

        response = client.patch("/api/v1/notifications/nope/read", headers=auth_headers)

        assert response.status_code == 404

    def test_read_all(self, client: TestClient, auth_headers: dict, supabase_tables) -> None:
        response = client.post("/api/v1/notifications/read-all", headers=auth_headers)

        assert response.json() == {"success": True}
        supabase_tables["notifications"].update.return_value.eq.return_value.eq.assert_called_once_with("read", False)
