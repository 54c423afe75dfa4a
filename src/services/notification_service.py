"""In-app notification persistence and delivery."""

import logging
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import NotFoundError
from src.core.supabase import get_supabase_client
from src.models.notification import Notification, NotificationChannel, NotificationType
from src.realtime.dispatcher import EventDispatcher
from src.schemas.common import PaginatedResponse, utc_now

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for the notifications table.

    New notifications are pushed to the owner's ``user:`` room when a
    dispatcher is available.
    """

    DEFAULT_PAGE_SIZE = 20

    def __init__(self, dispatcher: EventDispatcher | None = None, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()
        self.dispatcher = dispatcher

    async def list_notifications(
        self,
        user_id: str,
        company_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PaginatedResponse:
        """List a user's notifications, newest first."""
        offset = (page - 1) * limit
        response = (
            self.client.table("notifications")
            .select("*", count="exact")
            .eq("user_id", user_id)
            .eq("company_id", company_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return PaginatedResponse.build(rows, total, page, limit)

    async def get_unread_count(self, user_id: str) -> int:
        response = (
            self.client.table("notifications")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("read", False)
            .execute()
        )
        return response.count or 0

    async def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        """Mark one notification as read.

        Raises:
            NotFoundError: If the notification does not belong to the user.
        """
        existing = (
            self.client.table("notifications")
            .select("id")
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        if not existing or not existing.data:
            raise NotFoundError("Notification not found")

        response = (
            self.client.table("notifications")
            .update({"read": True, "read_at": utc_now().isoformat()})
            .eq("id", notification_id)
            .execute()
        )
        return response.data[0]

    async def mark_all_as_read(self, user_id: str) -> None:
        self.client.table("notifications").update(
            {"read": True, "read_at": utc_now().isoformat()}
        ).eq("user_id", user_id).eq("read", False).execute()

    async def create_notification(
        self,
        user_id: str,
        company_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        channel: NotificationChannel = NotificationChannel.IN_APP,
    ) -> Notification:
        """Persist a notification and push it to the user's live connections."""
        row = {
            "user_id": user_id,
            "company_id": company_id,
            "type": notification_type.value,
            "title": title,
            "message": message,
            "data": data,
            "channel": channel.value,
            "read": False,
            "sent_at": utc_now().isoformat(),
        }
        response = self.client.table("notifications").insert(row).execute()
        notification = response.data[0]

        if self.dispatcher is not None:
            await self.dispatcher.send_notification(user_id, notification)
        return notification

    async def on_call_completed(self, event: dict[str, Any]) -> None:
        """Event bus handler: tell the agent their call summary is ready."""
        call = event["call"]
        if not call.get("user_id"):
            return
        await self.create_notification(
            user_id=call["user_id"],
            company_id=event["company_id"],
            notification_type=NotificationType.CALL_COMPLETED,
            title="Chamada finalizada",
            message=call.get("summary") or f"Chamada com {call.get('phone_number', 'cliente')} finalizada.",
            data={"callId": call["id"], "duration": call.get("duration")},
        )
