"""Notification model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict


class NotificationType(str, Enum):
    """Notification type values matching database enum."""

    SYSTEM = "system"
    AI_SUGGESTION = "ai_suggestion"
    NEW_MESSAGE = "new_message"
    NEW_CHAT = "new_chat"
    CALL_COMPLETED = "call_completed"


class NotificationChannel(str, Enum):
    """Where a notification is delivered."""

    IN_APP = "in_app"
    EMAIL = "email"


class Notification(TypedDict):
    """notifications table row representation."""

    id: str
    user_id: str
    company_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] | None
    channel: NotificationChannel
    read: bool
    read_at: datetime | None
    sent_at: datetime | None
    created_at: datetime
