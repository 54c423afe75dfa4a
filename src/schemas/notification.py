"""Notification Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.notification import NotificationChannel, NotificationType


class NotificationResponse(BaseModel):
    """Schema for a notification."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    company_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] | None = None
    channel: NotificationChannel = NotificationChannel.IN_APP
    read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None


class UnreadCountResponse(BaseModel):
    """Schema for GET /notifications/unread-count."""

    unread: int = Field(ge=0, description="Unread notifications for the user")


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = True
