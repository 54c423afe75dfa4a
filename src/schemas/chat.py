"""WhatsApp chat Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.chat import ChatStatus, MessageDirection, MessageStatus, MessageType


class ChatCreate(BaseModel):
    """Schema for opening a chat with a customer."""

    model_config = ConfigDict(populate_by_name=True)

    customer_phone: str = Field(alias="customerPhone", min_length=1, max_length=32, description="Customer phone")
    customer_name: str | None = Field(default=None, alias="customerName", max_length=255)
    metadata: dict[str, Any] | None = None


class MessageCreate(BaseModel):
    """Schema for sending or recording a chat message."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1, max_length=4096, description="Message text")
    type: MessageType = Field(default=MessageType.TEXT)
    direction: MessageDirection = Field(default=MessageDirection.OUTGOING)
    media_url: str | None = Field(default=None, alias="mediaUrl")
    ai_suggestion_used: bool = Field(default=False, alias="aiSuggestionUsed")


class MessageResponse(BaseModel):
    """Schema for a chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    chat_id: str
    wa_message_id: str | None = None
    content: str
    type: MessageType = MessageType.TEXT
    direction: MessageDirection
    status: MessageStatus = MessageStatus.SENT
    media_url: str | None = None
    ai_suggestion_used: bool = False
    created_at: datetime | None = None


class ChatResponse(BaseModel):
    """Schema for chat API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    user_id: str | None = None
    customer_phone: str
    customer_name: str | None = None
    status: ChatStatus
    unread_count: int = 0
    last_message_at: datetime | None = None
    last_message_preview: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatDetailResponse(ChatResponse):
    """Chat with its recent messages, oldest first."""

    messages: list[MessageResponse] = Field(default_factory=list)
