"""WhatsApp chat and message model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict


class ChatStatus(str, Enum):
    """Chat status values matching database enum."""

    OPEN = "open"
    ACTIVE = "active"
    PENDING = "pending"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


# Statuses listed by GET /whatsapp/chats/active
ACTIVE_CHAT_STATUSES = (ChatStatus.OPEN, ChatStatus.ACTIVE, ChatStatus.PENDING)

# Closed chats that are reopened when the same customer writes again
REOPENABLE_CHAT_STATUSES = (ChatStatus.ARCHIVED, ChatStatus.RESOLVED)


class MessageDirection(str, Enum):
    """Message direction values."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"


class MessageType(str, Enum):
    """WhatsApp message content types."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    LOCATION = "location"
    CONTACTS = "contacts"
    STICKER = "sticker"


class MessageStatus(str, Enum):
    """Delivery status values reported by WhatsApp."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class WhatsappChat(TypedDict):
    """whatsapp_chats table row representation."""

    id: str
    company_id: str
    user_id: str | None
    customer_phone: str
    customer_name: str
    status: ChatStatus
    unread_count: int
    last_message_at: datetime | None
    last_message_preview: str | None
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class WhatsappMessage(TypedDict):
    """whatsapp_messages table row representation."""

    id: str
    chat_id: str
    wa_message_id: str | None
    content: str
    type: MessageType
    direction: MessageDirection
    status: MessageStatus
    media_url: str | None
    ai_suggestion_used: bool
    created_at: datetime
