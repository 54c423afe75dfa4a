"""Database model type definitions."""

from src.models.call import Call, CallDirection, CallStatus, SentimentLabel, Speaker, TranscriptSegment
from src.models.chat import ChatStatus, MessageDirection, MessageStatus, MessageType, WhatsappChat, WhatsappMessage
from src.models.notification import Notification, NotificationChannel, NotificationType
from src.models.suggestion import AISuggestionRow, SuggestionCategory

__all__ = [
    "Call",
    "CallDirection",
    "CallStatus",
    "SentimentLabel",
    "Speaker",
    "TranscriptSegment",
    "ChatStatus",
    "MessageDirection",
    "MessageStatus",
    "MessageType",
    "WhatsappChat",
    "WhatsappMessage",
    "Notification",
    "NotificationChannel",
    "NotificationType",
    "AISuggestionRow",
    "SuggestionCategory",
]
