"""AI suggestion model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class SuggestionCategory(str, Enum):
    """Closed set of suggestion categories stored in ai_suggestions."""

    GREETING = "greeting"
    OBJECTION_HANDLING = "objection-handling"
    CLOSING = "closing"
    QUESTION = "question"
    INFORMATION = "information"
    EMPATHY = "empathy"
    GENERAL = "general"


class AISuggestionRow(TypedDict):
    """ai_suggestions table row representation.

    Exactly one of ``call_id`` / ``chat_id`` is set.
    """

    id: str
    call_id: str | None
    chat_id: str | None
    user_id: str
    type: SuggestionCategory
    content: str
    confidence: float
    trigger_text: str
    model: str
    latency_ms: int | None
    created_at: datetime
