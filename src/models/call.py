"""Call model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict


class CallStatus(str, Enum):
    """Call status values matching database enum."""

    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_ANSWER = "no_answer"
    BUSY = "busy"
    CANCELLED = "cancelled"


# Statuses listed by GET /calls/active
ACTIVE_CALL_STATUSES = (CallStatus.INITIATED, CallStatus.RINGING, CallStatus.IN_PROGRESS)


class CallDirection(str, Enum):
    """Call direction values."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Speaker(str, Enum):
    """Who said a transcript line."""

    CUSTOMER = "customer"
    VENDOR = "vendor"


class SentimentLabel(str, Enum):
    """Aggregate sentiment stored on a completed call."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TranscriptSegment(TypedDict, total=False):
    """One line appended to a call transcript."""

    speaker: Speaker
    text: str
    timestamp: str
    confidence: float | None


class Call(TypedDict):
    """Call table row representation.

    ``transcript`` holds newline-joined ``speaker: text`` lines, oldest first.
    """

    id: str
    company_id: str
    user_id: str
    phone_number: str
    contact_name: str | None
    direction: CallDirection
    status: CallStatus
    transcript: str | None
    transcript_segments: list[TranscriptSegment]
    summary: str | None
    notes: str | None
    tags: list[str]
    sentiment: float | None
    sentiment_label: SentimentLabel | None
    duration: int | None
    started_at: datetime | None
    ended_at: datetime | None
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime
