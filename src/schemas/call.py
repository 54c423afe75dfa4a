"""Call Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.call import CallDirection, CallStatus, Speaker


class CallCreate(BaseModel):
    """Schema for creating a call."""

    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1, max_length=32, description="Customer phone")
    contact_name: str | None = Field(default=None, alias="contactName", max_length=255, description="Customer name")
    direction: CallDirection = Field(default=CallDirection.OUTBOUND, description="Call direction")
    metadata: dict[str, Any] | None = Field(default=None, description="Additional metadata")


class CallUpdate(BaseModel):
    """Schema for updating a call. Only provided fields are written."""

    model_config = ConfigDict(populate_by_name=True)

    status: CallStatus | None = Field(default=None, description="New status")
    contact_name: str | None = Field(default=None, alias="contactName", max_length=255)
    transcript: str | None = None
    summary: str | None = None
    notes: str | None = None
    duration: int | None = Field(default=None, ge=0, description="Duration in seconds")
    recording_url: str | None = Field(default=None, alias="recordingUrl")
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None


class TranscriptCreate(BaseModel):
    """Schema for appending one transcript line."""

    speaker: Speaker = Field(description="Who said the line")
    text: str = Field(min_length=1, description="Transcribed text")
    confidence: float | None = Field(default=None, ge=0.0, le=1.0, description="Speech-to-text confidence")


class CallResponse(BaseModel):
    """Schema for call API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    user_id: str
    phone_number: str
    contact_name: str | None = None
    direction: CallDirection = CallDirection.OUTBOUND
    status: CallStatus
    transcript: str | None = None
    summary: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    sentiment: float | None = None
    sentiment_label: str | None = None
    duration: int | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SuggestionRecordResponse(BaseModel):
    """Schema for a persisted AI suggestion."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    call_id: str | None = None
    chat_id: str | None = None
    user_id: str
    type: str
    content: str
    confidence: float
    trigger_text: str | None = None
    model: str | None = None
    latency_ms: int | None = None
    created_at: datetime | None = None
