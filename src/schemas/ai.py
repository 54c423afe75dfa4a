"""AI suggestion and analysis Pydantic schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SuggestionRequest(BaseModel):
    """Schema for POST /ai/suggestion."""

    model_config = ConfigDict(populate_by_name=True)

    current_message: str = Field(
        alias="currentMessage", min_length=1, max_length=4000, description="Latest customer message"
    )
    conversation_history: str | None = Field(
        default=None, alias="conversationHistory", description="Newline-joined history, oldest first"
    )
    context: Literal["phone_call", "whatsapp"] | None = Field(
        default=None, description="Channel the message arrived on"
    )
    customer_sentiment: Literal["positive", "neutral", "negative"] | None = Field(
        default=None, alias="customerSentiment", description="Sentiment hint from the client"
    )


class SuggestionResponse(BaseModel):
    """Schema for a generated suggestion."""

    suggestion: str = Field(description="Suggested reply text")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence in [0, 1]")
    type: str = Field(description="Suggestion type (greeting, objection, closing, question, general)")
    context: str | None = Field(default=None, description="Channel of the trigger message")


class AnalyzeRequest(BaseModel):
    """Schema for POST /ai/analyze."""

    transcript: str = Field(min_length=1, description="Full conversation transcript")


class AnalysisResponse(BaseModel):
    """Schema for a conversation sentiment analysis."""

    model_config = ConfigDict(populate_by_name=True)

    sentiment: Literal["positive", "neutral", "negative"] = Field(description="Aggregate sentiment")
    score: float = Field(ge=0.0, le=1.0, description="Sentiment score in [0, 1]")
    summary: str = Field(description="One-line summary")
    keywords: list[str] = Field(default_factory=list, description="Up to five long tokens")
    action_items: list[str] = Field(default_factory=list, alias="actionItems", description="Next steps")


class AIHealthResponse(BaseModel):
    """Schema for GET /ai/health."""

    status: str = Field(description="Generator status")
    provider: Literal["openai", "fallback"] = Field(description="Active suggestion source")
    model: str | None = Field(default=None, description="Provider model when configured")
    cache: dict[str, Any] | None = Field(default=None, description="Suggestion cache counters")
