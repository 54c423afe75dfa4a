"""Persistence of generated suggestions in the ai_suggestions table."""

from typing import Any

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.suggestion import AISuggestionRow
from src.services.ai_service import Suggestion


class SuggestionHistoryService:
    """Stores suggestions for analytics and lists them per call."""

    DEFAULT_LIMIT = 20

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    async def save(
        self,
        suggestion: Suggestion,
        user_id: str,
        model: str,
        call_id: str | None = None,
        chat_id: str | None = None,
        latency_ms: int | None = None,
    ) -> dict[str, Any]:
        """Insert one suggestion row.

        Args:
            suggestion: The generated suggestion.
            user_id: Agent the suggestion was produced for.
            model: Provider model name, or ``fallback`` for rule-based output.
            call_id: Call the trigger came from, if any.
            chat_id: Chat the trigger came from, if any.
            latency_ms: Latency measured around the generator call.

        Returns:
            dict: The created row.
        """
        row = {
            "call_id": call_id,
            "chat_id": chat_id,
            "user_id": user_id,
            # Stored as the dashboard category; socket payloads keep the short type
            "type": suggestion.category.value,
            "content": suggestion.text,
            "confidence": suggestion.confidence,
            "trigger_text": suggestion.source_trigger,
            "model": model,
            "latency_ms": latency_ms if latency_ms is not None else suggestion.latency_ms,
        }
        response = self.client.table("ai_suggestions").insert(row).execute()
        return response.data[0]

    async def list_for_call(self, call_id: str, limit: int = DEFAULT_LIMIT) -> list[AISuggestionRow]:
        """Latest suggestions for a call, newest first."""
        response = (
            self.client.table("ai_suggestions")
            .select("*")
            .eq("call_id", call_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
