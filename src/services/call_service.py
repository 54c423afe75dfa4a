"""Phone call orchestration: persistence, transcripts and live suggestions."""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.core.supabase import get_supabase_client
from src.core.task_runner import BackgroundTaskRunner
from src.models.call import ACTIVE_CALL_STATUSES, Call, CallStatus, Speaker
from src.models.suggestion import AISuggestionRow
from src.realtime.dispatcher import EventDispatcher
from src.realtime.events import CALL_COMPLETED, CALL_CREATED, EventBus
from src.schemas.call import CallCreate, CallUpdate, TranscriptCreate
from src.schemas.common import utc_now
from src.services.ai_service import AIService, ConversationContext, SuggestionChannel
from src.services.suggestion_history import SuggestionHistoryService

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp column into an aware datetime (naive values are UTC)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CallService:
    """Service for phone calls.

    Owns no state: every operation reads and writes the ``calls`` table and
    hands realtime work to the dispatcher or the background task runner.
    """

    def __init__(
        self,
        generator: AIService,
        dispatcher: EventDispatcher,
        runner: BackgroundTaskRunner,
        bus: EventBus,
        client: Client | None = None,
    ) -> None:
        self.client = client or get_supabase_client()
        self.generator = generator
        self.dispatcher = dispatcher
        self.runner = runner
        self.bus = bus
        self.history = SuggestionHistoryService(self.client)

    async def create_call(self, data: CallCreate, company_id: str, user_id: str) -> Call:
        """Create a call in ``initiated`` status owned by the calling agent."""
        call_data = {
            "company_id": company_id,
            "user_id": user_id,
            "phone_number": data.phone_number,
            "contact_name": data.contact_name,
            "direction": data.direction.value,
            "status": CallStatus.INITIATED.value,
            "started_at": utc_now().isoformat(),
            "transcript_segments": [],
            "metadata": data.metadata or {},
        }
        response = self.client.table("calls").insert(call_data).execute()
        call = response.data[0]

        logger.info("Call created: %s by user %s", call["id"], user_id)
        await self.bus.publish(CALL_CREATED, {"call": call, "company_id": company_id})
        return call

    async def get_call(self, call_id: str, company_id: str) -> Call:
        """Get a call scoped to a company.

        Raises:
            NotFoundError: If the call does not exist in this company.
        """
        response = (
            self.client.table("calls")
            .select("*")
            .eq("id", call_id)
            .eq("company_id", company_id)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            raise NotFoundError("Call not found")
        return response.data

    async def list_active_calls(self, company_id: str) -> list[Call]:
        """Calls still initiated, ringing or in progress, newest first."""
        response = (
            self.client.table("calls")
            .select("*")
            .eq("company_id", company_id)
            .in_("status", [s.value for s in ACTIVE_CALL_STATUSES])
            .order("started_at", desc=True)
            .execute()
        )
        return response.data or []

    async def update_call(self, call_id: str, data: CallUpdate, company_id: str) -> Call:
        """Apply a partial update and push ``call:status`` when the status changes."""
        call = await self.get_call(call_id, company_id)

        updates = data.model_dump(exclude_none=True, mode="json")
        if not updates:
            return call
        updates["updated_at"] = utc_now().isoformat()

        response = self.client.table("calls").update(updates).eq("id", call_id).execute()
        updated = response.data[0]

        if data.status is not None and data.status.value != call["status"]:
            await self.dispatcher.send_call_status(
                call["user_id"],
                call_id,
                data.status.value,
                previous_status=call["status"],
            )
        return updated

    async def add_transcript(self, call_id: str, data: TranscriptCreate, company_id: str) -> dict[str, Any]:
        """Append a transcript line.

        Customer lines schedule a suggestion for the call's agent; the append
        itself never waits for it.

        Raises:
            NotFoundError: If the call does not exist.
            ValidationError: If the call is not in progress.
        """
        call = await self.get_call(call_id, company_id)
        if call["status"] != CallStatus.IN_PROGRESS.value:
            raise ValidationError("Can only add transcript to in-progress calls")

        line = f"{data.speaker.value}: {data.text}"
        current = call.get("transcript") or ""
        transcript = f"{current}\n{line}" if current else line
        segments = list(call.get("transcript_segments") or [])
        segments.append(
            {
                "speaker": data.speaker.value,
                "text": data.text,
                "timestamp": utc_now().isoformat(),
                "confidence": data.confidence,
            }
        )

        response = (
            self.client.table("calls")
            .update({"transcript": transcript, "transcript_segments": segments})
            .eq("id", call_id)
            .execute()
        )
        updated = response.data[0]

        if data.speaker == Speaker.CUSTOMER:
            user_id = call["user_id"]
            self.runner.submit(
                lambda: self._generate_and_send_suggestion(call_id, data.text, transcript, user_id),
                name=f"suggestion:call:{call_id}",
            )
        return updated

    async def _generate_and_send_suggestion(
        self,
        call_id: str,
        customer_message: str,
        history: str,
        user_id: str,
    ) -> None:
        start_time = time.perf_counter()
        suggestion = await self.generator.generate_suggestion(
            ConversationContext(
                trigger_message=customer_message,
                history=history,
                channel=SuggestionChannel.CALL,
            )
        )
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        saved = await self.history.save(
            suggestion,
            user_id=user_id,
            model=self.generator.model_label,
            call_id=call_id,
            latency_ms=latency_ms,
        )
        await self.dispatcher.send_ai_suggestion(
            user_id,
            {
                "id": saved["id"],
                "callId": call_id,
                "type": suggestion.type,
                "content": suggestion.text,
                "confidence": suggestion.confidence,
                "context": suggestion.context,
            },
            call_id=call_id,
        )
        logger.debug("AI suggestion sent for call %s in %dms", call_id, latency_ms)

    async def complete_call(self, call_id: str, company_id: str) -> Call:
        """Close a call, compute its duration and analyze the transcript.

        Raises:
            NotFoundError: If the call does not exist.
            ValidationError: If the call is already completed.
        """
        call = await self.get_call(call_id, company_id)
        if call["status"] == CallStatus.COMPLETED.value:
            raise ValidationError("Call is already completed")

        now = utc_now()
        started_at = parse_timestamp(call.get("started_at"))
        duration = max(0, int((now - started_at).total_seconds())) if started_at else 0

        updates: dict[str, Any] = {
            "status": CallStatus.COMPLETED.value,
            "ended_at": now.isoformat(),
            "duration": duration,
        }
        if call.get("transcript"):
            analysis = self.generator.analyze(call["transcript"])
            updates["sentiment"] = analysis.score
            updates["sentiment_label"] = analysis.sentiment
            updates["summary"] = analysis.summary

        response = self.client.table("calls").update(updates).eq("id", call_id).execute()
        updated = response.data[0]

        await self.dispatcher.send_call_status(
            call["user_id"],
            call_id,
            CallStatus.COMPLETED.value,
            previous_status=call["status"],
            duration=duration,
        )
        await self.bus.publish(CALL_COMPLETED, {"call": updated, "company_id": company_id})

        logger.info("Call %s completed. Duration: %ds", call_id, duration)
        return updated

    async def get_suggestions(self, call_id: str, company_id: str) -> list[AISuggestionRow]:
        """Latest persisted suggestions for a call."""
        await self.get_call(call_id, company_id)
        return await self.history.list_for_call(call_id)
