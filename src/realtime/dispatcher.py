"""Event dispatcher: the only component that writes to live connections."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.realtime.registry import Connection, RoomRegistry, company_room, user_room

logger = logging.getLogger(__name__)


class DispatchKind(str, Enum):
    """Payload tag; the value is the event name seen by clients."""

    SUGGESTION = "ai:suggestion"
    STATUS = "call:status"
    MESSAGE = "whatsapp:message"
    NOTIFICATION = "notification"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"


@dataclass(frozen=True)
class DispatchPayload:
    """One event addressed to one room."""

    kind: DispatchKind
    target_room: str
    body: dict[str, Any]
    exclude_connection_id: str | None = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventDispatcher:
    """Pushes payloads to the current members of a room.

    Delivery is best effort: an empty room drops the event, nothing is
    retried or persisted, and a failed write to one connection does not
    affect the others.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry

    async def dispatch(self, payload: DispatchPayload) -> int:
        """Send ``payload`` to every member of its target room.

        Returns:
            int: Number of connections the event was written to.
        """
        members = [
            connection
            for connection in self.registry.members_of(payload.target_room)
            if connection.id != payload.exclude_connection_id
        ]
        if not members:
            logger.debug("No connections in %s, dropping %s", payload.target_room, payload.kind.value)
            return 0

        results = await asyncio.gather(
            *(self._send(connection, payload) for connection in members),
        )
        delivered = sum(1 for ok in results if ok)
        logger.debug(
            "Dispatched %s to %s: %d/%d delivered",
            payload.kind.value,
            payload.target_room,
            delivered,
            len(members),
        )
        return delivered

    async def _send(self, connection: Connection, payload: DispatchPayload) -> bool:
        try:
            await connection.send(payload.kind.value, payload.body)
            return True
        except Exception as e:
            logger.debug("Send to %s failed: %s", connection.id, e)
            return False

    async def send_ai_suggestion(
        self,
        user_id: str,
        suggestion: dict[str, Any],
        call_id: str | None = None,
        chat_id: str | None = None,
    ) -> int:
        body: dict[str, Any] = {"suggestion": suggestion, "timestamp": _timestamp()}
        if call_id:
            body["callId"] = call_id
        if chat_id:
            body["chatId"] = chat_id
        return await self.dispatch(DispatchPayload(DispatchKind.SUGGESTION, user_room(user_id), body))

    async def send_call_status(
        self,
        user_id: str,
        call_id: str,
        status: str,
        previous_status: str | None = None,
        duration: int | None = None,
    ) -> int:
        body: dict[str, Any] = {"callId": call_id, "status": status, "timestamp": _timestamp()}
        if previous_status is not None:
            body["previousStatus"] = previous_status
        if duration is not None:
            body["duration"] = duration
        return await self.dispatch(DispatchPayload(DispatchKind.STATUS, user_room(user_id), body))

    async def send_whatsapp_message(self, user_id: str, chat_id: str, message: dict[str, Any]) -> int:
        body = {"chatId": chat_id, "message": message, "timestamp": _timestamp()}
        return await self.dispatch(DispatchPayload(DispatchKind.MESSAGE, user_room(user_id), body))

    async def send_notification(self, user_id: str, notification: dict[str, Any]) -> int:
        body = {"notification": notification, "timestamp": _timestamp()}
        return await self.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, user_room(user_id), body))

    async def send_company_notification(self, company_id: str, notification: dict[str, Any]) -> int:
        """Notify every agent of a company, e.g. about an unassigned chat."""
        body = {"notification": notification, "timestamp": _timestamp()}
        return await self.dispatch(DispatchPayload(DispatchKind.NOTIFICATION, company_room(company_id), body))
