"""Realtime gateway: socket handshake and client event routing."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from src.api.middleware.auth import AuthError, decode_jwt
from src.api.middleware.error_handler import AuthenticationError, AuthorizationError
from src.realtime.dispatcher import DispatchKind, DispatchPayload, EventDispatcher
from src.realtime.events import EventBus
from src.realtime.registry import Connection, RoomRegistry, call_room, chat_room

logger = logging.getLogger(__name__)


class RealtimeGateway:
    """Owns the lifecycle of socket connections.

    Client events are routed through a dedicated ``EventBus`` so that
    clients can only reach the handlers registered here, never the
    server-side domain events.
    """

    def __init__(self, registry: RoomRegistry, dispatcher: EventDispatcher) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.client_events = EventBus()

        self.client_events.subscribe("join:call", self._join_call)
        self.client_events.subscribe("leave:call", self._leave_call)
        self.client_events.subscribe("join:chat", self._join_chat)
        self.client_events.subscribe("leave:chat", self._leave_chat)
        self.client_events.subscribe("typing:start", self._typing_start)
        self.client_events.subscribe("typing:stop", self._typing_stop)
        self.client_events.subscribe("ping", self._ping)

    def connect(
        self,
        connection: Connection,
        user_id: str | None,
        company_id: str | None,
        token: str | None = None,
    ) -> None:
        """Authenticate the handshake and register the connection.

        Raises:
            AuthenticationError: Missing ids or a bad token.
            AuthorizationError: Ids that do not match the token's claims.
        """
        if token:
            try:
                payload = decode_jwt(token)
            except AuthError as e:
                raise AuthenticationError(f"Invalid handshake token: {e.message}") from e
            if payload.sub != user_id or payload.company_id != company_id:
                logger.warning("Handshake ids do not match token for connection %s", connection.id)
                raise AuthorizationError("Handshake ids do not match token")

        self.registry.register(connection, user_id, company_id)

    def disconnect(self, connection: Connection) -> None:
        self.registry.unregister(connection)

    async def handle_client_event(self, connection: Connection, event: str, data: Any) -> dict[str, Any]:
        """Route one client event to its handler and return the ack body."""
        if not self.client_events.has_subscribers(event):
            logger.debug("Unknown client event %s from %s", event, connection.id)
            return {"success": False, "error": f"Unknown event: {event}"}

        results = await self.client_events.publish(event, connection, data if isinstance(data, dict) else {})
        if not results:
            return {"success": False, "error": "Event handling failed"}
        return results[0]

    def _join_call(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        call_id = data.get("callId")
        if not call_id:
            return {"success": False, "error": "callId is required"}
        self.registry.join_room(connection, call_room(str(call_id)))
        return {"success": True}

    def _leave_call(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        call_id = data.get("callId")
        if not call_id:
            return {"success": False, "error": "callId is required"}
        self.registry.leave_room(connection, call_room(str(call_id)))
        return {"success": True}

    def _join_chat(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        chat_id = data.get("chatId")
        if not chat_id:
            return {"success": False, "error": "chatId is required"}
        self.registry.join_room(connection, chat_room(str(chat_id)))
        return {"success": True}

    def _leave_chat(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        chat_id = data.get("chatId")
        if not chat_id:
            return {"success": False, "error": "chatId is required"}
        self.registry.leave_room(connection, chat_room(str(chat_id)))
        return {"success": True}

    async def _typing_start(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        return await self._relay_typing(DispatchKind.TYPING_START, connection, data)

    async def _typing_stop(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        return await self._relay_typing(DispatchKind.TYPING_STOP, connection, data)

    async def _relay_typing(
        self, kind: DispatchKind, connection: Connection, data: dict[str, Any]
    ) -> dict[str, Any]:
        chat_id = data.get("chatId")
        if not chat_id:
            return {"success": False, "error": "chatId is required"}
        await self.dispatcher.dispatch(
            DispatchPayload(
                kind=kind,
                target_room=chat_room(str(chat_id)),
                body={"chatId": str(chat_id), "userId": connection.user_id},
                exclude_connection_id=connection.id,
            )
        )
        return {"success": True}

    def _ping(self, connection: Connection, data: dict[str, Any]) -> dict[str, Any]:
        return {"pong": True, "timestamp": datetime.now(timezone.utc).isoformat()}
