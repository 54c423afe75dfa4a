"""WebSocket endpoint for live suggestions, call status and chat events."""

import asyncio
import json
import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from src.api.middleware.error_handler import AuthenticationError, AuthorizationError
from src.realtime.gateway import RealtimeGateway
from src.realtime.registry import Connection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


class WebSocketConnection(Connection):
    """``Connection`` backed by a Starlette WebSocket.

    Frames are JSON envelopes ``{"event", "data"}``; writes are serialized
    so concurrent dispatches never interleave on the socket.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.id = uuid4().hex
        self.user_id = None
        self.company_id = None
        self.websocket = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: Any) -> None:
        await self.send_envelope({"event": event, "data": data})

    async def send_envelope(self, envelope: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json(jsonable_encoder(envelope))


def _parse_envelope(raw: str | bytes | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        envelope = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
        return None
    return envelope


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Handshake with ``userId``/``companyId`` (and optional ``token``) query
    params, then route client events until the socket closes.
    """
    gateway: RealtimeGateway = websocket.app.state.gateway
    connection = WebSocketConnection(websocket)

    await websocket.accept()
    try:
        gateway.connect(
            connection,
            websocket.query_params.get("userId"),
            websocket.query_params.get("companyId"),
            token=websocket.query_params.get("token"),
        )
    except (AuthenticationError, AuthorizationError) as e:
        logger.warning("Rejected socket %s: %s", connection.id, e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            # Binary frames carry the same JSON envelope as text frames
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            envelope = _parse_envelope(raw)
            if envelope is None:
                await connection.send("error", {"success": False, "error": "Invalid message envelope"})
                continue

            result = await gateway.handle_client_event(connection, envelope["event"], envelope.get("data") or {})

            ack_id = envelope.get("ackId")
            if ack_id is not None:
                await connection.send_envelope({"event": "ack", "ackId": ack_id, "data": result})
    except WebSocketDisconnect:
        pass
    finally:
        gateway.disconnect(connection)
