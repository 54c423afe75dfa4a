"""Webhook API routes for external service integrations."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import PlainTextResponse

from src.api.deps import EventBusDep
from src.core.config import get_settings
from src.realtime.events import WHATSAPP_MESSAGE_RECEIVED, WHATSAPP_MESSAGE_STATUS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def extract_content(message: dict[str, Any]) -> str:
    """Render a WhatsApp message of any type as display text."""
    message_type = message.get("type")
    if message_type == "text":
        return (message.get("text") or {}).get("body", "")
    if message_type == "image":
        return f"[Image: {(message.get('image') or {}).get('caption') or 'No caption'}]"
    if message_type == "audio":
        return "[Audio message]"
    if message_type == "video":
        return f"[Video: {(message.get('video') or {}).get('caption') or 'No caption'}]"
    if message_type == "document":
        return f"[Document: {(message.get('document') or {}).get('filename') or 'Unknown'}]"
    if message_type == "location":
        location = message.get("location") or {}
        return f"[Location: {location.get('latitude')}, {location.get('longitude')}]"
    if message_type == "contacts":
        return "[Contact shared]"
    if message_type == "sticker":
        return "[Sticker]"
    return f"[{message_type}]"


def _parse_epoch(value: Any) -> str | None:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()
    except (TypeError, ValueError):
        return None


def parse_change_value(value: dict[str, Any]) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Normalize one ``changes[].value`` block into message and status events."""
    contacts = value.get("contacts") or []
    phone_number_id = (value.get("metadata") or {}).get("phone_number_id")

    messages = []
    for message in value.get("messages") or []:
        contact = next((c for c in contacts if c.get("wa_id") == message.get("from")), None)
        messages.append(
            {
                "wa_message_id": message.get("id"),
                "from": message.get("from"),
                "timestamp": _parse_epoch(message.get("timestamp")),
                "type": message.get("type"),
                "content": extract_content(message),
                "contact_name": ((contact or {}).get("profile") or {}).get("name"),
                "phone_number_id": phone_number_id,
            }
        )

    statuses = [
        {
            "wa_message_id": receipt.get("id"),
            "status": receipt.get("status"),
            "timestamp": _parse_epoch(receipt.get("timestamp")),
            "recipient_id": receipt.get("recipient_id"),
        }
        for receipt in value.get("statuses") or []
    ]
    return messages, statuses


@router.get(
    "/whatsapp",
    response_class=PlainTextResponse,
    summary="Verify WhatsApp webhook",
    description="Subscription handshake: echoes hub.challenge when the verify token matches.",
)
async def verify_whatsapp_webhook(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
) -> str:
    settings = get_settings()
    if mode == "subscribe" and settings.whatsapp_verify_token and token == settings.whatsapp_verify_token:
        logger.info("WhatsApp webhook verified")
        return challenge or ""

    logger.warning("WhatsApp webhook verification failed")
    return "Verification failed"


@router.post(
    "/whatsapp",
    status_code=status.HTTP_200_OK,
    summary="Handle WhatsApp webhooks",
    description="Receives messages and delivery receipts. Always acknowledged.",
)
async def whatsapp_webhook(request: Request, bus: EventBusDep) -> dict[str, bool]:
    """Publish each message and status of the payload on the event bus.

    WhatsApp retries anything that is not a 200, so processing failures are
    logged and still acknowledged.
    """
    try:
        body = await request.json()
        for entry in body.get("entry") or []:
            for change in entry.get("changes") or []:
                if change.get("field") != "messages":
                    continue
                messages, statuses = parse_change_value(change.get("value") or {})
                for message in messages:
                    logger.info("New WhatsApp message from %s: %s", message["from"], message["type"])
                    await bus.publish(WHATSAPP_MESSAGE_RECEIVED, message)
                for receipt in statuses:
                    await bus.publish(WHATSAPP_MESSAGE_STATUS, receipt)
    except Exception:
        logger.exception("WhatsApp webhook processing failed")

    return {"received": True}
