"""WhatsApp chat orchestration: messages, webhook intake and suggestions."""

import logging
import time
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import NotFoundError
from src.core.supabase import get_supabase_client
from src.core.task_runner import BackgroundTaskRunner
from src.models.chat import (
    ACTIVE_CHAT_STATUSES,
    REOPENABLE_CHAT_STATUSES,
    ChatStatus,
    MessageDirection,
    MessageStatus,
    MessageType,
    WhatsappChat,
    WhatsappMessage,
)
from src.models.notification import NotificationType
from src.realtime.dispatcher import EventDispatcher
from src.realtime.events import WHATSAPP_CHAT_CREATED, EventBus
from src.schemas.chat import ChatCreate, MessageCreate
from src.schemas.common import utc_now
from src.services.ai_service import AIService, ConversationContext, Suggestion, SuggestionChannel
from src.services.notification_service import NotificationService
from src.services.suggestion_history import SuggestionHistoryService

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Cliente"
AWAITING_CUSTOMER_TEXT = "Aguardando mensagem do cliente para gerar sugestão."
AWAITING_CUSTOMER_CONFIDENCE = 0.5


def build_history(messages: list[dict[str, Any]]) -> str:
    """Render messages (oldest first) as ``Cliente:`` / ``Vendedor:`` lines."""
    lines = []
    for message in messages:
        speaker = "Cliente" if message.get("direction") == MessageDirection.INCOMING.value else "Vendedor"
        lines.append(f"{speaker}: {message.get('content', '')}")
    return "\n".join(lines)


class ChatService:
    """Service for WhatsApp chats and their messages."""

    HISTORY_SIZE = 10
    DETAIL_MESSAGE_LIMIT = 100
    ACTIVE_LIST_LIMIT = 50
    PREVIEW_LENGTH = 100

    def __init__(
        self,
        generator: AIService,
        dispatcher: EventDispatcher,
        runner: BackgroundTaskRunner,
        bus: EventBus,
        notifications: NotificationService | None = None,
        client: Client | None = None,
    ) -> None:
        self.client = client or get_supabase_client()
        self.generator = generator
        self.dispatcher = dispatcher
        self.runner = runner
        self.bus = bus
        self.notifications = notifications or NotificationService(dispatcher, self.client)
        self.history = SuggestionHistoryService(self.client)

    async def create_chat(self, data: ChatCreate, company_id: str, user_id: str) -> WhatsappChat:
        """Open a chat, reusing the existing one for the same customer phone.

        Archived or resolved chats are reopened and assigned to the caller.
        """
        existing = await self._find_chat_by_phone(company_id, data.customer_phone)
        if existing:
            if existing["status"] in {s.value for s in REOPENABLE_CHAT_STATUSES}:
                return await self._reopen(existing, user_id)
            return existing

        chat = await self._insert_chat(
            company_id=company_id,
            customer_phone=data.customer_phone,
            customer_name=data.customer_name,
            user_id=user_id,
            metadata=data.metadata,
        )
        await self.bus.publish(WHATSAPP_CHAT_CREATED, {"chat": chat, "company_id": company_id})
        return chat

    async def get_chat(self, chat_id: str, company_id: str) -> dict[str, Any]:
        """Get a chat with its recent messages and reset its unread counter.

        Raises:
            NotFoundError: If the chat does not exist in this company.
        """
        chat = await self._fetch_chat(chat_id, company_id)

        response = (
            self.client.table("whatsapp_messages")
            .select("*")
            .eq("chat_id", chat_id)
            .order("created_at", desc=False)
            .limit(self.DETAIL_MESSAGE_LIMIT)
            .execute()
        )

        if chat.get("unread_count"):
            self.client.table("whatsapp_chats").update({"unread_count": 0}).eq("id", chat_id).execute()
            chat = {**chat, "unread_count": 0}

        return {**chat, "messages": response.data or []}

    async def list_active_chats(self, company_id: str) -> list[WhatsappChat]:
        """Open, active and pending chats, most recent activity first."""
        response = (
            self.client.table("whatsapp_chats")
            .select("*")
            .eq("company_id", company_id)
            .in_("status", [s.value for s in ACTIVE_CHAT_STATUSES])
            .order("last_message_at", desc=True)
            .limit(self.ACTIVE_LIST_LIMIT)
            .execute()
        )
        return response.data or []

    async def send_message(
        self,
        chat_id: str,
        data: MessageCreate,
        company_id: str,
    ) -> dict[str, Any]:
        """Record a message, push it to the assigned agent and, for incoming
        messages, schedule a suggestion.
        """
        chat = await self._fetch_chat(chat_id, company_id)
        message = await self._record_message(
            chat,
            content=data.content,
            message_type=data.type,
            direction=data.direction,
            media_url=data.media_url,
            ai_suggestion_used=data.ai_suggestion_used,
        )

        if chat.get("user_id"):
            await self.dispatcher.send_whatsapp_message(chat["user_id"], chat_id, message)
            if data.direction == MessageDirection.INCOMING:
                self._schedule_suggestion(chat_id, chat["user_id"], data.content)

        logger.info("Message recorded in chat %s (%s)", chat_id, data.direction.value)
        return message

    async def get_suggestion(self, chat_id: str, company_id: str) -> Suggestion:
        """Generate a suggestion for the latest incoming message of a chat.

        Returns a low-confidence placeholder while the customer has not
        written yet.
        """
        chat = await self._fetch_chat(chat_id, company_id)
        messages = await self._recent_messages(chat_id)

        last_incoming = next(
            (m for m in reversed(messages) if m.get("direction") == MessageDirection.INCOMING.value),
            None,
        )
        if last_incoming is None:
            return Suggestion(
                text=AWAITING_CUSTOMER_TEXT,
                confidence=AWAITING_CUSTOMER_CONFIDENCE,
                type="general",
                generated_at_ms=int(time.time() * 1000),
                latency_ms=0,
                source_trigger="",
            )

        start_time = time.perf_counter()
        suggestion = await self.generator.generate_suggestion(
            ConversationContext(
                trigger_message=last_incoming["content"],
                history=build_history(messages),
                channel=SuggestionChannel.CHAT,
            )
        )
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if chat.get("user_id"):
            await self.history.save(
                suggestion,
                user_id=chat["user_id"],
                model=self.generator.model_label,
                chat_id=chat_id,
                latency_ms=latency_ms,
            )
        return suggestion

    async def handle_incoming_message(self, event: dict[str, Any]) -> dict[str, Any]:
        """Process a customer message delivered by the WhatsApp webhook.

        Args:
            event: Normalized webhook message with ``from``, ``content``,
                ``wa_message_id``, ``type``, ``contact_name`` and
                ``phone_number_id``.

        Returns:
            dict: ``success`` flag plus the chat and message ids when stored.
        """
        phone_number_id = event.get("phone_number_id")
        company = await self._find_company_by_phone_number_id(phone_number_id)
        if company is None:
            logger.warning("No company for WhatsApp phone number id %s, dropping message", phone_number_id)
            return {"success": False, "error": "Unknown phone number id"}

        company_id = company["id"]
        customer_phone = event["from"]
        is_new_chat = False

        chat = await self._find_chat_by_phone(company_id, customer_phone)
        if chat is None:
            chat = await self._insert_chat(
                company_id=company_id,
                customer_phone=customer_phone,
                customer_name=event.get("contact_name"),
                user_id=None,
                status=ChatStatus.PENDING,
            )
            is_new_chat = True
            await self.bus.publish(WHATSAPP_CHAT_CREATED, {"chat": chat, "company_id": company_id})
        elif chat["status"] in {s.value for s in REOPENABLE_CHAT_STATUSES}:
            chat = await self._reopen(chat, chat.get("user_id"))

        message = await self._record_message(
            chat,
            content=event.get("content", ""),
            message_type=_message_type(event.get("type")),
            direction=MessageDirection.INCOMING,
            wa_message_id=event.get("wa_message_id"),
        )

        user_id = chat.get("user_id")
        if user_id:
            await self.dispatcher.send_whatsapp_message(user_id, chat["id"], message)
            if is_new_chat:
                await self.notifications.create_notification(
                    user_id=user_id,
                    company_id=company_id,
                    notification_type=NotificationType.NEW_CHAT,
                    title="Nova conversa",
                    message=f"Nova conversa com {chat.get('customer_name') or customer_phone}",
                    data={"chatId": chat["id"]},
                )
            self._schedule_suggestion(chat["id"], user_id, message["content"])
        elif is_new_chat:
            await self.dispatcher.send_company_notification(
                company_id,
                {
                    "type": NotificationType.NEW_CHAT.value,
                    "title": "Nova conversa",
                    "message": f"Nova conversa com {chat.get('customer_name') or customer_phone}",
                    "data": {"chatId": chat["id"]},
                },
            )

        return {"success": True, "chat_id": chat["id"], "message_id": message["id"]}

    async def update_message_status(self, event: dict[str, Any]) -> bool:
        """Apply a delivery receipt from the webhook.

        Returns:
            bool: True if a stored message was updated.
        """
        try:
            status = MessageStatus(event.get("status"))
        except ValueError:
            logger.debug("Ignoring unknown WhatsApp status %s", event.get("status"))
            return False

        response = (
            self.client.table("whatsapp_messages")
            .update({"status": status.value})
            .eq("wa_message_id", event.get("wa_message_id"))
            .execute()
        )
        return bool(response.data)

    def _schedule_suggestion(self, chat_id: str, user_id: str, trigger: str) -> None:
        self.runner.submit(
            lambda: self._generate_and_send_suggestion(chat_id, user_id, trigger),
            name=f"suggestion:chat:{chat_id}",
        )

    async def _generate_and_send_suggestion(self, chat_id: str, user_id: str, trigger: str) -> None:
        messages = await self._recent_messages(chat_id)

        start_time = time.perf_counter()
        suggestion = await self.generator.generate_suggestion(
            ConversationContext(
                trigger_message=trigger,
                history=build_history(messages),
                channel=SuggestionChannel.CHAT,
            )
        )
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        saved = await self.history.save(
            suggestion,
            user_id=user_id,
            model=self.generator.model_label,
            chat_id=chat_id,
            latency_ms=latency_ms,
        )
        await self.dispatcher.send_ai_suggestion(
            user_id,
            {
                "id": saved["id"],
                "chatId": chat_id,
                "type": suggestion.type,
                "content": suggestion.text,
                "confidence": suggestion.confidence,
                "context": suggestion.context,
            },
            chat_id=chat_id,
        )
        logger.debug("AI suggestion sent for chat %s in %dms", chat_id, latency_ms)

    async def _fetch_chat(self, chat_id: str, company_id: str) -> WhatsappChat:
        response = (
            self.client.table("whatsapp_chats")
            .select("*")
            .eq("id", chat_id)
            .eq("company_id", company_id)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            raise NotFoundError("Chat not found")
        return response.data

    async def _find_chat_by_phone(self, company_id: str, customer_phone: str) -> WhatsappChat | None:
        response = (
            self.client.table("whatsapp_chats")
            .select("*")
            .eq("company_id", company_id)
            .eq("customer_phone", customer_phone)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def _find_company_by_phone_number_id(self, phone_number_id: str | None) -> dict[str, Any] | None:
        if not phone_number_id:
            return None
        response = (
            self.client.table("companies")
            .select("id")
            .eq("whatsapp_phone_number_id", phone_number_id)
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def _insert_chat(
        self,
        company_id: str,
        customer_phone: str,
        customer_name: str | None,
        user_id: str | None,
        status: ChatStatus = ChatStatus.OPEN,
        metadata: dict[str, Any] | None = None,
    ) -> WhatsappChat:
        chat_data = {
            "company_id": company_id,
            "user_id": user_id,
            "customer_phone": customer_phone,
            "customer_name": customer_name or DEFAULT_CUSTOMER_NAME,
            "status": status.value,
            "unread_count": 0,
            "metadata": metadata or {},
        }
        response = self.client.table("whatsapp_chats").insert(chat_data).execute()
        chat = response.data[0]
        logger.info("WhatsApp chat created: %s", chat["id"])
        return chat

    async def _reopen(self, chat: WhatsappChat, user_id: str | None) -> WhatsappChat:
        updates: dict[str, Any] = {"status": ChatStatus.OPEN.value}
        if user_id:
            updates["user_id"] = user_id
        response = self.client.table("whatsapp_chats").update(updates).eq("id", chat["id"]).execute()
        logger.info("WhatsApp chat reopened: %s", chat["id"])
        return response.data[0]

    async def _record_message(
        self,
        chat: dict[str, Any],
        content: str,
        message_type: MessageType,
        direction: MessageDirection,
        media_url: str | None = None,
        ai_suggestion_used: bool = False,
        wa_message_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert a message and refresh the chat preview."""
        message_data = {
            "chat_id": chat["id"],
            "wa_message_id": wa_message_id,
            "content": content,
            "type": message_type.value,
            "direction": direction.value,
            "status": MessageStatus.SENT.value if direction == MessageDirection.OUTGOING else MessageStatus.DELIVERED.value,
            "media_url": media_url,
            "ai_suggestion_used": ai_suggestion_used,
        }
        response = self.client.table("whatsapp_messages").insert(message_data).execute()
        message = response.data[0]

        chat_updates: dict[str, Any] = {
            "last_message_at": utc_now().isoformat(),
            "last_message_preview": content[: self.PREVIEW_LENGTH],
        }
        if chat.get("status") == ChatStatus.PENDING.value and direction == MessageDirection.OUTGOING:
            chat_updates["status"] = ChatStatus.ACTIVE.value
        if direction == MessageDirection.INCOMING:
            chat_updates["unread_count"] = (chat.get("unread_count") or 0) + 1
        self.client.table("whatsapp_chats").update(chat_updates).eq("id", chat["id"]).execute()

        return message

    async def _recent_messages(self, chat_id: str) -> list[WhatsappMessage]:
        """Last ``HISTORY_SIZE`` messages of a chat, oldest first."""
        response = (
            self.client.table("whatsapp_messages")
            .select("*")
            .eq("chat_id", chat_id)
            .order("created_at", desc=True)
            .limit(self.HISTORY_SIZE)
            .execute()
        )
        return list(reversed(response.data or []))


def _message_type(value: str | None) -> MessageType:
    try:
        return MessageType(value or MessageType.TEXT.value)
    except ValueError:
        return MessageType.TEXT
