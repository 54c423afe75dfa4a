"""In-process publish/subscribe bus for socket and domain events."""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import Callable
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

# Domain events published by the orchestration services and webhooks
CALL_CREATED = "call.created"
CALL_COMPLETED = "call.completed"
WHATSAPP_CHAT_CREATED = "whatsapp.chat.created"
WHATSAPP_MESSAGE_RECEIVED = "whatsapp.message.received"
WHATSAPP_MESSAGE_STATUS = "whatsapp.message.status"


class EventBus:
    """Maps event names to handlers registered with plain function references.

    ``publish`` awaits every handler for the event in subscription order.
    A failing handler is logged and skipped; it never prevents the others
    from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, dict[int, Handler]] = {}
        self._events_by_token: dict[int, str] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()

    def subscribe(self, event: str, handler: Handler) -> int:
        """Register a handler.

        Returns:
            int: Token to pass to ``unsubscribe``.
        """
        with self._lock:
            token = next(self._tokens)
            self._handlers.setdefault(event, {})[token] = handler
            self._events_by_token[token] = event
        return token

    def unsubscribe(self, token: int) -> bool:
        """Remove a handler. Returns False if the token is unknown."""
        with self._lock:
            event = self._events_by_token.pop(token, None)
            if event is None:
                return False
            handlers = self._handlers.get(event, {})
            handlers.pop(token, None)
            if not handlers:
                self._handlers.pop(event, None)
        return True

    def has_subscribers(self, event: str) -> bool:
        with self._lock:
            return bool(self._handlers.get(event))

    async def publish(self, event: str, *args: Any) -> list[Any]:
        """Invoke every handler for ``event`` with ``args``.

        Returns:
            list: Results of the handlers that succeeded, in order.
        """
        with self._lock:
            handlers = list(self._handlers.get(event, {}).values())

        if not handlers:
            logger.debug("No subscribers for %s", event)
            return []

        results = []
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception:
                logger.exception("Handler for %s failed", event)
        return results
