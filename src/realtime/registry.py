"""Connection registry and room topology for live socket connections."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any

from src.api.middleware.error_handler import AuthenticationError

logger = logging.getLogger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def company_room(company_id: str) -> str:
    return f"company:{company_id}"


def call_room(call_id: str) -> str:
    return f"call:{call_id}"


def chat_room(chat_id: str) -> str:
    return f"chat:{chat_id}"


class Connection(ABC):
    """A live duplex channel to one client."""

    id: str
    user_id: str | None = None
    company_id: str | None = None

    @abstractmethod
    async def send(self, event: str, data: Any) -> None:
        """Write one event to the client."""


class RoomRegistry(ABC):
    """Maps room names to the connections currently subscribed.

    Implementations are per-process unless they are backed by a shared
    pub/sub; the in-memory default only sees sockets held by this instance.
    """

    @abstractmethod
    def register(self, connection: Connection, user_id: str | None, company_id: str | None) -> None:
        """Track a new connection and join its user and company rooms."""

    @abstractmethod
    def unregister(self, connection: Connection) -> None:
        """Drop a connection from every room it belongs to."""

    @abstractmethod
    def join_room(self, connection: Connection, room: str) -> None:
        """Add a connection to a room. Joining twice is a no-op."""

    @abstractmethod
    def leave_room(self, connection: Connection, room: str) -> None:
        """Remove a connection from a room. Leaving a non-member is a no-op."""

    @abstractmethod
    def members_of(self, room: str) -> list[Connection]:
        """Snapshot of the connections in a room, in no particular order."""

    @abstractmethod
    def rooms_of(self, connection: Connection) -> set[str]:
        """Snapshot of the rooms a connection belongs to."""

    @abstractmethod
    def get_stats(self) -> dict:
        """Counters for monitoring."""


class InMemoryRoomRegistry(RoomRegistry):
    """Thread-safe in-memory room registry."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}
        self._lock = Lock()

    def register(self, connection: Connection, user_id: str | None, company_id: str | None) -> None:
        user_id = (user_id or "").strip()
        company_id = (company_id or "").strip()
        if not user_id or not company_id:
            logger.warning("Rejected connection %s: missing user or company id", connection.id)
            raise AuthenticationError("Both userId and companyId are required")

        connection.user_id = user_id
        connection.company_id = company_id

        with self._lock:
            self._connections[connection.id] = connection
            self._memberships.setdefault(connection.id, set())
            self._add(connection.id, user_room(user_id))
            self._add(connection.id, company_room(company_id))

        logger.info("Client connected: %s (user %s, company %s)", connection.id, user_id, company_id)

    def unregister(self, connection: Connection) -> None:
        with self._lock:
            self._connections.pop(connection.id, None)
            rooms = self._memberships.pop(connection.id, set())
            for room in rooms:
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(connection.id)
                if not members:
                    del self._rooms[room]

        logger.info("Client disconnected: %s (released %d rooms)", connection.id, len(rooms))

    def join_room(self, connection: Connection, room: str) -> None:
        with self._lock:
            if connection.id not in self._connections:
                logger.debug("Ignoring join of %s for unregistered connection %s", room, connection.id)
                return
            self._add(connection.id, room)

    def leave_room(self, connection: Connection, room: str) -> None:
        with self._lock:
            memberships = self._memberships.get(connection.id)
            if memberships is None or room not in memberships:
                return
            memberships.discard(room)
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection.id)
                if not members:
                    del self._rooms[room]

    def members_of(self, room: str) -> list[Connection]:
        with self._lock:
            ids = self._rooms.get(room, ())
            return [self._connections[cid] for cid in ids if cid in self._connections]

    def rooms_of(self, connection: Connection) -> set[str]:
        with self._lock:
            return set(self._memberships.get(connection.id, ()))

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "connections": len(self._connections),
                "rooms": len(self._rooms),
            }

    def _add(self, connection_id: str, room: str) -> None:
        """Must be called with lock held."""
        self._rooms.setdefault(room, set()).add(connection_id)
        self._memberships[connection_id].add(room)
