"""Real-time push of notifications to connected recipients."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Mapping, Protocol

from app.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)


class PushSocket(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class PushChannel(Protocol):
    async def push(self, user_id: int, payload: Mapping[str, Any]) -> bool:
        ...


class ConnectionManager:
    """In-process registry of live sockets keyed by user id.

    ``push`` returns ``False`` when the recipient has no live connection; the
    persisted notification is then the only record. A socket that fails to
    send is dropped from the registry.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[PushSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: int, socket: PushSocket) -> None:
        async with self._lock:
            self._connections[user_id].add(socket)
        logger.debug("Push channel opened for user %s", user_id)

    async def disconnect(self, user_id: int, socket: PushSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if sockets is None:
                return
            sockets.discard(socket)
            if not sockets:
                del self._connections[user_id]
        logger.debug("Push channel closed for user %s", user_id)

    def connection_count(self, user_id: int) -> int:
        return len(self._connections.get(user_id, ()))

    async def push(self, user_id: int, payload: Mapping[str, Any]) -> bool:
        async with self._lock:
            sockets = list(self._connections.get(user_id, ()))
        if not sockets:
            return False

        failed: list[PushSocket] = []
        for socket in sockets:
            try:
                await socket.send_json(dict(payload))
            except Exception:
                logger.warning("Dropping dead push socket for user %s", user_id, exc_info=True)
                failed.append(socket)

        for socket in failed:
            await self.disconnect(user_id, socket)

        if len(failed) == len(sockets):
            raise NotificationDeliveryError(f"No live push socket accepted the message for user {user_id}")
        return True
