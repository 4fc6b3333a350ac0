from __future__ import annotations

import asyncio
import logging
from typing import Any
from weakref import WeakSet


logger = logging.getLogger(__name__)


class ConnectionManager:
    """Track live WebSocket stream sessions."""

    def __init__(self):
        self.active_connections: WeakSet = WeakSet()
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket, stream: str) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self.active_connections.add(websocket)
        logger.info("WebSocket %s stream connected. Total: %d", stream, self.count)

    async def disconnect(self, websocket, stream: str) -> None:
        """Forget a WebSocket connection."""
        async with self._lock:
            self.active_connections.discard(websocket)
        logger.info("WebSocket %s stream disconnected. Total: %d", stream, self.count)

    async def send_personal(self, websocket, message: dict[str, Any]) -> None:
        """Send a message to a specific connection, ignoring a closed peer."""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug("Failed to send personal message: %s", e)


_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager
