"""Registry of live notification sockets, keyed by user ID.

One registry is created per app in the lifespan handler and kept on
``app.state.connections``; handlers reach it through ``get_connection_registry``.
Push delivery is best-effort and not relied on for correctness.
"""

import asyncio
from collections import defaultdict
from typing import Any, Protocol

from fastapi import Request, WebSocket
from libs.common.logging import get_logger

logger = get_logger(__name__)


class PushConnection(Protocol):
    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


class ConnectionRegistry:
    """Tracks open push connections per user."""

    def __init__(self):
        self._connections: dict[str, set[PushConnection]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._closed = False

    async def connect(self, user_id: str, connection: PushConnection) -> None:
        async with self._lock:
            if self._closed:
                raise RuntimeError("Connection registry is closed")
            self._connections[user_id].add(connection)
        logger.info("Push connection opened for user %s", user_id)

    async def disconnect(self, user_id: str, connection: PushConnection) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if sockets is None:
                return
            sockets.discard(connection)
            if not sockets:
                del self._connections[user_id]
        logger.info("Push connection closed for user %s", user_id)

    def is_connected(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    def connection_count(self, user_id: str = None) -> int:
        if user_id is not None:
            return len(self._connections.get(user_id, ()))
        return sum(len(sockets) for sockets in self._connections.values())

    async def send_to_user(self, user_id: str, payload: dict) -> int:
        """Send ``payload`` to every socket of a user.

        Returns the number of sockets reached. Sockets that fail are dropped.
        """
        async with self._lock:
            sockets = list(self._connections.get(user_id, ()))

        delivered = 0
        dead = []
        for connection in sockets:
            try:
                await connection.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping push connection for user %s: %s", user_id, e)
                dead.append(connection)

        for connection in dead:
            await self.disconnect(user_id, connection)
        return delivered

    async def close(self) -> None:
        """Close every connection and refuse new ones."""
        async with self._lock:
            self._closed = True
            sockets = [
                connection
                for connections in self._connections.values()
                for connection in connections
            ]
            self._connections.clear()

        for connection in sockets:
            try:
                await connection.close(code=1001)
            except Exception as e:
                logger.debug("Error closing push connection: %s", e)


def get_connection_registry(request: Request) -> ConnectionRegistry:
    """FastAPI dependency returning the app's registry."""
    return request.app.state.connections


def get_websocket_registry(websocket: WebSocket) -> ConnectionRegistry:
    return websocket.app.state.connections
