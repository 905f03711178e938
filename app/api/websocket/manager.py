"""Live WebSocket connections for task notifications.

Holds active connections per user and provides user-targeted sends.
Use via app.state.ws_manager (set in lifespan). A user may hold several
connections (tabs, devices); each one receives the message.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections keyed by user id.

    - connect requires the authenticated user id.
    - send_to_user reaches every connection of that user; dead sockets are dropped.
    - connection_count is lock-protected for concurrent access.
    """

    def __init__(self) -> None:
        self._connections_by_user: dict[str, set[WebSocket]] = {}
        self._websocket_to_user: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        """Accept and register a new connection for the given user.

        Args:
            websocket: The WebSocket instance to accept and track.
            user_id: User id from the verified bearer token.
        """
        await websocket.accept()
        async with self._lock:
            self._connections_by_user.setdefault(user_id, set()).add(websocket)
            self._websocket_to_user[websocket] = user_id

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection (call on disconnect)."""
        async with self._lock:
            self._forget(websocket)

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Send a JSON message to all of a user's connections.

        Returns:
            Number of connections the message was delivered to.
        """
        async with self._lock:
            snapshot = list(self._connections_by_user.get(user_id, set()))
        delivered = 0
        dead: list[WebSocket] = []
        for ws in snapshot:
            try:
                await ws.send_json(message)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.debug("Dropping dead WebSocket for user %s: %s", user_id, e)
                dead.append(ws)
        if dead:
            async with self._lock:
                for ws in dead:
                    self._forget(ws)
        return delivered

    async def get_connection_count(self) -> int:
        """Open sockets across all users."""
        async with self._lock:
            return sum(len(c) for c in self._connections_by_user.values())

    def _forget(self, websocket: WebSocket) -> None:
        user_id = self._websocket_to_user.pop(websocket, None)
        if user_id is None:
            return
        conns = self._connections_by_user.get(user_id)
        if conns is not None:
            conns.discard(websocket)
            if not conns:
                del self._connections_by_user[user_id]
