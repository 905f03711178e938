"""Task notifiers: WebSocket push to connected users, or log-only."""

from __future__ import annotations

from typing import Any

from app.api.websocket.manager import ConnectionManager
from app.core.constants import (
    WS_EVENT_TASK_ASSIGNED,
    WS_EVENT_TASK_COMPLETED,
    WS_EVENT_USER_MENTIONED,
)
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class WebSocketTaskNotifier:
    """ITaskNotifier that pushes JSON events to each user's open WebSockets.

    Users without an open connection simply miss the event; nothing is queued.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager

    async def task_assigned(self, user_id: str, task_id: str, title: str, step: int) -> None:
        await self._send(
            user_id,
            WS_EVENT_TASK_ASSIGNED,
            {"task_id": task_id, "title": title, "step": step},
        )

    async def task_completed(self, user_ids: list[str], task_id: str, title: str) -> None:
        for user_id in dict.fromkeys(user_ids):
            await self._send(
                user_id, WS_EVENT_TASK_COMPLETED, {"task_id": task_id, "title": title}
            )

    async def user_mentioned(
        self, user_id: str, task_id: str, title: str, comment_id: str
    ) -> None:
        await self._send(
            user_id,
            WS_EVENT_USER_MENTIONED,
            {"task_id": task_id, "title": title, "comment_id": comment_id},
        )

    async def _send(self, user_id: str, event: str, data: dict[str, Any]) -> None:
        message = {"type": event, "data": data, "sent_at": utc_now().isoformat()}
        delivered = await self.manager.send_to_user(user_id, message)
        logger.debug("Notify %s -> user %s (%d connections)", event, user_id, delivered)


class LogOnlyTaskNotifier:
    """ITaskNotifier that only logs. Used when NOTIFICATIONS_ENABLED is false."""

    async def task_assigned(self, user_id: str, task_id: str, title: str, step: int) -> None:
        logger.info("Notify skipped: task %s step %d assigned to %s", task_id, step, user_id)

    async def task_completed(self, user_ids: list[str], task_id: str, title: str) -> None:
        logger.info("Notify skipped: task %s completed (%d users)", task_id, len(user_ids))

    async def user_mentioned(
        self, user_id: str, task_id: str, title: str, comment_id: str
    ) -> None:
        logger.info("Notify skipped: %s mentioned on task %s", user_id, task_id)
