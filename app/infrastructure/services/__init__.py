"""Infrastructure implementations of application service interfaces."""

from app.infrastructure.services.task_notifier import (
    LogOnlyTaskNotifier,
    WebSocketTaskNotifier,
)

__all__ = ["LogOnlyTaskNotifier", "WebSocketTaskNotifier"]
