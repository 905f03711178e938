"""Application services: progression engine, authorization, users."""

from app.application.services.authorization_service import TaskAuthorizationService
from app.application.services.task_progression_engine import (
    TaskProgressionEngine,
    TransitionResult,
)
from app.application.services.user_service import UserService

__all__ = [
    "TaskAuthorizationService",
    "TaskProgressionEngine",
    "TransitionResult",
    "UserService",
]
