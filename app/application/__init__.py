"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, notifier, hashing).
"""

from app.application.interfaces import (
    IClientRepository,
    IPasswordHasher,
    ITaskModelRepository,
    ITaskNotifier,
    ITaskRepository,
    IUserRepository,
    IWorkflowRepository,
    StepResolver,
)
from app.application.services.authorization_service import TaskAuthorizationService
from app.application.services.task_progression_engine import (
    TaskProgressionEngine,
    TransitionResult,
)
from app.application.services.user_service import UserService
from app.application.use_cases.clients import ClientService
from app.application.use_cases.task_models import TaskModelService
from app.application.use_cases.tasks import TaskService
from app.application.use_cases.workflows import WorkflowService

__all__ = [
    "ClientService",
    "IClientRepository",
    "IPasswordHasher",
    "ITaskModelRepository",
    "ITaskNotifier",
    "ITaskRepository",
    "IUserRepository",
    "IWorkflowRepository",
    "StepResolver",
    "TaskAuthorizationService",
    "TaskModelService",
    "TaskProgressionEngine",
    "TaskService",
    "TransitionResult",
    "UserService",
    "WorkflowService",
]
