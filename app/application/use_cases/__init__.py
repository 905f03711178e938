"""Application use cases: one service per aggregate."""

from app.application.use_cases.clients import ClientService
from app.application.use_cases.task_models import TaskModelService
from app.application.use_cases.tasks import TaskService
from app.application.use_cases.workflows import StepInput, WorkflowService

__all__ = [
    "ClientService",
    "StepInput",
    "TaskModelService",
    "TaskService",
    "WorkflowService",
]
