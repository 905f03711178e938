"""Pydantic request/response schemas for the API."""

from app.schemas.auth import LoginRequest, PortalAccessRequest, TokenResponse
from app.schemas.client import ClientCreateRequest, ClientResponse
from app.schemas.health import HealthResponse
from app.schemas.task import TaskCreateRequest, TaskResponse, TaskSummaryResponse
from app.schemas.task_model import TaskModelCreateRequest, TaskModelResponse
from app.schemas.user import UserCreateRequest, UserResponse
from app.schemas.workflow import WorkflowCreateRequest, WorkflowResponse

__all__ = [
    "ClientCreateRequest",
    "ClientResponse",
    "HealthResponse",
    "LoginRequest",
    "PortalAccessRequest",
    "TaskCreateRequest",
    "TaskModelCreateRequest",
    "TaskModelResponse",
    "TaskResponse",
    "TaskSummaryResponse",
    "TokenResponse",
    "UserCreateRequest",
    "UserResponse",
    "WorkflowCreateRequest",
    "WorkflowResponse",
]
