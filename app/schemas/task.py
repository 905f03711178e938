"""Task API schemas (staff endpoints and client portal)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.entities.task import TaskEntity
from app.domain.enums import (
    ApprovalDecision,
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
)
from app.schemas.common import AttachmentIn, AttachmentResponse

TAG_MAX_LENGTH = 30


def _check_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned = [t.strip() for t in tags if t.strip()]
    for tag in cleaned:
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tags must not exceed {TAG_MAX_LENGTH} characters")
    return cleaned


class TaskSettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allow_client_comments: bool = True
    notify_on_update: bool = True
    auto_advance_on_approval: bool = True


# ---- Requests ----


class TaskCreateRequest(BaseModel):
    """Request body for POST /tasks (instantiate from a task model)."""

    title: str = Field(..., min_length=5, max_length=200)
    briefing: str = Field(..., min_length=10, max_length=5000)
    client_id: str = Field(..., min_length=1)
    task_model_id: str = Field(..., min_length=1)
    due_date: datetime
    priority: TaskPriority | None = None
    tags: list[str] | None = None
    initial_attachments: list[AttachmentIn] = Field(default_factory=list)
    settings: TaskSettingsSchema | None = None

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: list[str] | None) -> list[str] | None:
        return _check_tags(v)


class TaskUpdateRequest(BaseModel):
    """Request body for PATCH /tasks/{id}; only set fields are changed."""

    title: str | None = Field(default=None, min_length=5, max_length=200)
    briefing: str | None = Field(default=None, min_length=10, max_length=5000)
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    tags: list[str] | None = None
    estimated_hours: float | None = Field(default=None, ge=0.5)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: list[str] | None) -> list[str] | None:
        return _check_tags(v)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class AdvanceRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


class RevertRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ReopenRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    mentions: list[str] = Field(default_factory=list)
    attachments: list[AttachmentIn] = Field(default_factory=list)
    is_internal: bool = True


class ClientCommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    attachments: list[AttachmentIn] = Field(default_factory=list)


class DeliveryCreateRequest(BaseModel):
    attachments: list[AttachmentIn] = Field(..., min_length=1)
    notes: str | None = Field(default=None, max_length=500)


class AssignmentRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class StatusChangeRequest(BaseModel):
    """Hold, resume or cancel. Completion only happens by advancing."""

    status: TaskStatus

    @field_validator("status")
    @classmethod
    def not_completed(cls, v: TaskStatus) -> TaskStatus:
        if v == TaskStatus.COMPLETED:
            raise ValueError("A task is completed by advancing past its final step")
        return v


class ApprovalRequest(BaseModel):
    decision: ApprovalDecision
    comments: str | None = Field(default=None, max_length=1000)
    annotated_image: str | None = Field(default=None, max_length=2048)


# ---- Responses ----


class StepAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_order: int
    step_id: str
    step_name: str
    user_id: str
    assigned_by: str | None
    assigned_at: datetime | None


class DeliveryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    step_order: int
    step_id: str
    step_name: str
    delivered_by: str
    attachments: list[AttachmentResponse]
    delivered_at: datetime
    notes: str | None
    status: DeliveryStatus


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    author_id: str | None
    content: str
    created_at: datetime
    mentions: list[str]
    attachments: list[AttachmentResponse]
    is_internal: bool


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    action: HistoryAction
    description: str
    changed_by: str | None
    timestamp: datetime
    previous_value: Any = None
    new_value: Any = None
    metadata: dict[str, Any]


class ClientApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: ClientApprovalStatus
    approved_at: datetime | None
    rejected_at: datetime | None
    comments: str | None
    annotated_image: str | None


class TaskSummaryResponse(BaseModel):
    """List/kanban item: no embedded collections."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    client_id: str
    task_model_id: str
    workflow_id: str
    current_step: int
    current_step_id: str
    total_steps: int
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    tags: list[str]
    progress_percentage: int
    current_assignee: str | None
    is_overdue: bool = False
    days_remaining: int | None = None
    version: int
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_entity(cls, task: TaskEntity, now: datetime) -> TaskSummaryResponse:
        # is_overdue and days_remaining are methods on the entity
        data = {
            name: getattr(task, name)
            for name in cls.model_fields
            if name not in ("is_overdue", "days_remaining")
        }
        data["is_overdue"] = task.is_overdue(now)
        data["days_remaining"] = task.days_remaining(now)
        return cls.model_validate(data, from_attributes=True)


class TaskResponse(TaskSummaryResponse):
    """Full task document."""

    briefing: str
    created_by: str | None
    started_at: datetime | None
    completed_at: datetime | None
    estimated_hours: float
    assigned_users: list[StepAssignmentResponse]
    initial_attachments: list[AttachmentResponse]
    deliveries: list[DeliveryResponse]
    comments: list[CommentResponse]
    history: list[HistoryEntryResponse]
    client_approval: ClientApprovalResponse
    settings: TaskSettingsSchema
    current_delivery: DeliveryResponse | None = None


class PortalTaskResponse(BaseModel):
    """What a client sees: no internal comments, no assignees, no history."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    briefing: str
    current_step: int
    total_steps: int
    status: TaskStatus
    due_date: datetime
    progress_percentage: int
    current_delivery: DeliveryResponse | None = None
    client_approval: ClientApprovalResponse
    comments: list[CommentResponse] = Field(default_factory=list)
    allow_client_comments: bool = True

    @classmethod
    def from_entity(cls, task: TaskEntity) -> PortalTaskResponse:
        data = {
            name: getattr(task, name)
            for name in cls.model_fields
            if name not in ("comments", "allow_client_comments")
        }
        data["comments"] = [c for c in task.comments if not c.is_internal]
        data["allow_client_comments"] = task.settings.allow_client_comments
        return cls.model_validate(data, from_attributes=True)


class KanbanColumnResponse(BaseModel):
    step_order: int
    step_name: str
    tasks: list[TaskSummaryResponse]


class TaskStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    total_active: int
    total_completed: int
    total_overdue: int
    total_high_priority: int
    average_completion_days: int
