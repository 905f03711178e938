"""Task domain entity.

A task is a single piece of client work moving through the steps of a
task model. The task document embeds its assignments, deliveries,
comments and history so that every transition is one document write.

State changes go through TaskProgressionEngine
(app.application.services.task_progression_engine); this module only
holds the data, its validation and the derived read-only values.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.domain.enums import (
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
)
from app.domain.exceptions import ValidationException
from app.domain.value_objects.core import Attachment
from app.shared.utils.datetime import ensure_utc, utc_now

TITLE_MAX_LENGTH = 200
BRIEFING_MAX_LENGTH = 5000
TAG_MAX_LENGTH = 30
MIN_ESTIMATED_HOURS = 0.5


@dataclass
class StepAssignment:
    """Responsible user for one step ordinal. Step name/id are point-in-time copies."""

    step_order: int
    step_id: str
    step_name: str
    user_id: str
    assigned_by: str | None = None
    assigned_at: datetime | None = None


@dataclass
class Delivery:
    """Files submitted as the output of a step."""

    id: str
    step_order: int
    step_id: str
    step_name: str
    delivered_by: str
    attachments: list[Attachment]
    delivered_at: datetime
    notes: str | None = None
    status: DeliveryStatus = DeliveryStatus.ACTIVE


@dataclass
class Comment:
    id: str
    author_id: str | None
    content: str
    created_at: datetime
    mentions: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    is_internal: bool = True


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable audit record of one state transition.

    changed_by is None for actions taken from the client portal.
    metadata holds step_from/step_to and related ids (comment_id,
    delivery_id, attachment_ids) when relevant.
    """

    id: str
    action: HistoryAction
    description: str
    changed_by: str | None
    timestamp: datetime
    previous_value: Any = None
    new_value: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ClientApproval:
    status: ClientApprovalStatus = ClientApprovalStatus.PENDING
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    comments: str | None = None
    annotated_image: str | None = None


@dataclass
class TaskSettings:
    allow_client_comments: bool = True
    notify_on_update: bool = True
    auto_advance_on_approval: bool = True


@dataclass
class TaskEntity:
    """Domain entity for a task.

    Invariants (checked by validate()):
        - 1 <= current_step <= total_steps
        - status COMPLETED implies current_step == total_steps
    history, deliveries and comments are append-only; the engine marks
    deliveries superseded/rejected instead of removing them.
    """

    id: str
    title: str
    briefing: str
    client_id: str
    task_model_id: str
    workflow_id: str
    current_step: int
    current_step_id: str
    total_steps: int
    due_date: datetime
    created_by: str | None
    status: TaskStatus = TaskStatus.ACTIVE
    priority: TaskPriority = TaskPriority.MEDIUM
    started_at: datetime | None = None
    completed_at: datetime | None = None
    estimated_hours: float = 8.0
    tags: list[str] = field(default_factory=list)
    assigned_users: list[StepAssignment] = field(default_factory=list)
    initial_attachments: list[Attachment] = field(default_factory=list)
    deliveries: list[Delivery] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    client_approval: ClientApproval = field(default_factory=ClientApproval)
    settings: TaskSettings = field(default_factory=TaskSettings)
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate task rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Task ID is required", field="id")
        if not self.title or not self.title.strip():
            raise ValidationException("Task title is required", field="title")
        if len(self.title) > TITLE_MAX_LENGTH:
            raise ValidationException(
                f"Title must not exceed {TITLE_MAX_LENGTH} characters", field="title"
            )
        if not self.briefing or not self.briefing.strip():
            raise ValidationException("Briefing is required", field="briefing")
        if len(self.briefing) > BRIEFING_MAX_LENGTH:
            raise ValidationException(
                f"Briefing must not exceed {BRIEFING_MAX_LENGTH} characters",
                field="briefing",
            )
        if not self.client_id:
            raise ValidationException("Client is required", field="client_id")
        if not self.task_model_id:
            raise ValidationException("Task model is required", field="task_model_id")
        if not self.workflow_id:
            raise ValidationException("Workflow is required", field="workflow_id")
        if self.due_date is None:
            raise ValidationException("Due date is required", field="due_date")
        if self.total_steps < 1:
            raise ValidationException(
                "A task needs at least one step", field="total_steps"
            )
        if not 1 <= self.current_step <= self.total_steps:
            raise ValidationException(
                f"Current step must be between 1 and {self.total_steps}",
                field="current_step",
            )
        if self.status == TaskStatus.COMPLETED and self.current_step != self.total_steps:
            raise ValidationException(
                "A completed task must be at its final step", field="status"
            )
        if self.estimated_hours < MIN_ESTIMATED_HOURS:
            raise ValidationException(
                f"Estimated hours must be at least {MIN_ESTIMATED_HOURS}",
                field="estimated_hours",
            )
        for tag in self.tags:
            if len(tag) > TAG_MAX_LENGTH:
                raise ValidationException(
                    f"Tags must not exceed {TAG_MAX_LENGTH} characters", field="tags"
                )

    @property
    def is_final_step(self) -> bool:
        return self.current_step >= self.total_steps

    @property
    def progress_percentage(self) -> int:
        return round(self.current_step / self.total_steps * 100)

    @property
    def current_assignee(self) -> str | None:
        """User responsible for the current step, or None when the step is unassigned."""
        assignment = self.assignment_for(self.current_step)
        return assignment.user_id if assignment else None

    @property
    def current_delivery(self) -> Delivery | None:
        """Latest active delivery of the current step, or None."""
        active = [
            d
            for d in self.deliveries
            if d.step_order == self.current_step and d.status == DeliveryStatus.ACTIVE
        ]
        return active[-1] if active else None

    def assignment_for(self, step_order: int) -> StepAssignment | None:
        return next(
            (a for a in self.assigned_users if a.step_order == step_order), None
        )

    def is_assigned(self, user_id: str) -> bool:
        """Return whether the user is responsible for any step of this task."""
        return any(a.user_id == user_id for a in self.assigned_users)

    def is_overdue(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return self.status == TaskStatus.ACTIVE and now > ensure_utc(self.due_date)

    def days_remaining(self, now: datetime | None = None) -> int | None:
        """Whole days until the due date (rounded up) while active; None otherwise."""
        if self.status != TaskStatus.ACTIVE:
            return None
        now = now or utc_now()
        delta = ensure_utc(self.due_date) - now
        return math.ceil(delta.total_seconds() / 86400)
