"""DTOs for task use cases (no dependency on persistence)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.entities.task import TaskEntity, TaskSettings
from app.domain.enums import TaskPriority, TaskStatus
from app.domain.value_objects.core import Attachment


@dataclass(frozen=True)
class TaskCreate:
    """Input for creating a task from a task model."""

    title: str
    briefing: str
    client_id: str
    task_model_id: str
    due_date: datetime
    priority: TaskPriority | None = None
    tags: list[str] | None = None
    initial_attachments: list[Attachment] = field(default_factory=list)
    settings: TaskSettings | None = None


@dataclass(frozen=True)
class TaskFilter:
    """Task list filters. All set fields must match.

    overdue selects active tasks past their due date. search matches
    title or briefing case-insensitively. assigned_user_id matches any
    step assignment; current_assignee_id only the current step's.
    """

    status: TaskStatus | None = None
    overdue: bool = False
    priority: TaskPriority | None = None
    client_id: str | None = None
    task_model_id: str | None = None
    workflow_id: str | None = None
    assigned_user_id: str | None = None
    current_assignee_id: str | None = None
    search: str | None = None

    def matches(self, task: TaskEntity, now: datetime) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.overdue and not task.is_overdue(now):
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.client_id and task.client_id != self.client_id:
            return False
        if self.task_model_id and task.task_model_id != self.task_model_id:
            return False
        if self.workflow_id and task.workflow_id != self.workflow_id:
            return False
        if self.assigned_user_id and not task.is_assigned(self.assigned_user_id):
            return False
        if self.current_assignee_id and task.current_assignee != self.current_assignee_id:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in task.title.lower() and needle not in task.briefing.lower():
                return False
        return True


@dataclass(frozen=True)
class KanbanColumn:
    """Active tasks sitting at one step ordinal."""

    step_order: int
    step_name: str
    tasks: list[TaskEntity]


@dataclass(frozen=True)
class TaskStats:
    total_active: int
    total_completed: int
    total_overdue: int
    total_high_priority: int
    average_completion_days: int

    @property
    def total(self) -> int:
        return self.total_active + self.total_completed
