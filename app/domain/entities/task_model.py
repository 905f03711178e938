"""Task model domain entity.

A task model is a named selection of a workflow's steps (kept in workflow
order, gaps allowed) plus default assignees per step. Tasks are
instantiated from a model; the model's ordered selected steps define the
task's step ordinals 1..total_steps.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.entities.workflow import StepSettings, WorkflowEntity
from app.domain.enums import TaskPriority
from app.domain.exceptions import ValidationException
from app.domain.value_objects.core import DEFAULT_STEP_COLOR

MODEL_NAME_MAX_LENGTH = 100
MODEL_DESCRIPTION_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 50
TAG_MAX_LENGTH = 30
MIN_ESTIMATED_HOURS = 0.5


@dataclass
class SelectedStep:
    """Snapshot of a workflow step chosen for the model."""

    step_id: str
    step_order: int
    step_name: str
    step_color: str = DEFAULT_STEP_COLOR
    step_icon: str = "circle"
    step_settings: StepSettings = field(default_factory=StepSettings)


@dataclass
class DefaultAssignee:
    """Default responsible user for one selected step (keyed by step_id)."""

    step_id: str
    step_order: int
    step_name: str
    user_id: str


@dataclass
class TaskModelSettings:
    default_priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: float = 8.0
    category: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class TaskModelStats:
    total_tasks: int = 0
    completed_tasks: int = 0
    last_used: datetime | None = None


@dataclass
class TaskModelEntity:
    """Domain entity for a task model (template for tasks).

    Implements the step resolver contract used by the progression engine:
    resolve_step(ordinal) returns the selected step at that 1-based
    position, or None when the ordinal is out of range.
    """

    id: str
    name: str
    workflow_id: str
    selected_steps: list[SelectedStep]
    created_by: str | None
    description: str | None = None
    default_assignees: list[DefaultAssignee] = field(default_factory=list)
    settings: TaskModelSettings = field(default_factory=TaskModelSettings)
    is_active: bool = True
    stats: TaskModelStats = field(default_factory=TaskModelStats)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate model rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Task model ID is required", field="id")
        if not self.name or not self.name.strip():
            raise ValidationException("Task model name is required", field="name")
        if len(self.name) > MODEL_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Task model name must not exceed {MODEL_NAME_MAX_LENGTH} characters",
                field="name",
            )
        if self.description and len(self.description) > MODEL_DESCRIPTION_MAX_LENGTH:
            raise ValidationException(
                f"Task model description must not exceed {MODEL_DESCRIPTION_MAX_LENGTH} characters",
                field="description",
            )
        if not self.workflow_id:
            raise ValidationException("Workflow is required", field="workflow_id")
        if not self.selected_steps:
            raise ValidationException(
                "A task model needs at least one step", field="selected_steps"
            )
        step_ids = [s.step_id for s in self.selected_steps]
        if len(step_ids) != len(set(step_ids)):
            raise ValidationException(
                "A step can be selected only once", field="selected_steps"
            )
        orders = [s.step_order for s in self.selected_steps]
        if len(orders) != len(set(orders)):
            raise ValidationException(
                "Selected steps must keep the workflow order", field="selected_steps"
            )
        self._validate_settings()
        self._validate_assignees()

    def _validate_settings(self) -> None:
        if self.settings.estimated_hours < MIN_ESTIMATED_HOURS:
            raise ValidationException(
                f"Estimated hours must be at least {MIN_ESTIMATED_HOURS}",
                field="settings.estimated_hours",
            )
        if self.settings.category and len(self.settings.category) > CATEGORY_MAX_LENGTH:
            raise ValidationException(
                f"Category must not exceed {CATEGORY_MAX_LENGTH} characters",
                field="settings.category",
            )
        for tag in self.settings.tags:
            if len(tag) > TAG_MAX_LENGTH:
                raise ValidationException(
                    f"Tags must not exceed {TAG_MAX_LENGTH} characters",
                    field="settings.tags",
                )

    def _validate_assignees(self) -> None:
        selected = {s.step_id for s in self.selected_steps}
        for assignee in self.default_assignees:
            if assignee.step_id not in selected:
                raise ValidationException(
                    f"Default assignee references step {assignee.step_name!r} "
                    "which is not selected in this model",
                    field="default_assignees",
                )

    @property
    def ordered_steps(self) -> list[SelectedStep]:
        return sorted(self.selected_steps, key=lambda s: s.step_order)

    @property
    def step_count(self) -> int:
        return len(self.selected_steps)

    @property
    def completion_rate(self) -> int:
        if self.stats.total_tasks == 0:
            return 0
        return round(self.stats.completed_tasks / self.stats.total_tasks * 100)

    def validate_against(self, workflow: WorkflowEntity) -> None:
        """Check that every selected step exists in the workflow with the same order.

        Raises:
            ValidationException: If a step is missing, misordered, or the model
                points at a different workflow.
        """
        if workflow.id != self.workflow_id:
            raise ValidationException(
                "Task model does not belong to this workflow", field="workflow_id"
            )
        for selected in self.selected_steps:
            step = workflow.get_step(selected.step_id)
            if step is None:
                raise ValidationException(
                    f"Step {selected.step_name!r} does not exist in the workflow",
                    field="selected_steps",
                )
            if step.order != selected.step_order:
                raise ValidationException(
                    f"Order of step {selected.step_name!r} does not match the workflow",
                    field="selected_steps",
                )

    def resolve_step(self, ordinal: int) -> SelectedStep | None:
        """Return the selected step at a 1-based task ordinal."""
        steps = self.ordered_steps
        if 1 <= ordinal <= len(steps):
            return steps[ordinal - 1]
        return None

    def ordinal_of(self, step_id: str) -> int | None:
        """Return the 1-based task ordinal of a selected step, or None."""
        for index, step in enumerate(self.ordered_steps, start=1):
            if step.step_id == step_id:
                return index
        return None

    def default_assignee_for(self, ordinal: int) -> DefaultAssignee | None:
        step = self.resolve_step(ordinal)
        if step is None:
            return None
        return next(
            (a for a in self.default_assignees if a.step_id == step.step_id), None
        )

    def set_default_assignees(self, assignees: list[DefaultAssignee]) -> None:
        """Replace default assignees (validated against selected steps)."""
        previous = self.default_assignees
        self.default_assignees = list(assignees)
        try:
            self._validate_assignees()
        except ValidationException:
            self.default_assignees = previous
            raise

    def record_task_created(self, at: datetime) -> None:
        self.stats.total_tasks += 1
        self.stats.last_used = at

    def record_task_completed(self) -> None:
        self.stats.completed_tasks += 1
