"""Workflow domain entity.

A workflow is a reusable, ordered list of named steps with per-step
settings. Task models select a subset of these steps; tasks then move
through them sequentially.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.domain.value_objects.core import DEFAULT_STEP_COLOR, HexColor

WORKFLOW_NAME_MAX_LENGTH = 100
WORKFLOW_DESCRIPTION_MAX_LENGTH = 500
STEP_NAME_MAX_LENGTH = 50
STEP_DESCRIPTION_MAX_LENGTH = 200


@dataclass
class StepSettings:
    """Per-step behaviour flags."""

    allow_client_access: bool = False
    requires_approval: bool = False
    allow_multiple_files: bool = True
    is_client_approval_step: bool = False


@dataclass
class WorkflowStep:
    """One ordered stage of a workflow."""

    id: str
    name: str
    order: int
    description: str | None = None
    color: str = DEFAULT_STEP_COLOR
    icon: str = "circle"
    settings: StepSettings = field(default_factory=StepSettings)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate step rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Step ID is required", field="id")
        if not self.name or not self.name.strip():
            raise ValidationException("Step name is required", field="name")
        if len(self.name) > STEP_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Step name must not exceed {STEP_NAME_MAX_LENGTH} characters",
                field="name",
            )
        if self.description and len(self.description) > STEP_DESCRIPTION_MAX_LENGTH:
            raise ValidationException(
                f"Step description must not exceed {STEP_DESCRIPTION_MAX_LENGTH} characters",
                field="description",
            )
        if self.order < 1:
            raise ValidationException("Step order must be at least 1", field="order")
        try:
            HexColor(self.color)
        except ValueError as e:
            raise ValidationException(str(e), field="color") from e


@dataclass
class WorkflowEntity:
    """Domain entity for a workflow definition.

    Step orders are unique and sequential starting at 1; this holds after
    construction and after every step edit. At most one workflow is the
    default; that rule spans documents and is enforced by the repository
    (see set_default in the workflow service).
    """

    id: str
    name: str
    steps: list[WorkflowStep]
    created_by: str | None
    description: str | None = None
    is_active: bool = True
    is_default: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate workflow rules. Raises ValidationException if invalid."""
        if not self.id:
            raise ValidationException("Workflow ID is required", field="id")
        if not self.name or not self.name.strip():
            raise ValidationException("Workflow name is required", field="name")
        if len(self.name) > WORKFLOW_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Workflow name must not exceed {WORKFLOW_NAME_MAX_LENGTH} characters",
                field="name",
            )
        if self.description and len(self.description) > WORKFLOW_DESCRIPTION_MAX_LENGTH:
            raise ValidationException(
                f"Workflow description must not exceed {WORKFLOW_DESCRIPTION_MAX_LENGTH} characters",
                field="description",
            )
        self._validate_step_orders()

    def _validate_step_orders(self) -> None:
        orders = [s.order for s in self.steps]
        if len(orders) != len(set(orders)):
            raise ValidationException("Steps cannot share the same order", field="steps")
        if sorted(orders) != list(range(1, len(orders) + 1)):
            raise ValidationException(
                "Step orders must be sequential starting at 1", field="steps"
            )
        ids = [s.id for s in self.steps]
        if len(ids) != len(set(ids)):
            raise ValidationException("Step IDs must be unique", field="steps")

    @property
    def ordered_steps(self) -> list[WorkflowStep]:
        return sorted(self.steps, key=lambda s: s.order)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def get_step(self, step_id: str) -> WorkflowStep | None:
        """Return the step with the given id, or None."""
        return next((s for s in self.steps if s.id == step_id), None)

    def get_step_by_order(self, order: int) -> WorkflowStep | None:
        """Return the step at the given order, or None."""
        return next((s for s in self.steps if s.order == order), None)

    def get_next_step(self, current_order: int) -> WorkflowStep | None:
        return self.get_step_by_order(current_order + 1)

    def get_previous_step(self, current_order: int) -> WorkflowStep | None:
        return self.get_step_by_order(current_order - 1)

    def add_step(
        self,
        step_id: str,
        name: str,
        *,
        description: str | None = None,
        color: str = DEFAULT_STEP_COLOR,
        icon: str = "circle",
        settings: StepSettings | None = None,
    ) -> WorkflowStep:
        """Append a step after the current last step and return it."""
        if self.get_step(step_id) is not None:
            raise ValidationException("Step IDs must be unique", field="steps")
        max_order = max((s.order for s in self.steps), default=0)
        step = WorkflowStep(
            id=step_id,
            name=name,
            order=max_order + 1,
            description=description,
            color=color,
            icon=icon,
            settings=settings or StepSettings(),
        )
        self.steps.append(step)
        return step

    def remove_step(self, step_id: str) -> WorkflowStep:
        """Remove a step and shift subsequent orders down by one.

        Raises:
            ResourceNotFoundException: If no step has the given id.
        """
        step = self.get_step(step_id)
        if step is None:
            raise ResourceNotFoundException("workflow_step", step_id)
        self.steps.remove(step)
        for other in self.steps:
            if other.order > step.order:
                other.order -= 1
        return step

    def reorder_steps(self, step_ids: list[str]) -> None:
        """Assign orders 1..n following the given list of step ids.

        Raises:
            ValidationException: If step_ids is not a permutation of the current steps.
        """
        if sorted(step_ids) != sorted(s.id for s in self.steps):
            raise ValidationException(
                "Reorder must list every step of the workflow exactly once",
                field="step_ids",
            )
        position = {step_id: index + 1 for index, step_id in enumerate(step_ids)}
        for step in self.steps:
            step.order = position[step.id]
        self._validate_step_orders()
