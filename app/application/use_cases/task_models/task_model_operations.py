"""Task model operations: build a model from workflow steps and manage default assignees."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from app.application.interfaces.repositories import (
    ITaskModelRepository,
    IUserRepository,
    IWorkflowRepository,
)
from app.domain.entities.task_model import (
    DefaultAssignee,
    SelectedStep,
    TaskModelEntity,
    TaskModelSettings,
)
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import WorkflowEntity
from app.domain.exceptions import (
    AuthorizationException,
    DuplicateResourceException,
    ResourceNotFoundException,
    ValidationException,
)
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


class TaskModelService:
    """Create and query task models; edit default assignees (admin or creator)."""

    def __init__(
        self,
        task_model_repo: ITaskModelRepository,
        workflow_repo: IWorkflowRepository,
        user_repo: IUserRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.task_model_repo = task_model_repo
        self.workflow_repo = workflow_repo
        self.user_repo = user_repo
        self._clock = clock

    async def get_task_model(self, task_model_id: str) -> TaskModelEntity:
        model = await self.task_model_repo.get_by_id(task_model_id)
        if model is None:
            raise ResourceNotFoundException("task_model", task_model_id)
        return model

    async def list_task_models(
        self, workflow_id: str | None = None, active_only: bool = False
    ) -> list[TaskModelEntity]:
        return await self.task_model_repo.list(workflow_id=workflow_id, active_only=active_only)

    async def create_task_model(
        self,
        actor: UserEntity,
        name: str,
        workflow_id: str,
        step_ids: Sequence[str],
        description: str | None = None,
        default_assignees: dict[str, str] | None = None,
        settings: TaskModelSettings | None = None,
    ) -> TaskModelEntity:
        """Create a model selecting step_ids from the workflow.

        Selected steps are snapshotted and sorted by workflow order;
        default_assignees maps step id -> user id.

        Raises:
            DuplicateResourceException: If a model with this name exists.
            ResourceNotFoundException: If workflow or an assignee is missing.
            ValidationException: If a step id is not in the workflow.
        """
        name = name.strip()
        existing = await self.task_model_repo.list()
        if any(m.name.lower() == name.lower() for m in existing):
            raise DuplicateResourceException("task_model", "name")
        workflow = await self.workflow_repo.get_by_id(workflow_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        selected = _select_steps(workflow, step_ids)
        now = self._clock()
        model = TaskModelEntity(
            id=generate_cuid(),
            name=name,
            workflow_id=workflow.id,
            selected_steps=selected,
            created_by=actor.id,
            description=description,
            default_assignees=await self._assignees(selected, default_assignees or {}),
            settings=settings or TaskModelSettings(),
            created_at=now,
            updated_at=now,
        )
        model.validate_against(workflow)
        created = await self.task_model_repo.create(model)
        logger.info(
            "Task model %s created by %s with %d steps", created.id, actor.id, len(selected)
        )
        return created

    async def update_default_assignees(
        self, actor: UserEntity, task_model_id: str, assignees: dict[str, str]
    ) -> TaskModelEntity:
        """Replace default assignees (step id -> user id). Existing tasks are not touched."""
        model = await self.get_task_model(task_model_id)
        if not actor.is_admin and model.created_by != actor.id:
            raise AuthorizationException(
                resource="task_model",
                action="update",
                message="Only an admin or the model's creator can edit it",
            )
        model.set_default_assignees(await self._assignees(model.selected_steps, assignees))
        model.updated_at = self._clock()
        return await self.task_model_repo.update(model)

    async def _assignees(
        self, selected: Sequence[SelectedStep], assignees: dict[str, str]
    ) -> list[DefaultAssignee]:
        by_id = {s.step_id: s for s in selected}
        result = []
        for step_id, user_id in assignees.items():
            step = by_id.get(step_id)
            if step is None:
                raise ValidationException(
                    f"Step {step_id} is not selected in this model",
                    field="default_assignees",
                )
            user = await self.user_repo.get_by_id(user_id)
            if user is None:
                raise ResourceNotFoundException("user", user_id)
            result.append(
                DefaultAssignee(
                    step_id=step.step_id,
                    step_order=step.step_order,
                    step_name=step.step_name,
                    user_id=user.id,
                )
            )
        return result


def _select_steps(workflow: WorkflowEntity, step_ids: Sequence[str]) -> list[SelectedStep]:
    if not step_ids:
        raise ValidationException(
            "A task model needs at least one step", field="selected_steps"
        )
    selected = []
    for step_id in dict.fromkeys(step_ids):
        step = workflow.get_step(step_id)
        if step is None:
            raise ValidationException(
                f"Step {step_id} does not exist in the workflow", field="selected_steps"
            )
        selected.append(
            SelectedStep(
                step_id=step.id,
                step_order=step.order,
                step_name=step.name,
                step_color=step.color,
                step_icon=step.icon,
                step_settings=step.settings,
            )
        )
    return sorted(selected, key=lambda s: s.step_order)
