"""Workflow operations: create, query, edit steps, and the single default workflow."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from app.application.interfaces.repositories import IWorkflowRepository
from app.application.services.authorization_service import TaskAuthorizationService
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import StepSettings, WorkflowEntity, WorkflowStep
from app.domain.exceptions import ResourceNotFoundException, ValidationException
from app.domain.value_objects.core import DEFAULT_STEP_COLOR
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepInput:
    """A step to add; order is assigned by position."""

    name: str
    description: str | None = None
    color: str = DEFAULT_STEP_COLOR
    icon: str = "circle"
    settings: StepSettings = field(default_factory=StepSettings)


class WorkflowService:
    """Workflow maintenance. Reads are open to every user; writes are admin only."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        authz: TaskAuthorizationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.workflow_repo = workflow_repo
        self.authz = authz or TaskAuthorizationService()
        self._clock = clock

    async def get_workflow(self, workflow_id: str) -> WorkflowEntity:
        workflow = await self.workflow_repo.get_by_id(workflow_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return workflow

    async def get_default(self) -> WorkflowEntity:
        workflow = await self.workflow_repo.get_default()
        if workflow is None:
            raise ResourceNotFoundException("workflow", "default")
        return workflow

    async def list_workflows(self, active_only: bool = False) -> list[WorkflowEntity]:
        return await self.workflow_repo.list(active_only=active_only)

    async def create_workflow(
        self,
        actor: UserEntity,
        name: str,
        steps: list[StepInput],
        description: str | None = None,
        is_default: bool = False,
    ) -> WorkflowEntity:
        """Create a workflow with steps ordered 1..n as given.

        When is_default is set, the default flag moves to the new workflow.
        """
        self.authz.require_admin(actor, "workflow", "create")
        if not steps:
            raise ValidationException("A workflow needs at least one step", field="steps")
        now = self._clock()
        workflow = WorkflowEntity(
            id=generate_cuid(),
            name=name.strip(),
            steps=[
                WorkflowStep(
                    id=generate_cuid(),
                    name=s.name.strip(),
                    order=index,
                    description=s.description,
                    color=s.color,
                    icon=s.icon,
                    settings=s.settings,
                )
                for index, s in enumerate(steps, start=1)
            ],
            created_by=actor.id,
            description=description,
            created_at=now,
            updated_at=now,
        )
        created = await self.workflow_repo.create(workflow)
        logger.info("Workflow %s created by %s (%d steps)", created.id, actor.id, len(steps))
        if is_default:
            created = await self.workflow_repo.set_default(created.id)
        return created

    async def update_workflow(
        self,
        actor: UserEntity,
        workflow_id: str,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> WorkflowEntity:
        self.authz.require_admin(actor, "workflow", "update")
        workflow = await self.get_workflow(workflow_id)
        if name is not None:
            workflow.name = name.strip()
        if description is not None:
            workflow.description = description
        if is_active is not None:
            if not is_active and workflow.is_default:
                raise ValidationException(
                    "The default workflow cannot be deactivated", field="is_active"
                )
            workflow.is_active = is_active
        return await self._save(workflow)

    async def set_default(self, actor: UserEntity, workflow_id: str) -> WorkflowEntity:
        """Make this the only default workflow (atomic clear-then-set)."""
        self.authz.require_admin(actor, "workflow", "set_default")
        workflow = await self.get_workflow(workflow_id)
        if not workflow.is_active:
            raise ValidationException(
                "An inactive workflow cannot be the default", field="is_default"
            )
        updated = await self.workflow_repo.set_default(workflow_id)
        logger.info("Workflow %s is now the default", workflow_id)
        return updated

    async def add_step(
        self, actor: UserEntity, workflow_id: str, step: StepInput
    ) -> WorkflowEntity:
        self.authz.require_admin(actor, "workflow", "update")
        workflow = await self.get_workflow(workflow_id)
        workflow.add_step(
            generate_cuid(),
            step.name.strip(),
            description=step.description,
            color=step.color,
            icon=step.icon,
            settings=step.settings,
        )
        return await self._save(workflow)

    async def remove_step(
        self, actor: UserEntity, workflow_id: str, step_id: str
    ) -> WorkflowEntity:
        self.authz.require_admin(actor, "workflow", "update")
        workflow = await self.get_workflow(workflow_id)
        if workflow.step_count == 1:
            raise ValidationException(
                "A workflow needs at least one step", field="steps"
            )
        workflow.remove_step(step_id)
        return await self._save(workflow)

    async def reorder_steps(
        self, actor: UserEntity, workflow_id: str, step_ids: list[str]
    ) -> WorkflowEntity:
        self.authz.require_admin(actor, "workflow", "update")
        workflow = await self.get_workflow(workflow_id)
        workflow.reorder_steps(step_ids)
        return await self._save(workflow)

    async def _save(self, workflow: WorkflowEntity) -> WorkflowEntity:
        workflow.validate()
        workflow.updated_at = self._clock()
        return await self.workflow_repo.update(workflow)
