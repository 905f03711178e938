"""Task operations: load, authorize, run the progression engine, persist, notify.

Each write is one repository update guarded by the task's version; a lost
race surfaces as VersionConflictException and nothing is retried here.
Notifications go out only after the write has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

from app.application.dtos.task import KanbanColumn, TaskCreate, TaskFilter, TaskStats
from app.application.interfaces.repositories import (
    IClientRepository,
    ITaskModelRepository,
    ITaskRepository,
    IUserRepository,
    IWorkflowRepository,
)
from app.application.interfaces.services import ITaskNotifier
from app.application.services.authorization_service import TaskAuthorizationService
from app.application.services.task_progression_engine import (
    TaskProgressionEngine,
    TransitionResult,
)
from app.domain.entities.client import ClientEntity
from app.domain.entities.task import TaskEntity
from app.domain.entities.task_model import TaskModelEntity
from app.domain.entities.user import UserEntity
from app.domain.enums import ApprovalDecision, HistoryAction, TaskPriority, TaskStatus
from app.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
    VersionConflictException,
)
from app.domain.value_objects.core import Attachment
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class TaskService:
    """Task use cases for staff users and the client portal."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        task_model_repo: ITaskModelRepository,
        workflow_repo: IWorkflowRepository,
        client_repo: IClientRepository,
        user_repo: IUserRepository,
        authz: TaskAuthorizationService | None = None,
        notifier: ITaskNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.task_repo = task_repo
        self.task_model_repo = task_model_repo
        self.workflow_repo = workflow_repo
        self.client_repo = client_repo
        self.user_repo = user_repo
        self.authz = authz or TaskAuthorizationService()
        self.notifier = notifier
        self._clock = clock

    # ---- Queries ----

    async def get_task(self, actor: UserEntity, task_id: str) -> TaskEntity:
        """Return task if actor may view it; else raise."""
        task = await self._load(task_id)
        self.authz.require_view(actor, task)
        return task

    async def list_tasks(
        self,
        actor: UserEntity,
        filters: TaskFilter | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[TaskEntity]:
        """Return tasks matching filters; operational users see only tasks they are assigned to."""
        filters = filters or TaskFilter()
        if not actor.is_admin:
            if filters.assigned_user_id and filters.assigned_user_id != actor.id:
                raise AuthorizationException(resource="task", action="list")
            filters = replace(filters, assigned_user_id=actor.id)
        return await self.task_repo.list(filters, skip=skip, limit=limit)

    async def my_tasks(self, actor: UserEntity) -> list[TaskEntity]:
        """Active tasks whose current step is assigned to actor."""
        filters = TaskFilter(status=TaskStatus.ACTIVE, current_assignee_id=actor.id)
        return await self.task_repo.list(filters, limit=1000)

    async def kanban(
        self,
        actor: UserEntity,
        client_id: str | None = None,
        assigned_to: str | None = None,
    ) -> list[KanbanColumn]:
        """Active tasks grouped by current step ordinal, high priority and earliest due first."""
        if not actor.is_admin:
            assigned_to = actor.id
        filters = TaskFilter(
            status=TaskStatus.ACTIVE, client_id=client_id, assigned_user_id=assigned_to
        )
        tasks = await self.task_repo.list(filters, limit=1000)
        tasks.sort(key=lambda t: (-t.priority.rank, t.due_date))
        columns: dict[int, list[TaskEntity]] = {}
        for task in tasks:
            columns.setdefault(task.current_step, []).append(task)
        return [
            KanbanColumn(step_order=step, step_name=_step_label(items[0]), tasks=items)
            for step, items in sorted(columns.items())
        ]

    async def stats(self, actor: UserEntity) -> TaskStats:
        """Overview counters (admin)."""
        self.authz.require_admin(actor, "task", "stats")
        now = self._clock()
        tasks = await self.task_repo.list(TaskFilter(), limit=10000)
        active = [t for t in tasks if t.status == TaskStatus.ACTIVE]
        completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
        durations = [
            (t.completed_at - t.created_at).total_seconds() / SECONDS_PER_DAY
            for t in completed
            if t.completed_at and t.created_at
        ]
        average = round(sum(durations) / len(durations)) if durations else 0
        return TaskStats(
            total_active=len(active),
            total_completed=len(completed),
            total_overdue=sum(1 for t in active if t.is_overdue(now)),
            total_high_priority=sum(1 for t in active if t.priority == TaskPriority.HIGH),
            average_completion_days=average,
        )

    # ---- Creation ----

    async def create_task(self, actor: UserEntity, data: TaskCreate) -> TaskEntity:
        """Instantiate a task from a task model (admin).

        Raises:
            ResourceNotFoundException: If client, task model or workflow is missing.
            ValidationException: If client or model is inactive, or the model no
                longer matches its workflow.
        """
        self.authz.require_admin(actor, "task", "create")
        client = await self.client_repo.get_by_id(data.client_id)
        if client is None:
            raise ResourceNotFoundException("client", data.client_id)
        if not client.is_active:
            raise ValidationException("Client is inactive", field="client_id")
        model = await self.task_model_repo.get_by_id(data.task_model_id)
        if model is None:
            raise ResourceNotFoundException("task_model", data.task_model_id)
        if not model.is_active:
            raise ValidationException("Task model is inactive", field="task_model_id")
        workflow = await self.workflow_repo.get_by_id(model.workflow_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", model.workflow_id)
        model.validate_against(workflow)

        engine = self._engine(model)
        result = engine.create_task(
            model=model,
            title=data.title,
            briefing=data.briefing,
            client_id=client.id,
            due_date=data.due_date,
            created_by=actor.id,
            priority=data.priority,
            tags=data.tags,
            initial_attachments=data.initial_attachments,
            settings=data.settings,
        )
        task = await self.task_repo.create(result.task)
        await self._record_model_usage(task, created_at=task.created_at or self._clock())
        logger.info(
            "Task %s created from model %s by %s (%d steps)",
            task.id,
            model.id,
            actor.id,
            task.total_steps,
        )
        if task.current_assignee:
            await self._notify_assigned(task, task.current_assignee)
        return task

    # ---- Transitions (staff) ----

    async def advance(
        self, actor: UserEntity, task_id: str, notes: str | None = None
    ) -> TaskEntity:
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_progress(actor, task, "advance")
        return await self._commit(engine.advance(task, actor.id, notes))

    async def revert(
        self, actor: UserEntity, task_id: str, reason: str | None = None
    ) -> TaskEntity:
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_progress(actor, task, "revert")
        return await self._commit(engine.revert(task, actor.id, reason))

    async def add_comment(
        self,
        actor: UserEntity,
        task_id: str,
        content: str,
        mentions: Sequence[str] = (),
        attachments: Sequence[Attachment] = (),
        is_internal: bool = True,
    ) -> TaskEntity:
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_comment(actor, task)
        result = engine.add_comment(
            task, actor.id, content, mentions, attachments, is_internal
        )
        return await self._commit(result, actor_id=actor.id)

    async def add_delivery(
        self,
        actor: UserEntity,
        task_id: str,
        attachments: Sequence[Attachment],
        notes: str | None = None,
    ) -> TaskEntity:
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_progress(actor, task, "deliver")
        return await self._commit(engine.add_delivery(task, actor.id, attachments, notes))

    async def update_details(
        self, actor: UserEntity, task_id: str, changes: dict[str, Any]
    ) -> TaskEntity:
        """Edit descriptive fields (admin or the current step's assignee)."""
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_progress(actor, task, "update")
        result = engine.update_details(task, actor.id, changes)
        if not result.entries:
            return task
        return await self._commit(result)

    async def reassign_step(
        self, actor: UserEntity, task_id: str, step_order: int, user_id: str
    ) -> TaskEntity:
        self.authz.require_admin(actor, "task", "assign")
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundException("user", user_id)
        if not user.is_active:
            raise ValidationException("User is inactive", field="user_id")
        task, engine = await self._load_with_engine(task_id)
        result = engine.reassign_step(task, actor.id, step_order, user_id)
        updated = await self._commit(result)
        if step_order == updated.current_step and user_id != actor.id:
            await self._notify_assigned(updated, user_id)
        return updated

    async def change_status(
        self, actor: UserEntity, task_id: str, status: TaskStatus | str
    ) -> TaskEntity:
        self.authz.require_admin(actor, "task", "change_status")
        task, engine = await self._load_with_engine(task_id)
        return await self._commit(engine.change_status(task, actor.id, status))

    async def reopen(
        self, actor: UserEntity, task_id: str, reason: str | None = None
    ) -> TaskEntity:
        self.authz.require_admin(actor, "task", "reopen")
        task, engine = await self._load_with_engine(task_id)
        return await self._commit(engine.reopen(task, actor.id, reason))

    # ---- Client portal ----

    async def list_client_tasks(self, client: ClientEntity) -> list[TaskEntity]:
        return await self.task_repo.list(TaskFilter(client_id=client.id), limit=1000)

    async def get_client_task(self, client: ClientEntity, task_id: str) -> TaskEntity:
        task = await self._load(task_id)
        self.authz.require_client_owner(client, task)
        return task

    async def record_client_approval(
        self,
        client: ClientEntity,
        task_id: str,
        decision: ApprovalDecision | str,
        comments: str | None = None,
        annotated_image: str | None = None,
    ) -> TaskEntity:
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_client_owner(client, task)
        result = engine.record_client_approval(task, decision, comments, annotated_image)
        logger.info(
            "Client %s recorded %s on task %s",
            client.id,
            result.entries[0].action.value,
            task.id,
        )
        return await self._commit(result)

    async def add_client_comment(
        self,
        client: ClientEntity,
        task_id: str,
        content: str,
        attachments: Sequence[Attachment] = (),
    ) -> TaskEntity:
        """Client-visible comment with no author id (clients are not system users)."""
        task, engine = await self._load_with_engine(task_id)
        self.authz.require_client_owner(client, task)
        if not task.settings.allow_client_comments:
            raise AuthorizationException(
                resource="task",
                action="comment",
                message="Comments from the client are disabled for this task",
            )
        result = engine.add_comment(
            task, None, content, attachments=attachments, is_internal=False
        )
        return await self._commit(result)

    # ---- Internals ----

    async def _load(self, task_id: str) -> TaskEntity:
        task = await self.task_repo.get_by_id(task_id)
        if task is None:
            raise ResourceNotFoundException("task", task_id)
        return task

    async def _load_model(self, task: TaskEntity) -> TaskModelEntity:
        model = await self.task_model_repo.get_by_id(task.task_model_id)
        if model is None:
            raise ResourceNotFoundException("task_model", task.task_model_id)
        return model

    async def _load_with_engine(
        self, task_id: str
    ) -> tuple[TaskEntity, TaskProgressionEngine]:
        task = await self._load(task_id)
        model = await self._load_model(task)
        return task, self._engine(model)

    def _engine(self, model: TaskModelEntity) -> TaskProgressionEngine:
        return TaskProgressionEngine(model, clock=self._clock)

    async def _commit(
        self, result: TransitionResult, actor_id: str | None = None
    ) -> TaskEntity:
        """Persist the transition, then update model stats and notify.

        Once the task write succeeds the transition stands: failures in the
        stats bump or in notifications are logged, never raised.
        """
        task = await self.task_repo.update(result.task)
        if result.step_changed:
            logger.info(
                "Task %s moved from step %d to %d (%s)",
                task.id,
                result.previous_step,
                task.current_step,
                ", ".join(a.value for a in result.actions),
            )
        else:
            logger.debug(
                "Task %s: %s", task.id, ", ".join(a.value for a in result.actions)
            )
        if result.completed and _first_completion(task, result):
            await self._record_model_usage(task, completed=True)

        if self.notifier is None or not task.settings.notify_on_update:
            return task
        try:
            await self._notify_transition(task, result, actor_id)
        except Exception:
            logger.exception("Notifications for task %s failed after commit", task.id)
        return task

    async def _notify_transition(
        self, task: TaskEntity, result: TransitionResult, actor_id: str | None
    ) -> None:
        if result.completed:
            await self.notifier.task_completed(result.notify_user_ids, task.id, task.title)
        else:
            for user_id in result.notify_user_ids:
                await self.notifier.task_assigned(
                    user_id, task.id, task.title, task.current_step
                )
        if result.mentions:
            comment_id = task.comments[-1].id
            for user_id in result.mentions:
                if user_id != actor_id:
                    await self.notifier.user_mentioned(
                        user_id, task.id, task.title, comment_id
                    )

    async def _notify_assigned(self, task: TaskEntity, user_id: str) -> None:
        if self.notifier is None or not task.settings.notify_on_update:
            return
        try:
            await self.notifier.task_assigned(
                user_id, task.id, task.title, task.current_step
            )
        except Exception:
            logger.exception("Assignment notification for task %s failed", task.id)

    async def _record_model_usage(
        self,
        task: TaskEntity,
        *,
        created_at: datetime | None = None,
        completed: bool = False,
    ) -> None:
        try:
            await self.task_model_repo.record_usage(
                task.task_model_id, created_at=created_at, completed=completed
            )
        except (ResourceNotFoundException, VersionConflictException):
            logger.warning(
                "Usage stats for task model %s not updated (task %s)",
                task.task_model_id,
                task.id,
            )


def _first_completion(task: TaskEntity, result: TransitionResult) -> bool:
    """True unless the task had already completed before this transition."""
    earlier = task.history[: len(task.history) - len(result.entries)]
    return not any(e.action == HistoryAction.COMPLETED for e in earlier)


def _step_label(task: TaskEntity) -> str:
    assignment = task.assignment_for(task.current_step)
    return assignment.step_name if assignment else f"Step {task.current_step}"
