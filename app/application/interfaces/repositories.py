"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
Repositories return domain entities; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from app.application.dtos.task import TaskFilter
    from app.domain.entities.client import ClientEntity
    from app.domain.entities.task import TaskEntity
    from app.domain.entities.task_model import TaskModelEntity
    from app.domain.entities.user import UserEntity
    from app.domain.entities.workflow import WorkflowEntity


# Task repository interface
class ITaskRepository(Protocol):
    """Protocol for task repository (DIP). One document per task."""

    async def get_by_id(self, task_id: str) -> TaskEntity | None:
        """Return task by ID."""

    async def create(self, task: TaskEntity) -> TaskEntity:
        """Persist a new task; returned task has version 1."""

    async def update(self, task: TaskEntity) -> TaskEntity:
        """Write task if the stored version still equals task.version.

        Returns the task with version incremented. Raises
        VersionConflictException if another write happened in between.
        """

    async def list(
        self, filters: TaskFilter | None = None, skip: int = 0, limit: int = 100
    ) -> list[TaskEntity]:
        """Return tasks matching filters, newest first."""

    async def count_by_task_model(self, task_model_id: str) -> int:
        """Return number of tasks created from a task model."""


# Workflow repository interface
class IWorkflowRepository(Protocol):
    """Protocol for workflow repository (DIP)."""

    async def get_by_id(self, workflow_id: str) -> WorkflowEntity | None:
        """Return workflow by ID."""

    async def get_default(self) -> WorkflowEntity | None:
        """Return the default workflow, if any."""

    async def list(self, active_only: bool = False) -> list[WorkflowEntity]:
        """Return workflows ordered by name."""

    async def create(self, workflow: WorkflowEntity) -> WorkflowEntity:
        """Persist a new workflow."""

    async def update(self, workflow: WorkflowEntity) -> WorkflowEntity:
        """Overwrite an existing workflow."""

    async def set_default(self, workflow_id: str) -> WorkflowEntity:
        """Clear is_default on every other workflow and set it on this one (one atomic batch)."""


# Task model repository interface
class ITaskModelRepository(Protocol):
    """Protocol for task model repository (DIP)."""

    async def get_by_id(self, task_model_id: str) -> TaskModelEntity | None:
        """Return task model by ID."""

    async def list(
        self, workflow_id: str | None = None, active_only: bool = False
    ) -> list[TaskModelEntity]:
        """Return task models, optionally for one workflow."""

    async def create(self, task_model: TaskModelEntity) -> TaskModelEntity:
        """Persist a new task model."""

    async def update(self, task_model: TaskModelEntity) -> TaskModelEntity:
        """Write an edited task model; stored usage stats are kept."""

    async def record_usage(
        self,
        task_model_id: str,
        *,
        created_at: datetime | None = None,
        completed: bool = False,
    ) -> TaskModelEntity:
        """Atomically count a created task and/or a first completion."""


# Client repository interface
class IClientRepository(Protocol):
    """Protocol for client repository (DIP)."""

    async def get_by_id(self, client_id: str) -> ClientEntity | None:
        """Return client by ID."""

    async def get_by_access_id(self, access_id: str) -> ClientEntity | None:
        """Return client by portal access id."""

    async def get_by_email(self, email: str) -> ClientEntity | None:
        """Return client by responsible email."""

    async def list(self, skip: int = 0, limit: int = 100) -> list[ClientEntity]:
        """Return clients ordered by company name."""

    async def create(self, client: ClientEntity) -> ClientEntity:
        """Persist a new client."""

    async def update(self, client: ClientEntity) -> ClientEntity:
        """Overwrite an existing client."""


# User repository interface
class IUserRepository(Protocol):
    """Protocol for user repository (DIP)."""

    async def get_by_id(self, user_id: str) -> UserEntity | None:
        """Return user by ID."""

    async def get_by_email(self, email: str) -> UserEntity | None:
        """Return user by email (emails are unique)."""

    async def list(self, skip: int = 0, limit: int = 100) -> list[UserEntity]:
        """Return users ordered by name."""

    async def create(self, user: UserEntity) -> UserEntity:
        """Persist a new user."""

    async def update(self, user: UserEntity) -> UserEntity:
        """Overwrite an existing user."""
