"""TaskService over the in-memory document store with the WebSocket notifier."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocketDisconnect

from app.api.websocket.manager import ConnectionManager
from app.application.dtos.task import TaskCreate
from app.application.use_cases.tasks import TaskService
from app.domain.entities.client import ClientEntity
from app.domain.entities.task_model import DefaultAssignee, SelectedStep, TaskModelEntity
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import WorkflowEntity, WorkflowStep
from app.domain.enums import TaskStatus, UserRole
from app.infrastructure.firebase.repositories import (
    FirestoreClientRepository,
    FirestoreTaskModelRepository,
    FirestoreTaskRepository,
    FirestoreUserRepository,
    FirestoreWorkflowRepository,
)
from app.infrastructure.memory.document_client import InMemoryDocumentClient
from app.infrastructure.services.task_notifier import WebSocketTaskNotifier

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

ADMIN = UserEntity(
    id="admin",
    name="Admin",
    email="admin@example.com",
    hashed_password="x",
    position="Manager",
    role=UserRole.ADMIN,
)


@pytest.fixture
def store() -> InMemoryDocumentClient:
    return InMemoryDocumentClient()


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
async def service(store, manager) -> TaskService:
    await FirestoreWorkflowRepository(store).create(
        WorkflowEntity(
            id="wf-1",
            name="Two stage",
            steps=[
                WorkflowStep(id="s1", name="Draft", order=1),
                WorkflowStep(id="s2", name="Publish", order=2),
            ],
            created_by="admin",
            is_default=True,
            created_at=NOW,
        )
    )
    await FirestoreTaskModelRepository(store).create(
        TaskModelEntity(
            id="model-1",
            name="Story",
            workflow_id="wf-1",
            selected_steps=[
                SelectedStep(step_id="s1", step_order=1, step_name="Draft"),
                SelectedStep(step_id="s2", step_order=2, step_name="Publish"),
            ],
            created_by="admin",
            default_assignees=[
                DefaultAssignee(step_id="s1", step_order=1, step_name="Draft", user_id="writer"),
                DefaultAssignee(step_id="s2", step_order=2, step_name="Publish", user_id="editor"),
            ],
        )
    )
    await FirestoreClientRepository(store).create(
        ClientEntity(
            id="client-1",
            company_name="Acme",
            responsible_name="Jo",
            responsible_email="jo@acme.example.com",
            phone="555",
            access_id="access-1",
            hashed_access_password="x",
        )
    )
    return TaskService(
        task_repo=FirestoreTaskRepository(store),
        task_model_repo=FirestoreTaskModelRepository(store),
        workflow_repo=FirestoreWorkflowRepository(store),
        client_repo=FirestoreClientRepository(store),
        user_repo=FirestoreUserRepository(store),
        notifier=WebSocketTaskNotifier(manager),
        clock=lambda: NOW,
    )


async def _create(service: TaskService) -> str:
    task = await service.create_task(
        ADMIN,
        TaskCreate(
            title="Spring story",
            briefing="Three frames for the spring launch.",
            client_id="client-1",
            task_model_id="model-1",
            due_date=NOW + timedelta(days=3),
        ),
    )
    return task.id


async def test_gone_socket_does_not_fail_committed_advance(service, manager, store) -> None:
    task_id = await _create(service)
    socket = AsyncMock()
    socket.send_json.side_effect = WebSocketDisconnect(1006)
    await manager.connect(socket, "editor")

    advanced = await service.advance(ADMIN, task_id)

    assert advanced.status == TaskStatus.COMPLETED
    stored = await FirestoreTaskRepository(store).get_by_id(task_id)
    assert stored.current_step == 2
    assert stored.version == advanced.version
    assert await manager.get_connection_count() == 0


async def test_failing_notifier_does_not_fail_committed_transition(service, store) -> None:
    task_id = await _create(service)
    service.notifier = AsyncMock()
    service.notifier.task_completed.side_effect = RuntimeError("push service down")

    done = await service.advance(ADMIN, task_id)

    assert done.status == TaskStatus.COMPLETED
    assert (await FirestoreTaskRepository(store).get_by_id(task_id)).version == done.version


async def test_completion_counted_once_per_task(service, store) -> None:
    task_id = await _create(service)
    await service.advance(ADMIN, task_id)
    await service.revert(ADMIN, task_id, reason="typo in the caption")
    again = await service.advance(ADMIN, task_id)
    assert again.status == TaskStatus.COMPLETED

    model = await FirestoreTaskModelRepository(store).get_by_id("model-1")
    assert (model.stats.total_tasks, model.stats.completed_tasks) == (1, 1)
    assert model.completion_rate == 100


async def test_reopen_and_complete_again_not_recounted(service, store) -> None:
    task_id = await _create(service)
    await service.advance(ADMIN, task_id)
    await service.reopen(ADMIN, task_id)
    await service.revert(ADMIN, task_id)
    await service.advance(ADMIN, task_id)
    second_id = await _create(service)
    await service.advance(ADMIN, second_id)

    model = await FirestoreTaskModelRepository(store).get_by_id("model-1")
    assert (model.stats.total_tasks, model.stats.completed_tasks) == (2, 2)
