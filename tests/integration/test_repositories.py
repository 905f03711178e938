"""Document-store repositories over the in-memory client.

The same repository classes run against Firestore in production; these
tests cover the document mapping, the version-guarded task write and the
atomic default-workflow switch.
"""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from app.application.dtos.task import TaskFilter
from app.application.services.task_progression_engine import TaskProgressionEngine
from app.domain.entities.client import ClientEntity
from app.domain.entities.task import TaskEntity
from app.domain.entities.task_model import DefaultAssignee, SelectedStep, TaskModelEntity
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import StepSettings, WorkflowEntity, WorkflowStep
from app.domain.enums import DeliveryStatus, TaskPriority, TaskStatus, UserRole
from app.domain.exceptions import (
    DuplicateResourceException,
    ResourceNotFoundException,
    VersionConflictException,
)
from app.domain.value_objects.core import Attachment
from app.infrastructure.firebase.repositories import (
    FirestoreClientRepository,
    FirestoreTaskModelRepository,
    FirestoreTaskRepository,
    FirestoreUserRepository,
    FirestoreWorkflowRepository,
)
from app.infrastructure.memory.document_client import InMemoryDocumentClient

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryDocumentClient:
    return InMemoryDocumentClient()


def _workflow(workflow_id: str, is_default: bool = False) -> WorkflowEntity:
    return WorkflowEntity(
        id=workflow_id,
        name=f"Workflow {workflow_id}",
        steps=[
            WorkflowStep(id=f"{workflow_id}-s1", name="Brief", order=1),
            WorkflowStep(
                id=f"{workflow_id}-s2",
                name="Client approval",
                order=2,
                color="#10B981",
                settings=StepSettings(is_client_approval_step=True, allow_client_access=True),
            ),
            WorkflowStep(id=f"{workflow_id}-s3", name="Publish", order=3),
        ],
        created_by="admin",
        is_default=is_default,
        created_at=NOW,
    )


def _model() -> TaskModelEntity:
    return TaskModelEntity(
        id="model-1",
        name="Post",
        workflow_id="wf-1",
        selected_steps=[
            SelectedStep(step_id="wf-1-s1", step_order=1, step_name="Brief"),
            SelectedStep(step_id="wf-1-s3", step_order=3, step_name="Publish"),
        ],
        created_by="admin",
        default_assignees=[
            DefaultAssignee(step_id="wf-1-s1", step_order=1, step_name="Brief", user_id="u1"),
            DefaultAssignee(step_id="wf-1-s3", step_order=3, step_name="Publish", user_id="u2"),
        ],
    )


def _task(model: TaskModelEntity, title: str = "Spring launch post", **kwargs) -> TaskEntity:
    engine = TaskProgressionEngine(model, clock=lambda: NOW)
    task = engine.create_task(
        model=model,
        title=title,
        briefing="Square post for the spring launch.",
        client_id=kwargs.pop("client_id", "client-1"),
        due_date=kwargs.pop("due_date", NOW + timedelta(days=2)),
        created_by="admin",
        **kwargs,
    ).task
    return task


class TestTaskRepository:
    async def test_create_and_read_back_full_document(self, store) -> None:
        repo = FirestoreTaskRepository(store)
        model = _model()
        engine = TaskProgressionEngine(model, clock=lambda: NOW)
        task = _task(model)
        attachment = Attachment(
            id="a1",
            filename="post.png",
            original_name="Post.png",
            mimetype="image/png",
            size=1024,
            url="https://files.example.com/post.png",
            uploaded_by="u1",
            uploaded_at=NOW,
        )
        task = engine.add_delivery(task, "u1", [attachment], notes="v1").task
        task = engine.add_comment(task, "u1", "ready", mentions=["u2"]).task

        created = await repo.create(task)
        assert created.version == 1
        loaded = await repo.get_by_id(task.id)
        assert loaded == created
        assert loaded.deliveries[0].attachments[0] == attachment
        assert loaded.deliveries[0].status == DeliveryStatus.ACTIVE
        assert loaded.history[-1].metadata == {"comment_id": loaded.comments[0].id}

    async def test_create_duplicate_id_raises(self, store) -> None:
        repo = FirestoreTaskRepository(store)
        task = _task(_model())
        await repo.create(task)
        with pytest.raises(DuplicateResourceException):
            await repo.create(task)

    async def test_stale_version_conflicts(self, store) -> None:
        repo = FirestoreTaskRepository(store)
        model = _model()
        engine = TaskProgressionEngine(model, clock=lambda: NOW)
        created = await repo.create(_task(model))

        first = await repo.update(engine.advance(created, "u1").task)
        assert first.version == 2
        with pytest.raises(VersionConflictException):
            await repo.update(engine.add_comment(created, "u2", "late write").task)

        stored = await repo.get_by_id(created.id)
        assert stored.version == 2
        assert stored.current_step == 2
        assert stored.comments == []

    async def test_update_missing_task_raises(self, store) -> None:
        repo = FirestoreTaskRepository(store)
        with pytest.raises(ResourceNotFoundException):
            await repo.update(replace(_task(_model()), version=1))

    async def test_list_filters(self, store) -> None:
        repo = FirestoreTaskRepository(store, clock=lambda: NOW)
        model = _model()
        a = await repo.create(_task(model, title="Alpha post", priority=TaskPriority.HIGH))
        b = await repo.create(_task(model, title="Beta post", client_id="client-2"))
        late = await repo.create(
            _task(model, title="Gamma post", due_date=NOW - timedelta(days=1))
        )

        ids = lambda tasks: sorted(t.id for t in tasks)  # noqa: E731
        assert ids(await repo.list(TaskFilter(client_id="client-1"))) == sorted([a.id, late.id])
        assert ids(await repo.list(TaskFilter(priority=TaskPriority.HIGH))) == [a.id]
        assert ids(await repo.list(TaskFilter(overdue=True))) == [late.id]
        assert ids(await repo.list(TaskFilter(search="BETA"))) == [b.id]
        assert ids(await repo.list(TaskFilter(assigned_user_id="u2"))) == sorted(
            [a.id, b.id, late.id]
        )
        assert ids(await repo.list(TaskFilter(current_assignee_id="u2"))) == []
        assert ids(await repo.list(TaskFilter(status=TaskStatus.COMPLETED))) == []
        assert len(await repo.list(skip=1, limit=1)) == 1
        assert await repo.count_by_task_model("model-1") == 3


class TestWorkflowRepository:
    async def test_set_default_leaves_exactly_one(self, store) -> None:
        repo = FirestoreWorkflowRepository(store)
        await repo.create(_workflow("wf-1", is_default=True))
        await repo.create(_workflow("wf-2"))
        await repo.create(_workflow("wf-3"))

        updated = await repo.set_default("wf-2")
        assert updated.is_default
        defaults = [w.id for w in await repo.list() if w.is_default]
        assert defaults == ["wf-2"]
        assert (await repo.get_default()).id == "wf-2"

    async def test_set_default_unknown_raises(self, store) -> None:
        repo = FirestoreWorkflowRepository(store)
        with pytest.raises(ResourceNotFoundException):
            await repo.set_default("missing")

    async def test_update_never_touches_default_flag(self, store) -> None:
        repo = FirestoreWorkflowRepository(store)
        await repo.create(_workflow("wf-1", is_default=True))
        workflow = await repo.get_by_id("wf-1")
        workflow.is_default = False
        workflow.name = "Renamed"
        saved = await repo.update(workflow)
        assert saved.name == "Renamed"
        assert saved.is_default

    async def test_step_settings_round_trip(self, store) -> None:
        repo = FirestoreWorkflowRepository(store)
        await repo.create(_workflow("wf-1"))
        loaded = await repo.get_by_id("wf-1")
        step = loaded.get_step_by_order(2)
        assert step.settings.is_client_approval_step
        assert step.color == "#10B981"


class TestTaskModelRepository:
    async def test_list_by_workflow_and_stats(self, store) -> None:
        repo = FirestoreTaskModelRepository(store)
        await repo.create(_model())
        await repo.record_usage("model-1", created_at=NOW)
        loaded = await repo.get_by_id("model-1")
        assert loaded.stats.total_tasks == 1
        assert loaded.default_assignees[1].step_order == 3
        assert [m.id for m in await repo.list(workflow_id="wf-1")] == ["model-1"]
        assert await repo.list(workflow_id="wf-2") == []

    async def test_usage_counts_accumulate(self, store) -> None:
        repo = FirestoreTaskModelRepository(store)
        await repo.create(_model())
        await asyncio.gather(
            *(repo.record_usage("model-1", created_at=NOW) for _ in range(4))
        )
        model = await repo.record_usage("model-1", completed=True)
        assert (model.stats.total_tasks, model.stats.completed_tasks) == (4, 1)
        assert model.completion_rate == 25

    async def test_edit_keeps_stored_stats(self, store) -> None:
        repo = FirestoreTaskModelRepository(store)
        stale = await repo.create(_model())
        await repo.record_usage("model-1", created_at=NOW)
        stale.name = "Carousel post"
        await repo.update(stale)
        loaded = await repo.get_by_id("model-1")
        assert loaded.name == "Carousel post"
        assert loaded.stats.total_tasks == 1

    async def test_usage_write_retries_after_concurrent_bump(self, store, monkeypatch) -> None:
        repo = FirestoreTaskModelRepository(store)
        await repo.create(_model())
        check = store._check_update_time
        raced: list[str] = []

        def check_after_other_writer(collection, document_id, update_time):
            if not raced:
                raced.append(document_id)
                data = store._docs(collection)[document_id][0]
                stats = {**data["stats"], "total_tasks": data["stats"]["total_tasks"] + 1}
                store._write(collection, document_id, {**data, "stats": stats})
            check(collection, document_id, update_time)

        monkeypatch.setattr(store, "_check_update_time", check_after_other_writer)
        model = await repo.record_usage("model-1", created_at=NOW)
        assert raced == ["model-1"]
        assert model.stats.total_tasks == 2
        assert (await repo.get_by_id("model-1")).stats.total_tasks == 2

    async def test_usage_for_missing_model_raises(self, store) -> None:
        with pytest.raises(ResourceNotFoundException):
            await FirestoreTaskModelRepository(store).record_usage("ghost", completed=True)


class TestUserAndClientRepositories:
    async def test_user_lookup_by_email(self, store) -> None:
        repo = FirestoreUserRepository(store)
        user = UserEntity(
            id="u1",
            name="Ana",
            email="Ana@Example.com",
            hashed_password="hash",
            position="Designer",
            role=UserRole.ADMIN,
        )
        await repo.create(user)
        found = await repo.get_by_email("ana@example.com")
        assert found.id == "u1"
        assert found.role == UserRole.ADMIN
        assert await repo.get_by_email("other@example.com") is None

    async def test_client_lookup_by_access_id(self, store) -> None:
        repo = FirestoreClientRepository(store)
        await repo.create(
            ClientEntity(
                id="c1",
                company_name="Acme",
                responsible_name="Jo",
                responsible_email="jo@acme.example.com",
                phone="555",
                access_id="access-123",
                hashed_access_password="hash",
            )
        )
        found = await repo.get_by_access_id("access-123")
        assert found.id == "c1"
        assert await repo.get_by_access_id("nope") is None
