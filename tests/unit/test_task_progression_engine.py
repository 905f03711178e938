"""TaskProgressionEngine: step progression, approvals, deliveries and history."""

import itertools
import random
from datetime import UTC, datetime, timedelta

import pytest

from app.application.services.task_progression_engine import (
    COMMENT_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    TaskProgressionEngine,
)
from app.domain.entities.task import TaskEntity, TaskSettings
from app.domain.entities.task_model import (
    DefaultAssignee,
    SelectedStep,
    TaskModelEntity,
    TaskModelSettings,
)
from app.domain.entities.workflow import StepSettings
from app.domain.enums import (
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
)
from app.domain.exceptions import InvalidTransitionException, ValidationException
from app.domain.value_objects.core import Attachment

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
DESIGNER = "user-designer"
REVIEWER = "user-reviewer"
ADMIN = "user-admin"


def _model(
    steps: int = 5,
    assignees: dict[int, str] | None = None,
    single_file: tuple[int, ...] = (),
    orders: list[int] | None = None,
) -> TaskModelEntity:
    orders = orders or list(range(1, steps + 1))
    selected = [
        SelectedStep(
            step_id=f"step-{order}",
            step_order=order,
            step_name=f"Stage {order}",
            step_settings=StepSettings(allow_multiple_files=i not in single_file),
        )
        for i, order in enumerate(orders, start=1)
    ]
    if assignees is None:
        assignees = {1: DESIGNER, 2: DESIGNER, 3: REVIEWER, 5: DESIGNER}
    defaults = [
        DefaultAssignee(
            step_id=selected[ordinal - 1].step_id,
            step_order=selected[ordinal - 1].step_order,
            step_name=selected[ordinal - 1].step_name,
            user_id=user_id,
        )
        for ordinal, user_id in assignees.items()
        if ordinal <= len(selected)
    ]
    return TaskModelEntity(
        id="model-1",
        name="Social media post",
        workflow_id="wf-1",
        selected_steps=selected,
        created_by=ADMIN,
        default_assignees=defaults,
        settings=TaskModelSettings(
            default_priority=TaskPriority.HIGH, estimated_hours=4.0, tags=["social"]
        ),
    )


def _engine(model: TaskModelEntity) -> TaskProgressionEngine:
    ids = itertools.count(1)
    return TaskProgressionEngine(model, clock=lambda: NOW, id_factory=lambda: f"id-{next(ids)}")


def _attachment(name: str = "post.png") -> Attachment:
    return Attachment(
        id=f"att-{name}",
        filename=name,
        original_name=name,
        mimetype="image/png",
        size=2048,
        url=f"https://files.example.com/{name}",
        uploaded_by=DESIGNER,
        uploaded_at=NOW,
    )


def _new_task(engine: TaskProgressionEngine, model: TaskModelEntity, **kwargs) -> TaskEntity:
    result = engine.create_task(
        model=model,
        title="Launch campaign post",
        briefing="Square post announcing the spring launch.",
        client_id="client-1",
        due_date=NOW + timedelta(days=3),
        created_by=ADMIN,
        **kwargs,
    )
    return result.task


def _at_step(engine: TaskProgressionEngine, task: TaskEntity, step: int) -> TaskEntity:
    while task.current_step < step:
        task = engine.advance(task, ADMIN).task
    return task


@pytest.fixture
def model() -> TaskModelEntity:
    return _model()


@pytest.fixture
def engine(model: TaskModelEntity) -> TaskProgressionEngine:
    return _engine(model)


@pytest.fixture
def task(engine: TaskProgressionEngine, model: TaskModelEntity) -> TaskEntity:
    return _new_task(engine, model)


class TestCreateTask:
    def test_starts_at_first_step_with_model_defaults(self, task: TaskEntity) -> None:
        assert task.current_step == 1
        assert task.current_step_id == "step-1"
        assert task.total_steps == 5
        assert task.status == TaskStatus.ACTIVE
        assert task.priority == TaskPriority.HIGH
        assert task.estimated_hours == 4.0
        assert task.tags == ["social"]
        assert task.started_at == NOW

    def test_assignments_copied_from_default_assignees(self, task: TaskEntity) -> None:
        assert [(a.step_order, a.user_id) for a in task.assigned_users] == [
            (1, DESIGNER),
            (2, DESIGNER),
            (3, REVIEWER),
            (5, DESIGNER),
        ]
        assert all(a.assigned_by == ADMIN for a in task.assigned_users)
        assert task.current_assignee == DESIGNER

    def test_single_created_history_entry(self, task: TaskEntity) -> None:
        assert [h.action for h in task.history] == [HistoryAction.CREATED]
        assert task.history[0].changed_by == ADMIN

    def test_explicit_priority_and_tags_win(self, engine, model) -> None:
        task = _new_task(engine, model, priority=TaskPriority.LOW, tags=["urgent"])
        assert task.priority == TaskPriority.LOW
        assert task.tags == ["urgent"]

    def test_step_ordinals_ignore_gaps_in_workflow_order(self) -> None:
        model = _model(orders=[1, 3, 4], assignees={2: REVIEWER})
        task = _new_task(_engine(model), model)
        assert task.total_steps == 3
        assert task.current_step_id == "step-1"
        assert task.assigned_users[0].step_order == 2
        assert task.assigned_users[0].step_id == "step-3"

    def test_unassigned_first_step_has_no_current_assignee(self) -> None:
        model = _model(assignees={2: DESIGNER})
        task = _new_task(_engine(model), model)
        assert task.current_assignee is None


class TestAdvance:
    def test_moves_one_step_and_records_history(self, engine, task) -> None:
        result = engine.advance(task, DESIGNER, notes="first draft ready")
        new = result.task
        assert new.current_step == 2
        assert new.current_step_id == "step-2"
        assert result.actions == [HistoryAction.STEP_ADVANCED]
        entry = result.entries[0]
        assert entry.changed_by == DESIGNER
        assert entry.metadata == {"step_from": 1, "step_to": 2}
        assert "first draft ready" in entry.description

    def test_does_not_touch_input_task(self, engine, task) -> None:
        history = list(task.history)
        engine.advance(task, DESIGNER)
        assert task.current_step == 1
        assert task.history == history

    def test_reaching_final_step_completes(self, engine, task) -> None:
        task = _at_step(engine, task, 4)
        result = engine.advance(task, DESIGNER)
        assert result.task.current_step == 5
        assert result.task.status == TaskStatus.COMPLETED
        assert result.task.completed_at == NOW
        assert result.task.progress_percentage == 100
        assert result.actions == [HistoryAction.STEP_ADVANCED, HistoryAction.COMPLETED]
        assert result.completed

    def test_at_final_step_raises(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        with pytest.raises(InvalidTransitionException, match="final step"):
            engine.advance(task, ADMIN)

    def test_single_step_task_never_advances(self) -> None:
        model = _model(steps=1, assignees={})
        engine = _engine(model)
        task = _new_task(engine, model)
        assert task.status == TaskStatus.ACTIVE
        with pytest.raises(InvalidTransitionException):
            engine.advance(task, ADMIN)

    @pytest.mark.parametrize("status", [TaskStatus.ON_HOLD, TaskStatus.CANCELLED])
    def test_blocked_when_not_active(self, engine, task, status) -> None:
        task = engine.change_status(task, ADMIN, status).task
        with pytest.raises(InvalidTransitionException):
            engine.advance(task, ADMIN)

    def test_notes_too_long_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException) as exc_info:
            engine.advance(task, DESIGNER, notes="x" * (NOTES_MAX_LENGTH + 1))
        assert exc_info.value.details == {"field": "notes"}

    def test_notifies_next_assignee(self, engine, task) -> None:
        task = engine.advance(task, DESIGNER).task
        result = engine.advance(task, DESIGNER)
        assert result.notify_user_ids == [REVIEWER]

    def test_completion_notifies_every_assigned_user_once(self, engine, task) -> None:
        task = _at_step(engine, task, 4)
        result = engine.advance(task, ADMIN)
        assert result.notify_user_ids == [DESIGNER, REVIEWER]


class TestRevert:
    def test_moves_back_one_step(self, engine, task) -> None:
        task = _at_step(engine, task, 3)
        result = engine.revert(task, REVIEWER, reason="wrong colours")
        assert result.task.current_step == 2
        assert result.actions == [HistoryAction.STEP_REVERTED]
        assert result.entries[0].previous_value == 3
        assert result.entries[0].new_value == 2
        assert "wrong colours" in result.entries[0].description

    def test_at_first_step_raises(self, engine, task) -> None:
        with pytest.raises(InvalidTransitionException, match="first step"):
            engine.revert(task, ADMIN)

    def test_reopens_completed_task(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        assert task.status == TaskStatus.COMPLETED
        result = engine.revert(task, ADMIN)
        assert result.task.current_step == 4
        assert result.task.status == TaskStatus.ACTIVE
        assert result.task.completed_at is None

    def test_blocked_on_hold(self, engine, task) -> None:
        task = _at_step(engine, task, 2)
        task = engine.change_status(task, ADMIN, TaskStatus.ON_HOLD).task
        with pytest.raises(InvalidTransitionException):
            engine.revert(task, ADMIN)


class TestComments:
    def test_appends_comment_and_history(self, engine, task) -> None:
        result = engine.add_comment(task, DESIGNER, "  Draft uploaded  ", mentions=[REVIEWER])
        comment = result.task.comments[-1]
        assert comment.content == "Draft uploaded"
        assert comment.author_id == DESIGNER
        assert comment.is_internal is True
        assert result.mentions == (REVIEWER,)
        assert result.entries[0].metadata == {"comment_id": comment.id}
        assert result.task.current_step == task.current_step

    def test_mentions_deduplicated(self, engine, task) -> None:
        result = engine.add_comment(task, ADMIN, "ping", mentions=[REVIEWER, REVIEWER, "", DESIGNER])
        assert result.mentions == (REVIEWER, DESIGNER)

    def test_attachment_only_comment_allowed(self, engine, task) -> None:
        result = engine.add_comment(task, DESIGNER, "", attachments=[_attachment()])
        assert result.task.comments[-1].attachments[0].filename == "post.png"

    def test_empty_comment_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException):
            engine.add_comment(task, DESIGNER, "   ")

    def test_too_long_comment_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException):
            engine.add_comment(task, DESIGNER, "x" * (COMMENT_MAX_LENGTH + 1))

    def test_client_comment_has_no_author(self, engine, task) -> None:
        result = engine.add_comment(task, None, "Looks good", is_internal=False)
        assert result.task.comments[-1].author_id is None
        assert result.entries[0].changed_by is None
        assert "visible to client" in result.entries[0].description


class TestDeliveries:
    def test_records_delivery_for_current_step(self, engine, task) -> None:
        result = engine.add_delivery(task, DESIGNER, [_attachment()], notes="v1")
        delivery = result.task.deliveries[-1]
        assert delivery.step_order == 1
        assert delivery.step_name == "Stage 1"
        assert delivery.status == DeliveryStatus.ACTIVE
        assert result.task.current_delivery == delivery
        assert result.entries[0].metadata["attachment_ids"] == ["att-post.png"]
        assert result.task.current_step == 1

    def test_new_delivery_supersedes_previous(self, engine, task) -> None:
        task = engine.add_delivery(task, DESIGNER, [_attachment("v1.png")]).task
        task = engine.add_delivery(task, DESIGNER, [_attachment("v2.png")]).task
        assert [d.status for d in task.deliveries] == [
            DeliveryStatus.SUPERSEDED,
            DeliveryStatus.ACTIVE,
        ]
        assert task.current_delivery.attachments[0].filename == "v2.png"

    def test_deliveries_of_other_steps_untouched(self, engine, task) -> None:
        task = engine.add_delivery(task, DESIGNER, [_attachment("brief.pdf")]).task
        task = engine.advance(task, DESIGNER).task
        task = engine.add_delivery(task, DESIGNER, [_attachment("draft.png")]).task
        assert [d.status for d in task.deliveries] == [DeliveryStatus.ACTIVE] * 2
        assert task.current_delivery.step_order == 2

    def test_requires_attachment(self, engine, task) -> None:
        task = engine.add_delivery(task, DESIGNER, [_attachment("v1.png")]).task
        history, deliveries = list(task.history), list(task.deliveries)
        with pytest.raises(ValidationException):
            engine.add_delivery(task, DESIGNER, [])
        assert task.history == history
        assert task.deliveries == deliveries
        assert task.current_delivery.attachments[0].filename == "v1.png"

    def test_single_file_step_rejects_several_files(self) -> None:
        model = _model(single_file=(1,))
        engine = _engine(model)
        task = _new_task(engine, model)
        with pytest.raises(ValidationException, match="single file"):
            engine.add_delivery(task, DESIGNER, [_attachment("a.png"), _attachment("b.png")])

    def test_blocked_on_cancelled_task(self, engine, task) -> None:
        task = engine.change_status(task, ADMIN, TaskStatus.CANCELLED).task
        with pytest.raises(InvalidTransitionException):
            engine.add_delivery(task, DESIGNER, [_attachment()])


class TestClientApproval:
    def test_approval_auto_advances(self, engine, task) -> None:
        task = _at_step(engine, task, 3)
        result = engine.record_client_approval(task, "approved", comments="Great")
        assert result.task.client_approval.status == ClientApprovalStatus.APPROVED
        assert result.task.client_approval.approved_at == NOW
        assert result.task.current_step == 4
        assert result.actions == [HistoryAction.APPROVED, HistoryAction.STEP_ADVANCED]
        assert all(e.changed_by is None for e in result.entries)

    def test_approval_without_auto_advance_stays(self, engine, model) -> None:
        task = _new_task(engine, model, settings=TaskSettings(auto_advance_on_approval=False))
        task = _at_step(engine, task, 3)
        result = engine.record_client_approval(task, "approved")
        assert result.task.current_step == 3
        assert result.actions == [HistoryAction.APPROVED]

    def test_approval_on_penultimate_step_completes(self, engine, task) -> None:
        task = _at_step(engine, task, 4)
        result = engine.record_client_approval(task, "approved")
        assert result.task.status == TaskStatus.COMPLETED
        assert result.actions == [
            HistoryAction.APPROVED,
            HistoryAction.STEP_ADVANCED,
            HistoryAction.COMPLETED,
        ]

    def test_approval_on_completed_task_does_not_advance(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        result = engine.record_client_approval(task, "approved")
        assert result.task.current_step == 5
        assert result.actions == [HistoryAction.APPROVED]

    @pytest.mark.parametrize(("step_from", "step_to"), [(4, 2), (3, 1), (2, 1), (1, 1)])
    def test_rejection_moves_back_two_steps(self, engine, task, step_from, step_to) -> None:
        task = _at_step(engine, task, step_from)
        result = engine.record_client_approval(task, "rejected", comments="Too dark")
        assert result.task.current_step == step_to
        assert result.task.client_approval.status == ClientApprovalStatus.REJECTED
        assert result.task.client_approval.rejected_at == NOW
        assert result.entries[0].metadata == {"step_from": step_from, "step_to": step_to}

    def test_rejection_marks_current_delivery_rejected(self, engine, task) -> None:
        task = _at_step(engine, task, 4)
        task = engine.add_delivery(task, DESIGNER, [_attachment()]).task
        result = engine.record_client_approval(task, "rejected", annotated_image="https://x/y.png")
        assert result.task.deliveries[-1].status == DeliveryStatus.REJECTED
        assert result.task.client_approval.annotated_image == "https://x/y.png"

    def test_rejection_reopens_completed_task(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        result = engine.record_client_approval(task, "rejected")
        assert result.task.current_step == 3
        assert result.task.status == TaskStatus.ACTIVE
        assert result.task.completed_at is None

    def test_unknown_decision_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException):
            engine.record_client_approval(task, "maybe")

    def test_blocked_on_hold(self, engine, task) -> None:
        task = engine.change_status(task, ADMIN, TaskStatus.ON_HOLD).task
        with pytest.raises(InvalidTransitionException):
            engine.record_client_approval(task, "approved")


class TestUpdateDetails:
    def test_one_entry_per_changed_field(self, engine, task) -> None:
        result = engine.update_details(
            task,
            ADMIN,
            {"title": "Launch campaign post v2", "priority": "low", "tags": ["social"]},
        )
        assert result.task.title == "Launch campaign post v2"
        assert result.task.priority == TaskPriority.LOW
        assert [e.metadata["field"] for e in result.entries] == ["title", "priority"]
        assert result.entries[1].previous_value == "high"
        assert result.entries[1].new_value == "low"

    def test_no_change_no_entries(self, engine, task) -> None:
        result = engine.update_details(task, ADMIN, {"title": task.title})
        assert result.entries == ()
        assert len(result.task.history) == len(task.history)

    def test_unknown_field_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException, match="current_step"):
            engine.update_details(task, ADMIN, {"current_step": 3})

    def test_invalid_value_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException):
            engine.update_details(task, ADMIN, {"estimated_hours": 0.1})


class TestReassign:
    def test_replaces_existing_assignment(self, engine, task) -> None:
        result = engine.reassign_step(task, ADMIN, 3, DESIGNER)
        assert result.task.assignment_for(3).user_id == DESIGNER
        assert len([a for a in result.task.assigned_users if a.step_order == 3]) == 1
        assert result.entries[0].previous_value == REVIEWER
        assert result.entries[0].new_value == DESIGNER

    def test_assigns_unassigned_step(self, engine, task) -> None:
        result = engine.reassign_step(task, ADMIN, 4, REVIEWER)
        assert [a.step_order for a in result.task.assigned_users] == [1, 2, 3, 4, 5]
        assert result.task.assignment_for(4).step_name == "Stage 4"

    @pytest.mark.parametrize("step_order", [0, 6])
    def test_out_of_range_raises(self, engine, task, step_order) -> None:
        with pytest.raises(ValidationException):
            engine.reassign_step(task, ADMIN, step_order, REVIEWER)

    def test_cancelled_task_raises(self, engine, task) -> None:
        task = engine.change_status(task, ADMIN, TaskStatus.CANCELLED).task
        with pytest.raises(InvalidTransitionException):
            engine.reassign_step(task, ADMIN, 2, REVIEWER)


class TestStatusChanges:
    @pytest.mark.parametrize(
        ("path", "allowed"),
        [
            ([TaskStatus.ON_HOLD], True),
            ([TaskStatus.CANCELLED], True),
            ([TaskStatus.ON_HOLD, TaskStatus.ACTIVE], True),
            ([TaskStatus.ON_HOLD, TaskStatus.CANCELLED], True),
            ([TaskStatus.ACTIVE], False),
            ([TaskStatus.COMPLETED], False),
            ([TaskStatus.CANCELLED, TaskStatus.ACTIVE], False),
            ([TaskStatus.CANCELLED, TaskStatus.ON_HOLD], False),
        ],
    )
    def test_status_table(self, engine, task, path, allowed) -> None:
        *setup, target = path
        for status in setup:
            task = engine.change_status(task, ADMIN, status).task
        if allowed:
            result = engine.change_status(task, ADMIN, target)
            assert result.task.status == target
            assert result.actions == [HistoryAction.STATUS_CHANGED]
        else:
            with pytest.raises(InvalidTransitionException):
                engine.change_status(task, ADMIN, target)

    def test_completed_task_cannot_be_put_on_hold(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        with pytest.raises(InvalidTransitionException):
            engine.change_status(task, ADMIN, TaskStatus.ON_HOLD)

    def test_unknown_status_raises(self, engine, task) -> None:
        with pytest.raises(ValidationException):
            engine.change_status(task, ADMIN, "archived")


class TestReopen:
    def test_completed_task_back_to_active_same_step(self, engine, task) -> None:
        task = _at_step(engine, task, 5)
        result = engine.reopen(task, ADMIN, reason="client asked for a variant")
        assert result.task.status == TaskStatus.ACTIVE
        assert result.task.current_step == 5
        assert result.task.completed_at is None
        assert result.entries[0].previous_value == "completed"

    def test_reopened_completed_task_moves_on_by_revert(self, engine, task) -> None:
        task = engine.reopen(_at_step(engine, task, 5), ADMIN).task
        with pytest.raises(InvalidTransitionException, match="final step"):
            engine.advance(task, ADMIN)
        reverted = engine.revert(task, ADMIN, reason="rework the copy").task
        assert reverted.current_step == 4
        assert reverted.status == TaskStatus.ACTIVE

    def test_cancelled_task_can_be_reopened(self, engine, task) -> None:
        task = engine.change_status(task, ADMIN, TaskStatus.CANCELLED).task
        assert engine.reopen(task, ADMIN).task.status == TaskStatus.ACTIVE

    def test_active_task_raises(self, engine, task) -> None:
        with pytest.raises(InvalidTransitionException):
            engine.reopen(task, ADMIN)


@pytest.mark.parametrize("seed", range(8))
def test_random_operation_sequences_keep_invariants(seed: int) -> None:
    """Any mix of operations keeps the step in range, history append-only,
    completion tied to the final step, and leaves the task unchanged on error."""
    rng = random.Random(seed)
    model = _model()
    engine = _engine(model)
    task = _new_task(engine, model)
    operations = [
        lambda t: engine.advance(t, ADMIN),
        lambda t: engine.revert(t, ADMIN),
        lambda t: engine.add_delivery(t, DESIGNER, [_attachment()]),
        lambda t: engine.record_client_approval(t, rng.choice(["approved", "rejected"])),
        lambda t: engine.change_status(t, ADMIN, rng.choice(TaskStatus.values())),
        lambda t: engine.reopen(t, ADMIN),
        lambda t: engine.add_comment(t, ADMIN, "note"),
    ]
    for _ in range(60):
        before = task.history[:]
        try:
            result = rng.choice(operations)(task)
        except (InvalidTransitionException, ValidationException):
            assert task.history == before
            continue
        new = result.task
        assert 1 <= new.current_step <= new.total_steps
        assert new.history[: len(before)] == before
        assert new.history[len(before) :] == list(result.entries)
        if new.status == TaskStatus.COMPLETED:
            assert new.current_step == new.total_steps
        active = [
            d
            for d in new.deliveries
            if d.status == DeliveryStatus.ACTIVE and d.step_order == new.current_step
        ]
        assert len(active) <= 1
        task = new
