"""Task progression engine: every legal state transition of a task.

Operations are pure with respect to their input: each one deep-copies the
task, applies the transition to the copy, appends the matching history
entries and returns a TransitionResult. A failing operation raises before
anything is returned, so the caller's task and its history are never
touched by a rejected transition. Persisting the new task (one document
write guarded by its version) is the caller's job; so is dispatching
notifications for result.mentions / result.task.current_assignee.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.application.interfaces.services import StepResolver
from app.domain.entities.task import (
    ClientApproval,
    Comment,
    Delivery,
    HistoryEntry,
    StepAssignment,
    TaskEntity,
    TaskSettings,
)
from app.domain.entities.task_model import TaskModelEntity
from app.domain.enums import (
    ApprovalDecision,
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
)
from app.domain.exceptions import InvalidTransitionException, ValidationException
from app.domain.value_objects.core import Attachment
from app.shared.utils.datetime import ensure_utc, utc_now
from app.shared.utils.generators import generate_cuid

COMMENT_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 500
REJECTION_STEP_BACK = 2

# Fields editable through update_details (everything else changes via transitions).
EDITABLE_FIELDS = ("title", "briefing", "due_date", "priority", "tags", "estimated_hours")

# Allowed manual status changes: from -> set of targets.
_STATUS_CHANGES: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.ACTIVE: frozenset({TaskStatus.ON_HOLD, TaskStatus.CANCELLED}),
    TaskStatus.ON_HOLD: frozenset({TaskStatus.ACTIVE, TaskStatus.CANCELLED}),
}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one engine operation.

    Attributes:
        task: New task state (a copy; the input task is unchanged).
        entries: History entries appended by this operation, in order.
        previous_step: current_step before the operation.
        mentions: User ids mentioned by a new comment (for notification).
    """

    task: TaskEntity
    entries: tuple[HistoryEntry, ...]
    previous_step: int
    mentions: tuple[str, ...] = ()

    @property
    def step_changed(self) -> bool:
        return self.task.current_step != self.previous_step

    @property
    def completed(self) -> bool:
        return any(e.action == HistoryAction.COMPLETED for e in self.entries)

    @property
    def actions(self) -> list[HistoryAction]:
        return [e.action for e in self.entries]

    @property
    def notify_user_ids(self) -> list[str]:
        """Users to tell about this transition: the new current assignee, or
        every assigned user when the task completed."""
        if self.completed:
            return list(dict.fromkeys(a.user_id for a in self.task.assigned_users))
        if self.step_changed and self.task.current_assignee:
            return [self.task.current_assignee]
        return []


class TaskProgressionEngine:
    """Enforces legal task transitions and produces their history entries.

    The step resolver (normally the task's TaskModelEntity) maps a step
    ordinal to its step id and name; names are copied into deliveries,
    assignments and history at write time so later renames do not rewrite
    the past. clock and id_factory are injectable for deterministic tests.
    """

    def __init__(
        self,
        steps: StepResolver,
        *,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = generate_cuid,
    ) -> None:
        self._steps = steps
        self._clock = clock
        self._new_id = id_factory

    # ---- Instantiation ----

    def create_task(
        self,
        *,
        model: TaskModelEntity,
        title: str,
        briefing: str,
        client_id: str,
        due_date: datetime,
        created_by: str,
        priority: TaskPriority | None = None,
        tags: Sequence[str] | None = None,
        initial_attachments: Sequence[Attachment] = (),
        settings: TaskSettings | None = None,
    ) -> TransitionResult:
        """Instantiate a task from a task model at step 1 with the model's default assignees."""
        if model.step_count < 1:
            raise ValidationException(
                "Task model has no steps", field="task_model_id"
            )
        now = self._clock()
        first = model.resolve_step(1)
        assignments = []
        for ordinal in range(1, model.step_count + 1):
            default = model.default_assignee_for(ordinal)
            if default is None:
                continue
            step = model.resolve_step(ordinal)
            assignments.append(
                StepAssignment(
                    step_order=ordinal,
                    step_id=step.step_id,
                    step_name=step.step_name,
                    user_id=default.user_id,
                    assigned_by=created_by,
                    assigned_at=now,
                )
            )
        task = TaskEntity(
            id=self._new_id(),
            title=title.strip(),
            briefing=briefing.strip(),
            client_id=client_id,
            task_model_id=model.id,
            workflow_id=model.workflow_id,
            current_step=1,
            current_step_id=first.step_id,
            total_steps=model.step_count,
            due_date=ensure_utc(due_date),
            created_by=created_by,
            priority=priority or model.settings.default_priority,
            started_at=now,
            estimated_hours=model.settings.estimated_hours,
            tags=list(tags) if tags is not None else list(model.settings.tags),
            assigned_users=assignments,
            initial_attachments=list(initial_attachments),
            settings=settings or TaskSettings(),
            created_at=now,
            updated_at=now,
        )
        entry = self._entry(
            HistoryAction.CREATED,
            f'Task created from model "{model.name}"',
            created_by,
        )
        task.history.append(entry)
        return TransitionResult(task=task, entries=(entry,), previous_step=1)

    # ---- Step progression ----

    def advance(
        self, task: TaskEntity, actor_id: str | None, notes: str | None = None
    ) -> TransitionResult:
        """Move to the next step; completes the task when the final step is reached.

        Raises:
            InvalidTransitionException: If already at the final step or the
                task is on hold / cancelled.
            ValidationException: If notes exceed the maximum length.
        """
        if task.current_step >= task.total_steps:
            raise InvalidTransitionException(
                "Task already at final step",
                task_id=task.id,
                current_step=task.current_step,
            )
        self._require_active(task, "advance")
        notes = self._optional_text(notes, "notes")
        new = self._begin(task)
        entries = self._apply_advance(new, actor_id, notes)
        return self._finish(new, task.current_step, entries)

    def revert(
        self, task: TaskEntity, actor_id: str | None, reason: str | None = None
    ) -> TransitionResult:
        """Move back one step; a completed task is reopened.

        Raises:
            InvalidTransitionException: If already at the first step or the
                task is on hold / cancelled.
        """
        if task.current_step <= 1:
            raise InvalidTransitionException(
                "Task already at first step",
                task_id=task.id,
                current_step=task.current_step,
            )
        if task.status in (TaskStatus.ON_HOLD, TaskStatus.CANCELLED):
            raise InvalidTransitionException(
                f"Cannot revert a task that is {task.status.value}",
                task_id=task.id,
                status=task.status.value,
            )
        reason = self._optional_text(reason, "reason")
        new = self._begin(task)
        step_from = new.current_step
        self._move_to(new, step_from - 1)
        self._reopen_if_completed(new)
        description = f"Task moved back from step {step_from} to {new.current_step}"
        if reason:
            description += f" - Reason: {reason}"
        entry = self._entry(
            HistoryAction.STEP_REVERTED,
            description,
            actor_id,
            previous_value=step_from,
            new_value=new.current_step,
            metadata={"step_from": step_from, "step_to": new.current_step},
        )
        return self._finish(new, step_from, [entry])

    # ---- Comments and deliveries ----

    def add_comment(
        self,
        task: TaskEntity,
        actor_id: str | None,
        content: str,
        mentions: Iterable[str] = (),
        attachments: Sequence[Attachment] = (),
        is_internal: bool = True,
    ) -> TransitionResult:
        """Append a comment. Needs non-empty content or at least one attachment.

        Raises:
            ValidationException: If content is empty without attachments or
                longer than COMMENT_MAX_LENGTH.
        """
        text = (content or "").strip()
        if not text and not attachments:
            raise ValidationException(
                "Comment requires content or at least one attachment", field="content"
            )
        if len(text) > COMMENT_MAX_LENGTH:
            raise ValidationException(
                f"Comment must not exceed {COMMENT_MAX_LENGTH} characters",
                field="content",
            )
        mention_ids = tuple(dict.fromkeys(m for m in mentions if m))
        new = self._begin(task)
        comment = Comment(
            id=self._new_id(),
            author_id=actor_id,
            content=text,
            created_at=self._clock(),
            mentions=list(mention_ids),
            attachments=list(attachments),
            is_internal=is_internal,
        )
        new.comments.append(comment)
        visibility = "internal" if is_internal else "visible to client"
        entry = self._entry(
            HistoryAction.COMMENT_ADDED,
            f"Comment added ({visibility})",
            actor_id,
            metadata={"comment_id": comment.id},
        )
        return self._finish(new, task.current_step, [entry], mentions=mention_ids)

    def add_delivery(
        self,
        task: TaskEntity,
        actor_id: str,
        attachments: Sequence[Attachment],
        notes: str | None = None,
    ) -> TransitionResult:
        """Record a delivery for the current step; earlier active ones become superseded.

        Does not advance the step.

        Raises:
            ValidationException: If no attachment is given, notes are too long,
                or the step accepts a single file and several were sent.
            InvalidTransitionException: If the task is not active.
        """
        if not attachments:
            raise ValidationException(
                "Delivery requires at least one attachment", field="attachments"
            )
        notes = self._optional_text(notes, "notes")
        self._require_active(task, "deliver on")
        step = self._steps.resolve_step(task.current_step)
        if step is not None and not step.step_settings.allow_multiple_files and len(attachments) > 1:
            raise ValidationException(
                f"Step {step.step_name!r} accepts a single file per delivery",
                field="attachments",
            )
        step_id, step_name = self._step_ref(task.current_step)
        new = self._begin(task)
        for previous in new.deliveries:
            if previous.step_order == new.current_step and previous.status == DeliveryStatus.ACTIVE:
                previous.status = DeliveryStatus.SUPERSEDED
        delivery = Delivery(
            id=self._new_id(),
            step_order=new.current_step,
            step_id=step_id,
            step_name=step_name,
            delivered_by=actor_id,
            attachments=list(attachments),
            delivered_at=self._clock(),
            notes=notes,
        )
        new.deliveries.append(delivery)
        entry = self._entry(
            HistoryAction.DELIVERY_ADDED,
            f"Delivery added for step {delivery.step_order} ({step_name})",
            actor_id,
            metadata={
                "delivery_id": delivery.id,
                "attachment_ids": [a.id for a in delivery.attachments],
            },
        )
        return self._finish(new, task.current_step, [entry])

    # ---- Client approval ----

    def record_client_approval(
        self,
        task: TaskEntity,
        decision: ApprovalDecision | str,
        comments: str | None = None,
        annotated_image: str | None = None,
    ) -> TransitionResult:
        """Record the client's decision. No actor id: the client is not a system user.

        approved: stamps the approval; with settings.auto_advance_on_approval
        and steps remaining, also advances one step in the same transition.
        rejected: stamps the rejection, marks the current active delivery
        rejected and moves back REJECTION_STEP_BACK steps (never below 1),
        reopening a completed task.

        Raises:
            ValidationException: If decision is not approved/rejected.
            InvalidTransitionException: If the task is on hold or cancelled.
        """
        try:
            decision = ApprovalDecision(decision)
        except ValueError as e:
            raise ValidationException(
                "Decision must be 'approved' or 'rejected'", field="decision"
            ) from e
        if task.status in (TaskStatus.ON_HOLD, TaskStatus.CANCELLED):
            raise InvalidTransitionException(
                f"Cannot record approval on a task that is {task.status.value}",
                task_id=task.id,
                status=task.status.value,
            )
        comments = (comments or "").strip() or None
        now = self._clock()
        new = self._begin(task)
        step_from = new.current_step

        if decision == ApprovalDecision.APPROVED:
            new.client_approval = ClientApproval(
                status=ClientApprovalStatus.APPROVED,
                approved_at=now,
                rejected_at=None,
                comments=comments,
            )
            entries = [
                self._entry(
                    HistoryAction.APPROVED,
                    self._approval_description("approved", comments),
                    None,
                    metadata={"step_from": step_from, "step_to": step_from},
                )
            ]
            if new.settings.auto_advance_on_approval and not new.is_final_step:
                entries.extend(self._apply_advance(new, None, None))
            return self._finish(new, step_from, entries)

        step_to = max(1, step_from - REJECTION_STEP_BACK)
        new.client_approval = ClientApproval(
            status=ClientApprovalStatus.REJECTED,
            approved_at=None,
            rejected_at=now,
            comments=comments,
            annotated_image=annotated_image,
        )
        current = new.current_delivery
        if current is not None:
            current.status = DeliveryStatus.REJECTED
        self._move_to(new, step_to)
        self._reopen_if_completed(new)
        entry = self._entry(
            HistoryAction.REJECTED,
            self._approval_description("rejected", comments),
            None,
            previous_value=step_from,
            new_value=step_to,
            metadata={"step_from": step_from, "step_to": step_to},
        )
        return self._finish(new, step_from, [entry])

    # ---- Administrative changes ----

    def update_details(
        self, task: TaskEntity, actor_id: str, changes: dict[str, Any]
    ) -> TransitionResult:
        """Edit descriptive fields; one 'updated' entry per field that actually changed.

        Raises:
            ValidationException: On unknown fields or values the task rejects.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationException(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        new = self._begin(task)
        entries: list[HistoryEntry] = []
        for name in EDITABLE_FIELDS:
            if name not in changes:
                continue
            value = self._coerce_field(name, changes[name])
            old = getattr(new, name)
            if old == value:
                continue
            setattr(new, name, value)
            entries.append(
                self._entry(
                    HistoryAction.UPDATED,
                    f'Field "{name}" changed',
                    actor_id,
                    previous_value=_plain(old),
                    new_value=_plain(value),
                    metadata={"field": name},
                )
            )
        return self._finish(new, task.current_step, entries)

    def reassign_step(
        self, task: TaskEntity, actor_id: str, step_order: int, user_id: str
    ) -> TransitionResult:
        """Set the responsible user of one step ordinal (replacing any previous one)."""
        if not 1 <= step_order <= task.total_steps:
            raise ValidationException(
                f"Step must be between 1 and {task.total_steps}", field="step_order"
            )
        if not user_id:
            raise ValidationException("User is required", field="user_id")
        if task.status == TaskStatus.CANCELLED:
            raise InvalidTransitionException(
                "Cannot reassign a cancelled task",
                task_id=task.id,
                status=task.status.value,
            )
        step_id, step_name = self._step_ref(step_order)
        new = self._begin(task)
        previous = new.assignment_for(step_order)
        previous_user = previous.user_id if previous else None
        if previous is not None:
            new.assigned_users.remove(previous)
        new.assigned_users.append(
            StepAssignment(
                step_order=step_order,
                step_id=step_id,
                step_name=step_name,
                user_id=user_id,
                assigned_by=actor_id,
                assigned_at=self._clock(),
            )
        )
        new.assigned_users.sort(key=lambda a: a.step_order)
        entry = self._entry(
            HistoryAction.ASSIGNED,
            f"Step {step_order} ({step_name}) assigned",
            actor_id,
            previous_value=previous_user,
            new_value=user_id,
            metadata={"step": step_order},
        )
        return self._finish(new, task.current_step, [entry])

    def change_status(
        self, task: TaskEntity, actor_id: str, status: TaskStatus | str
    ) -> TransitionResult:
        """Put on hold, resume or cancel. Completion happens only through advance.

        Raises:
            InvalidTransitionException: If the change is not in the allowed table.
        """
        try:
            target = TaskStatus(status)
        except ValueError as e:
            raise ValidationException("Unknown task status", field="status") from e
        if target not in _STATUS_CHANGES.get(task.status, frozenset()):
            raise InvalidTransitionException(
                f"Cannot change status from {task.status.value} to {target.value}",
                task_id=task.id,
                status=task.status.value,
            )
        new = self._begin(task)
        new.status = target
        entry = self._entry(
            HistoryAction.STATUS_CHANGED,
            f"Status changed from {task.status.value} to {target.value}",
            actor_id,
            previous_value=task.status.value,
            new_value=target.value,
        )
        return self._finish(new, task.current_step, [entry])

    def reopen(
        self, task: TaskEntity, actor_id: str, reason: str | None = None
    ) -> TransitionResult:
        """Bring a completed or cancelled task back to active at its current step.

        A reopened completed task stays on its final step, where advance is
        refused; revert is the way back into the workflow for rework.
        """
        if task.status not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
            raise InvalidTransitionException(
                f"Only completed or cancelled tasks can be reopened (task is {task.status.value})",
                task_id=task.id,
                status=task.status.value,
            )
        reason = self._optional_text(reason, "reason")
        new = self._begin(task)
        new.status = TaskStatus.ACTIVE
        new.completed_at = None
        description = "Task reopened"
        if reason:
            description += f" - Reason: {reason}"
        entry = self._entry(
            HistoryAction.REOPENED,
            description,
            actor_id,
            previous_value=task.status.value,
            new_value=TaskStatus.ACTIVE.value,
        )
        return self._finish(new, task.current_step, [entry])

    # ---- Internals ----

    def _apply_advance(
        self, task: TaskEntity, actor_id: str | None, notes: str | None
    ) -> list[HistoryEntry]:
        """Advance task in place (already a copy) and return the entries to append."""
        step_from = task.current_step
        self._move_to(task, step_from + 1)
        description = f"Task advanced from step {step_from} to {task.current_step}"
        if notes:
            description += f" - Notes: {notes}"
        entries = [
            self._entry(
                HistoryAction.STEP_ADVANCED,
                description,
                actor_id,
                previous_value=step_from,
                new_value=task.current_step,
                metadata={"step_from": step_from, "step_to": task.current_step},
            )
        ]
        if task.current_step == task.total_steps:
            task.status = TaskStatus.COMPLETED
            task.completed_at = self._clock()
            entries.append(
                self._entry(HistoryAction.COMPLETED, "Task marked as completed", actor_id)
            )
        return entries

    def _begin(self, task: TaskEntity) -> TaskEntity:
        return copy.deepcopy(task)

    def _finish(
        self,
        task: TaskEntity,
        previous_step: int,
        entries: list[HistoryEntry],
        mentions: tuple[str, ...] = (),
    ) -> TransitionResult:
        task.history.extend(entries)
        if entries:
            task.updated_at = self._clock()
        task.validate()
        return TransitionResult(
            task=task,
            entries=tuple(entries),
            previous_step=previous_step,
            mentions=mentions,
        )

    def _move_to(self, task: TaskEntity, ordinal: int) -> None:
        task.current_step = ordinal
        task.current_step_id, _ = self._step_ref(ordinal)

    def _reopen_if_completed(self, task: TaskEntity) -> None:
        if task.status == TaskStatus.COMPLETED:
            task.status = TaskStatus.ACTIVE
            task.completed_at = None

    def _require_active(self, task: TaskEntity, verb: str) -> None:
        if task.status in (TaskStatus.ON_HOLD, TaskStatus.CANCELLED):
            raise InvalidTransitionException(
                f"Cannot {verb} a task that is {task.status.value}",
                task_id=task.id,
                status=task.status.value,
            )

    def _step_ref(self, ordinal: int) -> tuple[str, str]:
        step = self._steps.resolve_step(ordinal)
        if step is None:
            # Resolver does not know this ordinal (e.g. model edited later).
            return "", f"Step {ordinal}"
        return step.step_id, step.step_name

    def _entry(
        self,
        action: HistoryAction,
        description: str,
        changed_by: str | None,
        *,
        previous_value: Any = None,
        new_value: Any = None,
        metadata: dict[str, Any] | None = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            id=self._new_id(),
            action=action,
            description=description,
            changed_by=changed_by,
            timestamp=self._clock(),
            previous_value=previous_value,
            new_value=new_value,
            metadata=metadata or {},
        )

    @staticmethod
    def _optional_text(value: str | None, field: str) -> str | None:
        text = (value or "").strip() or None
        if text and len(text) > NOTES_MAX_LENGTH:
            raise ValidationException(
                f"{field.capitalize()} must not exceed {NOTES_MAX_LENGTH} characters",
                field=field,
            )
        return text

    @staticmethod
    def _approval_description(decision: str, comments: str | None) -> str:
        description = f"Task {decision} by client"
        if comments:
            description += f" - {comments}"
        return description

    @staticmethod
    def _coerce_field(name: str, value: Any) -> Any:
        if value is None:
            raise ValidationException(f"{name} cannot be empty", field=name)
        if name == "priority":
            try:
                return TaskPriority(value)
            except ValueError as e:
                raise ValidationException("Unknown priority", field=name) from e
        if name == "due_date":
            if not isinstance(value, datetime):
                raise ValidationException("Due date must be a datetime", field=name)
            return ensure_utc(value)
        if name == "tags":
            return [str(t).strip() for t in value if str(t).strip()]
        if name == "estimated_hours":
            return float(value)
        return str(value).strip()


def _plain(value: Any) -> Any:
    """History values are stored as plain data (enum -> value)."""
    if isinstance(value, TaskPriority):
        return value.value
    if isinstance(value, list):
        return list(value)
    return value
