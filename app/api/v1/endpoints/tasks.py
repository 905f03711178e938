"""Task API: thin routes delegating to TaskService.

Every write runs one engine transition and one version-guarded document
write; a concurrent writer surfaces as 409 VERSION_CONFLICT.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.api.v1.dependencies import CurrentUser, TaskServiceDep
from app.application.dtos.task import TaskCreate, TaskFilter
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.limiter import limit_writes
from app.domain.entities.task import TaskSettings
from app.domain.enums import TaskPriority, TaskStatus
from app.domain.exceptions import ValidationException
from app.schemas.task import (
    AdvanceRequest,
    AssignmentRequest,
    CommentCreateRequest,
    DeliveryCreateRequest,
    KanbanColumnResponse,
    ReopenRequest,
    RevertRequest,
    StatusChangeRequest,
    TaskCreateRequest,
    TaskResponse,
    TaskStatsResponse,
    TaskSummaryResponse,
    TaskUpdateRequest,
)
from app.shared.utils.datetime import utc_now

router = APIRouter()

# "overdue" is accepted next to the stored statuses as a list filter
OVERDUE = "overdue"


def _detail(task) -> TaskResponse:
    return TaskResponse.from_entity(task, utc_now())


def _status_filter(status: str | None) -> TaskStatus | None:
    if status is None or status == OVERDUE:
        return None
    if status not in TaskStatus.values():
        raise ValidationException(f"Unknown status: {status}", field="status")
    return TaskStatus(status)


@router.post("", response_model=TaskResponse, status_code=201)
@limit_writes
async def create_task(
    request: Request,
    body: TaskCreateRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    """Create a task from a task model (admin). Assignees come from the model's defaults."""
    now = utc_now()
    data = TaskCreate(
        title=body.title,
        briefing=body.briefing,
        client_id=body.client_id,
        task_model_id=body.task_model_id,
        due_date=body.due_date,
        priority=body.priority,
        tags=body.tags,
        initial_attachments=[
            a.to_attachment(current_user.id, now) for a in body.initial_attachments
        ],
        settings=TaskSettings(**body.settings.model_dump()) if body.settings else None,
    )
    task = await svc.create_task(current_user, data)
    return _detail(task)


@router.get("", response_model=list[TaskSummaryResponse])
async def list_tasks(
    current_user: CurrentUser,
    svc: TaskServiceDep,
    status: Annotated[str | None, Query(description="Task status or 'overdue'")] = None,
    priority: TaskPriority | None = None,
    client_id: str | None = None,
    task_model_id: str | None = None,
    assigned_to: str | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
):
    """List tasks. Operational users only see tasks they are assigned to."""
    filters = TaskFilter(
        status=_status_filter(status),
        overdue=status == OVERDUE,
        priority=priority,
        client_id=client_id,
        task_model_id=task_model_id,
        assigned_user_id=assigned_to,
        search=search,
    )
    tasks = await svc.list_tasks(current_user, filters, skip=skip, limit=limit)
    now = utc_now()
    return [TaskSummaryResponse.from_entity(t, now) for t in tasks]


@router.get("/my", response_model=list[TaskSummaryResponse])
async def my_tasks(current_user: CurrentUser, svc: TaskServiceDep):
    """Active tasks whose current step is assigned to the caller."""
    tasks = await svc.my_tasks(current_user)
    now = utc_now()
    return [TaskSummaryResponse.from_entity(t, now) for t in tasks]


@router.get("/kanban", response_model=list[KanbanColumnResponse])
async def kanban(
    current_user: CurrentUser,
    svc: TaskServiceDep,
    client_id: str | None = None,
    assigned_to: str | None = None,
):
    """Active tasks grouped by current step."""
    columns = await svc.kanban(current_user, client_id=client_id, assigned_to=assigned_to)
    now = utc_now()
    return [
        KanbanColumnResponse(
            step_order=c.step_order,
            step_name=c.step_name,
            tasks=[TaskSummaryResponse.from_entity(t, now) for t in c.tasks],
        )
        for c in columns
    ]


@router.get("/stats/overview", response_model=TaskStatsResponse)
async def stats_overview(current_user: CurrentUser, svc: TaskServiceDep):
    """Counters and average completion time in days (admin)."""
    return TaskStatsResponse.model_validate(await svc.stats(current_user))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, current_user: CurrentUser, svc: TaskServiceDep):
    return _detail(await svc.get_task(current_user, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
@limit_writes
async def update_task(
    request: Request,
    task_id: str,
    body: TaskUpdateRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    """Edit title, briefing, due date, priority, tags or estimated hours."""
    return _detail(await svc.update_details(current_user, task_id, body.changes()))


@router.post("/{task_id}/advance", response_model=TaskResponse)
@limit_writes
async def advance_task(
    request: Request,
    task_id: str,
    current_user: CurrentUser,
    svc: TaskServiceDep,
    body: AdvanceRequest | None = None,
):
    """Move to the next step; at the final step this completes the task."""
    notes = body.notes if body else None
    return _detail(await svc.advance(current_user, task_id, notes))


@router.post("/{task_id}/revert", response_model=TaskResponse)
@limit_writes
async def revert_task(
    request: Request,
    task_id: str,
    current_user: CurrentUser,
    svc: TaskServiceDep,
    body: RevertRequest | None = None,
):
    """Move back one step."""
    reason = body.reason if body else None
    return _detail(await svc.revert(current_user, task_id, reason))


@router.post("/{task_id}/comments", response_model=TaskResponse, status_code=201)
@limit_writes
async def add_comment(
    request: Request,
    task_id: str,
    body: CommentCreateRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    now = utc_now()
    task = await svc.add_comment(
        current_user,
        task_id,
        body.content,
        mentions=body.mentions,
        attachments=[a.to_attachment(current_user.id, now) for a in body.attachments],
        is_internal=body.is_internal,
    )
    return _detail(task)


@router.post("/{task_id}/deliveries", response_model=TaskResponse, status_code=201)
@limit_writes
async def add_delivery(
    request: Request,
    task_id: str,
    body: DeliveryCreateRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    """Record deliverables for the current step. Does not advance the task."""
    now = utc_now()
    task = await svc.add_delivery(
        current_user,
        task_id,
        [a.to_attachment(current_user.id, now) for a in body.attachments],
        body.notes,
    )
    return _detail(task)


@router.put("/{task_id}/assignments/{step_order}", response_model=TaskResponse)
@limit_writes
async def reassign_step(
    request: Request,
    task_id: str,
    step_order: int,
    body: AssignmentRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    """Set the responsible user of one step (admin)."""
    return _detail(await svc.reassign_step(current_user, task_id, step_order, body.user_id))


@router.post("/{task_id}/status", response_model=TaskResponse)
@limit_writes
async def change_status(
    request: Request,
    task_id: str,
    body: StatusChangeRequest,
    current_user: CurrentUser,
    svc: TaskServiceDep,
):
    """Put on hold, resume or cancel (admin)."""
    return _detail(await svc.change_status(current_user, task_id, body.status))


@router.post("/{task_id}/reopen", response_model=TaskResponse)
@limit_writes
async def reopen_task(
    request: Request,
    task_id: str,
    current_user: CurrentUser,
    svc: TaskServiceDep,
    body: ReopenRequest | None = None,
):
    """Reopen a completed or cancelled task (admin)."""
    reason = body.reason if body else None
    return _detail(await svc.reopen(current_user, task_id, reason))
