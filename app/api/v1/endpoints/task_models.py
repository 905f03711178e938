"""Task model API: templates that tasks are instantiated from."""

from fastapi import APIRouter, Request

from app.api.v1.dependencies import CurrentUser, TaskModelServiceDep
from app.core.limiter import limit_writes
from app.domain.entities.task_model import TaskModelSettings
from app.schemas.task_model import (
    DefaultAssigneesRequest,
    TaskModelCreateRequest,
    TaskModelResponse,
)

router = APIRouter()


@router.post("", response_model=TaskModelResponse, status_code=201)
@limit_writes
async def create_task_model(
    request: Request,
    body: TaskModelCreateRequest,
    current_user: CurrentUser,
    svc: TaskModelServiceDep,
):
    """Create a model from a subset of a workflow's steps."""
    model = await svc.create_task_model(
        current_user,
        name=body.name,
        workflow_id=body.workflow_id,
        step_ids=body.step_ids,
        description=body.description,
        default_assignees=body.default_assignees,
        settings=TaskModelSettings(**body.settings.model_dump()),
    )
    return TaskModelResponse.model_validate(model)


@router.get("", response_model=list[TaskModelResponse])
async def list_task_models(
    current_user: CurrentUser,
    svc: TaskModelServiceDep,
    workflow_id: str | None = None,
    active_only: bool = False,
):
    models = await svc.list_task_models(workflow_id=workflow_id, active_only=active_only)
    return [TaskModelResponse.model_validate(m) for m in models]


@router.get("/{task_model_id}", response_model=TaskModelResponse)
async def get_task_model(
    task_model_id: str, current_user: CurrentUser, svc: TaskModelServiceDep
):
    return TaskModelResponse.model_validate(await svc.get_task_model(task_model_id))


@router.put("/{task_model_id}/assignees", response_model=TaskModelResponse)
@limit_writes
async def update_default_assignees(
    request: Request,
    task_model_id: str,
    body: DefaultAssigneesRequest,
    current_user: CurrentUser,
    svc: TaskModelServiceDep,
):
    """Replace the default assignee per step (admin or the model's creator)."""
    model = await svc.update_default_assignees(current_user, task_model_id, body.assignees)
    return TaskModelResponse.model_validate(model)
