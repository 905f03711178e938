"""Workflow API: reads for any staff user, maintenance for admins."""

from fastapi import APIRouter, Request

from app.api.v1.dependencies import CurrentUser, WorkflowServiceDep
from app.application.use_cases.workflows import StepInput
from app.core.limiter import limit_writes
from app.domain.entities.workflow import StepSettings
from app.schemas.workflow import (
    StepReorderRequest,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowStepCreate,
    WorkflowUpdate,
)

router = APIRouter()


def _step_input(step: WorkflowStepCreate) -> StepInput:
    return StepInput(
        name=step.name,
        description=step.description,
        color=step.color,
        icon=step.icon,
        settings=StepSettings(**step.settings.model_dump()),
    )


@router.post("", response_model=WorkflowResponse, status_code=201)
@limit_writes
async def create_workflow(
    request: Request,
    body: WorkflowCreateRequest,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    """Create a workflow; steps are numbered 1..n in the order given."""
    workflow = await svc.create_workflow(
        current_user,
        name=body.name,
        steps=[_step_input(s) for s in body.steps],
        description=body.description,
        is_default=body.is_default,
    )
    return WorkflowResponse.model_validate(workflow)


@router.get("", response_model=list[WorkflowResponse])
async def list_workflows(
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
    active_only: bool = False,
):
    workflows = await svc.list_workflows(active_only=active_only)
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.get("/default", response_model=WorkflowResponse)
async def get_default_workflow(current_user: CurrentUser, svc: WorkflowServiceDep):
    return WorkflowResponse.model_validate(await svc.get_default())


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: str, current_user: CurrentUser, svc: WorkflowServiceDep):
    return WorkflowResponse.model_validate(await svc.get_workflow(workflow_id))


@router.patch("/{workflow_id}", response_model=WorkflowResponse)
@limit_writes
async def update_workflow(
    request: Request,
    workflow_id: str,
    body: WorkflowUpdate,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    workflow = await svc.update_workflow(
        current_user,
        workflow_id,
        name=body.name,
        description=body.description,
        is_active=body.is_active,
    )
    return WorkflowResponse.model_validate(workflow)


@router.post("/{workflow_id}/default", response_model=WorkflowResponse)
@limit_writes
async def set_default_workflow(
    request: Request,
    workflow_id: str,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    """Make this the only default workflow (one atomic batch write)."""
    return WorkflowResponse.model_validate(await svc.set_default(current_user, workflow_id))


@router.post("/{workflow_id}/steps", response_model=WorkflowResponse, status_code=201)
@limit_writes
async def add_step(
    request: Request,
    workflow_id: str,
    body: WorkflowStepCreate,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    """Append a step at the end of the workflow."""
    workflow = await svc.add_step(current_user, workflow_id, _step_input(body))
    return WorkflowResponse.model_validate(workflow)


@router.delete("/{workflow_id}/steps/{step_id}", response_model=WorkflowResponse)
@limit_writes
async def remove_step(
    request: Request,
    workflow_id: str,
    step_id: str,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    """Remove a step; later steps move up one position."""
    workflow = await svc.remove_step(current_user, workflow_id, step_id)
    return WorkflowResponse.model_validate(workflow)


@router.put("/{workflow_id}/reorder", response_model=WorkflowResponse)
@limit_writes
async def reorder_steps(
    request: Request,
    workflow_id: str,
    body: StepReorderRequest,
    current_user: CurrentUser,
    svc: WorkflowServiceDep,
):
    workflow = await svc.reorder_steps(current_user, workflow_id, body.step_ids)
    return WorkflowResponse.model_validate(workflow)
