"""Client portal API: access with access id + password, then see and approve own tasks.

Portal tokens carry kind=client; staff tokens are rejected here and vice versa.
"""

from fastapi import APIRouter, Request

from app.api.v1.dependencies import ClientServiceDep, CurrentClient, TaskServiceDep
from app.core.config import get_settings
from app.core.limiter import (
    check_portal_failures,
    limit_portal_access,
    limit_writes,
    record_portal_failure,
)
from app.domain.exceptions import AuthenticationException
from app.infrastructure.security.jwt import create_client_token
from app.schemas.auth import PortalAccessRequest, TokenResponse
from app.schemas.client import PortalClientResponse
from app.schemas.task import (
    ApprovalRequest,
    ClientCommentCreateRequest,
    PortalTaskResponse,
)
from app.shared.utils.datetime import utc_now

router = APIRouter()


@router.post("/access", response_model=TokenResponse)
@limit_portal_access
async def portal_access(request: Request, body: PortalAccessRequest, svc: ClientServiceDep):
    """Exchange the client's access id and password for a portal token."""
    check_portal_failures(body.access_id)
    try:
        client = await svc.authenticate_portal(body.access_id, body.password)
    except AuthenticationException:
        record_portal_failure(body.access_id)
        raise
    return TokenResponse(
        access_token=create_client_token(client.id),
        expires_in=get_settings().client_token_expire_minutes * 60,
    )


@router.get("/me", response_model=PortalClientResponse)
async def portal_me(current_client: CurrentClient):
    return PortalClientResponse.model_validate(current_client)


@router.get("/tasks", response_model=list[PortalTaskResponse])
async def list_portal_tasks(current_client: CurrentClient, svc: TaskServiceDep):
    tasks = await svc.list_client_tasks(current_client)
    return [PortalTaskResponse.from_entity(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=PortalTaskResponse)
async def get_portal_task(task_id: str, current_client: CurrentClient, svc: TaskServiceDep):
    return PortalTaskResponse.from_entity(await svc.get_client_task(current_client, task_id))


@router.post("/tasks/{task_id}/approval", response_model=PortalTaskResponse)
@limit_writes
async def record_approval(
    request: Request,
    task_id: str,
    body: ApprovalRequest,
    current_client: CurrentClient,
    svc: TaskServiceDep,
):
    """Approve (may auto-advance) or reject (sends the task back up to two steps)."""
    task = await svc.record_client_approval(
        current_client, task_id, body.decision, body.comments, body.annotated_image
    )
    return PortalTaskResponse.from_entity(task)


@router.post("/tasks/{task_id}/comments", response_model=PortalTaskResponse, status_code=201)
@limit_writes
async def add_portal_comment(
    request: Request,
    task_id: str,
    body: ClientCommentCreateRequest,
    current_client: CurrentClient,
    svc: TaskServiceDep,
):
    now = utc_now()
    task = await svc.add_client_comment(
        current_client,
        task_id,
        body.content,
        attachments=[a.to_attachment(None, now) for a in body.attachments],
    )
    return PortalTaskResponse.from_entity(task)
