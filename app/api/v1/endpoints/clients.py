"""Client API (admin): create and read client accounts."""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.api.v1.dependencies import ClientServiceDep, CurrentUser
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.limiter import limit_writes
from app.schemas.client import ClientCreateRequest, ClientResponse

router = APIRouter()


@router.post("", response_model=ClientResponse, status_code=201)
@limit_writes
async def create_client(
    request: Request,
    body: ClientCreateRequest,
    current_user: CurrentUser,
    svc: ClientServiceDep,
):
    """Create a client; the response carries the portal access id."""
    client = await svc.create_client(
        current_user,
        company_name=body.company_name,
        responsible_name=body.responsible_name,
        responsible_email=body.responsible_email,
        phone=body.phone,
        access_password=body.access_password,
        logo=body.logo,
    )
    return ClientResponse.model_validate(client)


@router.get("", response_model=list[ClientResponse])
async def list_clients(
    current_user: CurrentUser,
    svc: ClientServiceDep,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
):
    clients = await svc.list_clients(current_user, skip=skip, limit=limit)
    return [ClientResponse.model_validate(c) for c in clients]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, current_user: CurrentUser, svc: ClientServiceDep):
    return ClientResponse.model_validate(await svc.get_client(current_user, client_id))
