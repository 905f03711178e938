"""User API: thin routes delegating to UserService."""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.api.v1.dependencies import CurrentUser, UserServiceDep
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.limiter import limit_writes
from app.schemas.user import UserCreateRequest, UserResponse, UserUpdateMe

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=201)
@limit_writes
async def create_user(
    request: Request,
    body: UserCreateRequest,
    current_user: CurrentUser,
    svc: UserServiceDep,
):
    """Create a user (admin)."""
    user = await svc.create_user(
        current_user,
        name=body.name,
        email=body.email,
        password=body.password,
        position=body.position,
        role=body.role,
        phone=body.phone,
    )
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    current_user: CurrentUser,
    svc: UserServiceDep,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
):
    """List users (admin)."""
    users = await svc.list_users(current_user, skip=skip, limit=limit)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
@limit_writes
async def update_me(
    request: Request,
    body: UserUpdateMe,
    current_user: CurrentUser,
    svc: UserServiceDep,
):
    """Update the caller's name, phone or password."""
    user = await svc.update_me(
        current_user, name=body.name, phone=body.phone, password=body.password
    )
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, current_user: CurrentUser, svc: UserServiceDep):
    return UserResponse.model_validate(await svc.get_user(user_id))
