"""Auth API: staff login. Client portal access lives in the portal router."""

from fastapi import APIRouter, Request

from app.api.v1.dependencies import CurrentUser, UserServiceDep
from app.core.config import get_settings
from app.core.limiter import limit_auth
from app.infrastructure.security.jwt import create_user_token
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.user import UserResponse

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
@limit_auth
async def login(request: Request, body: LoginRequest, svc: UserServiceDep):
    """Authenticate with email and password; return JWT."""
    user = await svc.authenticate(body.email, body.password)
    return TokenResponse(
        access_token=create_user_token(user.id, user.role.value),
        expires_in=get_settings().access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUser):
    return UserResponse.model_validate(current_user)
