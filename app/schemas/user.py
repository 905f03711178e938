"""User API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.domain.enums import AccountStatus, UserRole


class UserCreateRequest(BaseModel):
    """Request body for creating a user (admin)."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    position: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.OPERATIONAL
    phone: str | None = Field(default=None, max_length=30)


class UserUpdateMe(BaseModel):
    """Request body for PATCH /users/me."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    password: str | None = Field(default=None, min_length=6)


class UserResponse(BaseModel):
    """User response; the password hash is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    initials: str
    position: str
    phone: str | None
    role: UserRole
    status: AccountStatus
    profile_image: str | None
    last_login: datetime | None
    created_at: datetime | None
