"""Auth API schemas (staff login and client portal access)."""

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Request body for staff login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class PortalAccessRequest(BaseModel):
    """Request body for client portal access (access id from the client record)."""

    access_id: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Lifetime in seconds")
