"""Client API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.domain.enums import AccountStatus


class ClientCreateRequest(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=100)
    responsible_name: str = Field(..., min_length=1, max_length=100)
    responsible_email: EmailStr
    phone: str = Field(..., min_length=1, max_length=30)
    access_password: str = Field(..., min_length=6, description="Portal password (min 6 characters)")
    logo: str | None = Field(default=None, max_length=2048)


class ClientResponse(BaseModel):
    """Client record; the access password hash is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_name: str
    company_initials: str
    responsible_name: str
    responsible_email: str
    phone: str
    access_id: str
    status: AccountStatus
    logo: str | None
    last_access: datetime | None
    access_count: int
    created_at: datetime | None


class PortalClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_name: str
    responsible_name: str
    logo: str | None
