"""Workflow API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.value_objects.core import DEFAULT_STEP_COLOR, HexColor


class StepSettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allow_client_access: bool = False
    requires_approval: bool = False
    allow_multiple_files: bool = True
    is_client_approval_step: bool = False


class WorkflowStepCreate(BaseModel):
    """A step in a create request or POST /workflows/{id}/steps; order is assigned by position."""

    name: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    color: str = DEFAULT_STEP_COLOR
    icon: str = Field(default="circle", max_length=50)
    settings: StepSettingsSchema = Field(default_factory=StepSettingsSchema)

    @field_validator("color")
    @classmethod
    def valid_color(cls, v: str) -> str:
        return HexColor(v).value


class WorkflowCreateRequest(BaseModel):
    """Request body for creating a workflow."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    steps: list[WorkflowStepCreate] = Field(..., min_length=1)
    is_default: bool = False


class WorkflowUpdate(BaseModel):
    """Request body for updating a workflow (partial)."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None


class StepReorderRequest(BaseModel):
    step_ids: list[str] = Field(..., min_length=1, description="All step ids in the new order")


class WorkflowStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    order: int
    description: str | None
    color: str
    icon: str
    settings: StepSettingsSchema


class WorkflowResponse(BaseModel):
    """Workflow response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    steps: list[WorkflowStepResponse]
    is_active: bool
    is_default: bool
    created_by: str | None
    created_at: datetime | None
    updated_at: datetime | None
