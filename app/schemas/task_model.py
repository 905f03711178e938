"""Task model API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.enums import TaskPriority
from app.schemas.workflow import StepSettingsSchema


class TaskModelSettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    default_priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: float = Field(default=8.0, ge=0.5)
    category: str | None = Field(default=None, max_length=50)
    tags: list[str] = Field(default_factory=list)


class TaskModelCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    workflow_id: str = Field(..., min_length=1)
    step_ids: list[str] = Field(..., min_length=1, description="Workflow step ids to include")
    default_assignees: dict[str, str] = Field(
        default_factory=dict, description="step id -> user id"
    )
    settings: TaskModelSettingsSchema = Field(default_factory=TaskModelSettingsSchema)


class DefaultAssigneesRequest(BaseModel):
    assignees: dict[str, str] = Field(..., description="step id -> user id")


class SelectedStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_id: str
    step_order: int
    step_name: str
    step_color: str
    step_icon: str
    step_settings: StepSettingsSchema


class DefaultAssigneeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_id: str
    step_order: int
    step_name: str
    user_id: str


class TaskModelStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_tasks: int
    completed_tasks: int
    last_used: datetime | None


class TaskModelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    workflow_id: str
    selected_steps: list[SelectedStepResponse]
    default_assignees: list[DefaultAssigneeResponse]
    settings: TaskModelSettingsSchema
    is_active: bool
    stats: TaskModelStatsResponse
    completion_rate: int
    created_by: str | None
    created_at: datetime | None
    updated_at: datetime | None
