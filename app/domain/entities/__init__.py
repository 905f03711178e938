"""Domain entities and aggregates.

Pure domain models; no persistence concerns.
"""

from app.domain.entities.client import ClientEntity
from app.domain.entities.task import (
    ClientApproval,
    Comment,
    Delivery,
    HistoryEntry,
    StepAssignment,
    TaskEntity,
    TaskSettings,
)
from app.domain.entities.task_model import (
    DefaultAssignee,
    SelectedStep,
    TaskModelEntity,
    TaskModelSettings,
    TaskModelStats,
)
from app.domain.entities.user import UserEntity
from app.domain.entities.workflow import StepSettings, WorkflowEntity, WorkflowStep

__all__ = [
    "ClientApproval",
    "ClientEntity",
    "Comment",
    "DefaultAssignee",
    "Delivery",
    "HistoryEntry",
    "SelectedStep",
    "StepAssignment",
    "StepSettings",
    "TaskEntity",
    "TaskModelEntity",
    "TaskModelSettings",
    "TaskModelStats",
    "TaskSettings",
    "UserEntity",
    "WorkflowEntity",
    "WorkflowStep",
]
