"""Domain layer: entities, value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import (
    ClientEntity,
    TaskEntity,
    TaskModelEntity,
    UserEntity,
    WorkflowEntity,
)
from app.domain.enums import (
    AccountStatus,
    ApprovalDecision,
    ClientApprovalStatus,
    DeliveryStatus,
    HistoryAction,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    DuplicateResourceException,
    InvalidTransitionException,
    ResourceNotFoundException,
    TaskFlowException,
    ValidationException,
    VersionConflictException,
)
from app.domain.value_objects import Attachment, EmailAddress, HexColor

__all__ = [
    # Entities
    "ClientEntity",
    "TaskEntity",
    "TaskModelEntity",
    "UserEntity",
    "WorkflowEntity",
    # Enums
    "AccountStatus",
    "ApprovalDecision",
    "ClientApprovalStatus",
    "DeliveryStatus",
    "HistoryAction",
    "TaskPriority",
    "TaskStatus",
    "UserRole",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "DuplicateResourceException",
    "InvalidTransitionException",
    "ResourceNotFoundException",
    "TaskFlowException",
    "ValidationException",
    "VersionConflictException",
    # Value objects
    "Attachment",
    "EmailAddress",
    "HexColor",
]
