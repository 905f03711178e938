"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure or app.api.
"""

from app.application.interfaces.repositories import (
    IClientRepository,
    ITaskModelRepository,
    ITaskRepository,
    IUserRepository,
    IWorkflowRepository,
)
from app.application.interfaces.services import (
    IPasswordHasher,
    ITaskNotifier,
    ResolvedStep,
    StepResolver,
)

__all__ = [
    "IClientRepository",
    "IPasswordHasher",
    "ITaskModelRepository",
    "ITaskNotifier",
    "ITaskRepository",
    "IUserRepository",
    "IWorkflowRepository",
    "ResolvedStep",
    "StepResolver",
]
