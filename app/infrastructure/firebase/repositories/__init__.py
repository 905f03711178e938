"""Document-store repositories (run on Firestore REST or the in-memory client)."""

from app.infrastructure.firebase.repositories.client_repo_firestore import (
    FirestoreClientRepository,
)
from app.infrastructure.firebase.repositories.task_model_repo_firestore import (
    FirestoreTaskModelRepository,
)
from app.infrastructure.firebase.repositories.task_repo_firestore import (
    FirestoreTaskRepository,
)
from app.infrastructure.firebase.repositories.user_repo_firestore import (
    FirestoreUserRepository,
)
from app.infrastructure.firebase.repositories.workflow_repo_firestore import (
    FirestoreWorkflowRepository,
)

__all__ = [
    "FirestoreClientRepository",
    "FirestoreTaskModelRepository",
    "FirestoreTaskRepository",
    "FirestoreUserRepository",
    "FirestoreWorkflowRepository",
]
