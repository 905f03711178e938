"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for repositories, application services and the
authenticated principal. Repositories are built on the document client that
lifespan stores in app.state (Firestore REST or in-memory, per
DATABASE_BACKEND); routes depend only on these dependencies, never on infra
directly.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.interfaces.services import ITaskNotifier
from app.application.services.authorization_service import TaskAuthorizationService
from app.application.services.user_service import UserService
from app.application.use_cases.clients import ClientService
from app.application.use_cases.task_models import TaskModelService
from app.application.use_cases.tasks import TaskService
from app.application.use_cases.workflows import WorkflowService
from app.domain.entities.client import ClientEntity
from app.domain.entities.user import UserEntity
from app.domain.exceptions import AuthenticationException
from app.infrastructure.firebase.client import DocumentClient
from app.infrastructure.firebase.repositories import (
    FirestoreClientRepository,
    FirestoreTaskModelRepository,
    FirestoreTaskRepository,
    FirestoreUserRepository,
    FirestoreWorkflowRepository,
)
from app.infrastructure.security.jwt import TokenClaims, verify_token
from app.infrastructure.security.password import BcryptPasswordHasher
from app.shared.context import set_current_actor
from app.shared.enums import ActorType

_http_bearer = HTTPBearer(auto_error=False)
_password_hasher = BcryptPasswordHasher()
_authz = TaskAuthorizationService()


# ---- Infrastructure ----


def get_document_client(request: Request) -> DocumentClient:
    """Document client created in lifespan (composition root)."""
    return request.app.state.document_client


def get_task_notifier(request: Request) -> ITaskNotifier:
    return request.app.state.task_notifier


def get_password_hasher() -> BcryptPasswordHasher:
    return _password_hasher


def get_authorization_service() -> TaskAuthorizationService:
    return _authz


DocumentClientDep = Annotated[DocumentClient, Depends(get_document_client)]


# ---- Repositories ----


def get_task_repo(client: DocumentClientDep) -> FirestoreTaskRepository:
    return FirestoreTaskRepository(client)


def get_workflow_repo(client: DocumentClientDep) -> FirestoreWorkflowRepository:
    return FirestoreWorkflowRepository(client)


def get_task_model_repo(client: DocumentClientDep) -> FirestoreTaskModelRepository:
    return FirestoreTaskModelRepository(client)


def get_client_repo(client: DocumentClientDep) -> FirestoreClientRepository:
    return FirestoreClientRepository(client)


def get_user_repo(client: DocumentClientDep) -> FirestoreUserRepository:
    return FirestoreUserRepository(client)


# ---- Application services ----


def get_task_service(
    task_repo: Annotated[FirestoreTaskRepository, Depends(get_task_repo)],
    task_model_repo: Annotated[FirestoreTaskModelRepository, Depends(get_task_model_repo)],
    workflow_repo: Annotated[FirestoreWorkflowRepository, Depends(get_workflow_repo)],
    client_repo: Annotated[FirestoreClientRepository, Depends(get_client_repo)],
    user_repo: Annotated[FirestoreUserRepository, Depends(get_user_repo)],
    authz: Annotated[TaskAuthorizationService, Depends(get_authorization_service)],
    notifier: Annotated[ITaskNotifier, Depends(get_task_notifier)],
) -> TaskService:
    return TaskService(
        task_repo=task_repo,
        task_model_repo=task_model_repo,
        workflow_repo=workflow_repo,
        client_repo=client_repo,
        user_repo=user_repo,
        authz=authz,
        notifier=notifier,
    )


def get_workflow_service(
    workflow_repo: Annotated[FirestoreWorkflowRepository, Depends(get_workflow_repo)],
    authz: Annotated[TaskAuthorizationService, Depends(get_authorization_service)],
) -> WorkflowService:
    return WorkflowService(workflow_repo, authz)


def get_task_model_service(
    task_model_repo: Annotated[FirestoreTaskModelRepository, Depends(get_task_model_repo)],
    workflow_repo: Annotated[FirestoreWorkflowRepository, Depends(get_workflow_repo)],
    user_repo: Annotated[FirestoreUserRepository, Depends(get_user_repo)],
) -> TaskModelService:
    return TaskModelService(task_model_repo, workflow_repo, user_repo)


def get_client_service(
    client_repo: Annotated[FirestoreClientRepository, Depends(get_client_repo)],
    hasher: Annotated[BcryptPasswordHasher, Depends(get_password_hasher)],
    authz: Annotated[TaskAuthorizationService, Depends(get_authorization_service)],
) -> ClientService:
    return ClientService(client_repo, hasher, authz)


def get_user_service(
    user_repo: Annotated[FirestoreUserRepository, Depends(get_user_repo)],
    hasher: Annotated[BcryptPasswordHasher, Depends(get_password_hasher)],
    authz: Annotated[TaskAuthorizationService, Depends(get_authorization_service)],
) -> UserService:
    return UserService(user_repo, hasher, authz)


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
WorkflowServiceDep = Annotated[WorkflowService, Depends(get_workflow_service)]
TaskModelServiceDep = Annotated[TaskModelService, Depends(get_task_model_service)]
ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]


# ---- Authentication ----


def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> TokenClaims:
    """Verified bearer token claims; 401 if missing or invalid."""
    if credentials is None:
        raise AuthenticationException("Not authenticated")
    try:
        return verify_token(credentials.credentials)
    except ValueError as e:
        raise AuthenticationException("Invalid or expired token") from e


async def get_current_user(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    user_repo: Annotated[FirestoreUserRepository, Depends(get_user_repo)],
) -> UserEntity:
    """Return the staff user for a user token; 401 for client tokens or inactive users."""
    if claims.kind != ActorType.USER.value:
        raise AuthenticationException("A user token is required")
    user = await user_repo.get_by_id(claims.subject)
    if user is None or not user.is_active:
        raise AuthenticationException("User not found or inactive")
    set_current_actor(user.id, ActorType.USER)
    return user


async def get_current_client(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    client_repo: Annotated[FirestoreClientRepository, Depends(get_client_repo)],
) -> ClientEntity:
    """Return the client account for a portal token; 401 for user tokens or inactive clients."""
    if claims.kind != ActorType.CLIENT.value:
        raise AuthenticationException("A client portal token is required")
    client = await client_repo.get_by_id(claims.subject)
    if client is None or not client.is_active:
        raise AuthenticationException("Client not found or inactive")
    set_current_actor(client.id, ActorType.CLIENT)
    return client


CurrentUser = Annotated[UserEntity, Depends(get_current_user)]
CurrentClient = Annotated[ClientEntity, Depends(get_current_client)]
