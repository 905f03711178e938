"""Task authorization: who may act on a task.

Rules:
    advance / revert / delivery: the current step's assignee, or an admin
    comment / view:              any assigned user, or an admin
    administrative changes:      admin only
    client portal:               the client owning the task
"""

from __future__ import annotations

from app.domain.entities.client import ClientEntity
from app.domain.entities.task import TaskEntity
from app.domain.entities.user import UserEntity
from app.domain.exceptions import AuthorizationException, ResourceNotFoundException


class TaskAuthorizationService:
    """Centralized permission checks for task operations (raise AuthorizationException)."""

    def can_view(self, user: UserEntity, task: TaskEntity) -> bool:
        return user.is_admin or task.is_assigned(user.id)

    def can_progress(self, user: UserEntity, task: TaskEntity) -> bool:
        """Return True if user may advance, revert or deliver on the current step."""
        return user.is_admin or task.current_assignee == user.id

    def require_view(self, user: UserEntity, task: TaskEntity) -> None:
        if not self.can_view(user, task):
            raise AuthorizationException(resource="task", action="read")

    def require_progress(self, user: UserEntity, task: TaskEntity, action: str) -> None:
        if not self.can_progress(user, task):
            raise AuthorizationException(
                resource="task",
                action=action,
                message="Only the current step's assignee or an admin can do this",
            )

    def require_comment(self, user: UserEntity, task: TaskEntity) -> None:
        if not self.can_view(user, task):
            raise AuthorizationException(
                resource="task",
                action="comment",
                message="Only users assigned to the task or an admin can comment",
            )

    def require_admin(self, user: UserEntity, resource: str, action: str) -> None:
        if not user.is_admin:
            raise AuthorizationException(resource=resource, action=action)

    def require_client_owner(self, client: ClientEntity, task: TaskEntity) -> None:
        """Clients never learn that another client's task exists."""
        if task.client_id != client.id:
            raise ResourceNotFoundException("task", task.id)
