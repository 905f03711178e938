"""Errors raised by the domain and application layers.

Each carries a stable error_code plus a details dict. app.core.exception_handlers
turns them into {"error", "message", "details"} bodies and picks the status.
"""

from typing import Any


class TaskFlowException(Exception):
    """Base for every taskflow error; error_code defaults to the class name."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(TaskFlowException):
    """Bad input the schemas cannot catch, e.g. a reorder that omits steps."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", {"field": field} if field else {})


class InvalidTransitionException(TaskFlowException):
    """Raised when an operation would break a task state invariant.

    Examples: advancing past the final step, reverting before the first
    step, resuming a task that is not on hold.
    """

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        current_step: int | None = None,
        status: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if task_id is not None:
            details["task_id"] = task_id
        if current_step is not None:
            details["current_step"] = current_step
        if status is not None:
            details["status"] = status
        super().__init__(message, "INVALID_TRANSITION", details)


class AuthenticationException(TaskFlowException):
    """Bad credentials, or a missing, expired or wrong-kind token."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(TaskFlowException):
    """Authenticated, but not allowed: non-admin writes, advancing a task assigned to someone else."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        if resource and action and message == "Permission denied":
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(TaskFlowException):
    """Unknown id, or an id the caller may not see (another client's task)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class DuplicateResourceException(TaskFlowException):
    """Raised when creating a resource whose unique key already exists (e.g. user email)."""

    def __init__(self, resource_type: str, field: str) -> None:
        super().__init__(
            f"{resource_type} with this {field} already exists",
            "DUPLICATE_RESOURCE",
            {"resource_type": resource_type, "field": field},
        )


class VersionConflictException(TaskFlowException):
    """Raised when a concurrent request won the document write (optimistic lock)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} was updated by another request; retry.",
            "VERSION_CONFLICT",
            {"resource_type": resource_type, "resource_id": resource_id},
        )
