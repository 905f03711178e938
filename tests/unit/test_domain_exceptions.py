"""Tests for domain exceptions (error_code, message, details)."""

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
from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError


def test_base_exception_default_error_code() -> None:
    """Base TaskFlowException uses class name as error_code when not provided."""
    exc = TaskFlowException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "TaskFlowException"
    assert exc.details == {}
    assert exc.to_dict() == {
        "error": "TaskFlowException",
        "message": "Something failed",
        "details": {},
    }


def test_validation_exception() -> None:
    exc = ValidationException("Invalid format", field="email")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "email"}
    assert ValidationException("Invalid").details == {}


def test_invalid_transition_exception_details() -> None:
    exc = InvalidTransitionException("Task already at final step", task_id="t1", current_step=5)
    assert exc.error_code == "INVALID_TRANSITION"
    assert exc.details == {"task_id": "t1", "current_step": 5}


def test_authentication_exception() -> None:
    exc = AuthenticationException()
    assert exc.message == "Authentication failed"
    assert exc.error_code == "AUTHENTICATION_ERROR"


def test_authorization_exception_builds_message() -> None:
    exc = AuthorizationException(resource="task", action="advance")
    assert exc.message == "Permission denied: advance on task"
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.details == {"resource": "task", "action": "advance"}


def test_authorization_exception_keeps_custom_message() -> None:
    exc = AuthorizationException(resource="task", action="comment", message="Comments disabled")
    assert exc.message == "Comments disabled"


def test_resource_not_found() -> None:
    exc = ResourceNotFoundException("task", "t1")
    assert exc.message == "task not found: t1"
    assert exc.details == {"resource_type": "task", "resource_id": "t1"}


def test_duplicate_and_version_conflict() -> None:
    assert DuplicateResourceException("user", "email").error_code == "DUPLICATE_RESOURCE"
    exc = VersionConflictException("task", "t1")
    assert exc.error_code == "VERSION_CONFLICT"
    assert "retry" in exc.message


def test_document_store_errors_are_app_errors() -> None:
    assert isinstance(DocumentExistsError("tasks/t1"), TaskFlowException)
    assert PreconditionFailedError("tasks/t1").details == {"path": "tasks/t1"}
