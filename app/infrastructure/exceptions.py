"""Infrastructure exceptions for document store operations.

Extend TaskFlowException so anything that escapes a repository still maps
to an HTTP response consistently. Repositories translate the expected
ones (exists, precondition) into domain exceptions.
"""

from app.domain.exceptions import TaskFlowException


class DocumentStoreException(TaskFlowException):
    """Base exception for document store operations."""


class DocumentExistsError(DocumentStoreException):
    """A create targeted a document id that already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Document already exists: {path}",
            "DOCUMENT_EXISTS",
            {"path": path},
        )


class PreconditionFailedError(DocumentStoreException):
    """A conditional write found the document changed (or missing) since it was read."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Document changed since it was read: {path}",
            "PRECONDITION_FAILED",
            {"path": path},
        )
