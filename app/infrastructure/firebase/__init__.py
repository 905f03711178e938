"""Document store integration (Firestore REST API, or in-memory for dev/tests)."""

from app.infrastructure.firebase.client import (
    DocumentClient,
    close_document_client,
    get_document_client,
    init_document_client,
)

__all__ = [
    "DocumentClient",
    "close_document_client",
    "get_document_client",
    "init_document_client",
]
