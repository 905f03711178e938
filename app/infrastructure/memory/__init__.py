"""In-memory document store (development and tests)."""

from app.infrastructure.memory.document_client import InMemoryDocumentClient

__all__ = ["InMemoryDocumentClient"]
