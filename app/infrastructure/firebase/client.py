"""Document client setup (Firestore REST or in-memory).

Initialized at app startup. With DATABASE_BACKEND=firestore the client
uses either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file path) and talks to the Firestore REST
API with google-auth. With DATABASE_BACKEND=memory an
InMemoryDocumentClient with the same API is used.
"""

import json
import logging
from pathlib import Path
from typing import Union

from app.core.config import Settings, get_settings
from app.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)
from app.infrastructure.memory.document_client import InMemoryDocumentClient

logger = logging.getLogger(__name__)

DocumentClient = Union[FirestoreRESTClient, InMemoryDocumentClient]

_document_client: DocumentClient | None = None


def _load_key_dict(settings: Settings) -> dict | None:
    """Return service account dict from env key or file path."""
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def init_document_client(settings: Settings | None = None) -> DocumentClient:
    """Create the process-wide document client for the configured backend.

    Idempotent if already initialized.

    Raises:
        RuntimeError: If the firestore backend is selected but credentials
            cannot be loaded.
    """
    global _document_client
    if _document_client is not None:
        return _document_client
    settings = settings or get_settings()
    if settings.database_backend == "memory":
        _document_client = InMemoryDocumentClient()
        logger.info("Using in-memory document store")
        return _document_client

    key_dict = _load_key_dict(settings)
    if not key_dict:
        raise RuntimeError("Firebase service account credentials not found")
    project_id = key_dict.get("project_id")
    if not project_id:
        raise RuntimeError("Firebase service account JSON missing 'project_id'")
    _document_client = FirestoreRESTClient(project_id, _get_credentials(key_dict))
    logger.info("Firestore client initialized for project %s", project_id)
    return _document_client


def get_document_client() -> DocumentClient | None:
    """Return the document client, or None before init_document_client()."""
    return _document_client


async def close_document_client() -> None:
    """Close the client's connections. Call from app shutdown."""
    global _document_client
    if _document_client is not None:
        await _document_client.aclose()
        _document_client = None
        logger.info("Document client closed")
