"""Async Firestore REST v1 client used by the firestore document store.

Service account tokens come from google-auth and requests go through
httpx.AsyncClient, so there is no grpcio or firebase-admin dependency.

Optimistic writes: DocumentReference.set(..., update_time=...) sends
currentDocument.updateTime, and Firestore refuses the write if the task
changed since it was read. WriteBatch.commit() applies its writes through a
single documents:commit call, so they land together or not at all.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
    encode_fields,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"
_PAGE_SIZE = 300


def _get_credentials(key_dict: dict):
    """Service account credentials scoped to Datastore/Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def _error_status(resp: httpx.Response) -> str | None:
    """Return the google.rpc status name from an error body (e.g. FAILED_PRECONDITION)."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, list):
        body = body[0] if body else {}
    return (body.get("error") or {}).get("status")


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
    params: list[tuple[str, str]] | None = None,
    conditional: bool = False,
) -> Any:
    """Perform an HTTP request to the Firestore REST API. 404 returns None.

    Raises DocumentExistsError on ALREADY_EXISTS and, for conditional
    writes, PreconditionFailedError on FAILED_PRECONDITION.
    """
    if method not in ("GET", "PATCH", "POST", "DELETE"):
        raise ValueError(f"Unsupported method: {method!r}")
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    resp = await client.request(method, url, headers=headers, json=body, params=params)
    if resp.status_code == 404 and not conditional:
        return None
    if resp.status_code >= 400:
        status = _error_status(resp)
        if resp.status_code == 409 and status in (None, "ALREADY_EXISTS"):
            raise DocumentExistsError(url)
        if conditional and status in ("FAILED_PRECONDITION", "NOT_FOUND", "ABORTED"):
            raise PreconditionFailedError(url)
        resp.raise_for_status()
    if method == "DELETE":
        return {}
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


def _doc_id(name: str) -> str:
    return name.split("/")[-1] if name else ""


class DocumentSnapshot:
    """Snapshot of a document (id + data + server update time)."""

    def __init__(self, id_: str, data: dict, update_time: str | None = None):
        self.id = id_
        self._data = data
        self.update_time = update_time

    def to_dict(self) -> dict:
        return self._data


class DocumentReference:
    """One document path, e.g. tasks/{id}."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return _doc_id(self._path)

    @property
    def path(self) -> str:
        return self._path

    async def get(self) -> DocumentSnapshot | None:
        """Snapshot of the document, or None when it does not exist."""
        out = await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            access_token=await self._client.get_token(),
        )
        if not out:
            return None
        return DocumentSnapshot(self.id, decode_document(out), out.get("updateTime"))

    async def set(self, data: dict[str, Any], *, update_time: str | None = None) -> None:
        """Create or overwrite the document.

        With update_time, the write only succeeds if the stored document
        still has that update time; else PreconditionFailedError.
        """
        params = [("currentDocument.updateTime", update_time)] if update_time else None
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            method="PATCH",
            body=encode_document(data),
            access_token=await self._client.get_token(),
            params=params,
            conditional=update_time is not None,
        )

    async def update(self, data: dict[str, Any]) -> None:
        """Merge the given top-level fields into an existing document."""
        params = [("updateMask.fieldPaths", key) for key in data]
        params.append(("currentDocument.exists", "true"))
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            method="PATCH",
            body=encode_document(data),
            access_token=await self._client.get_token(),
            params=params,
            conditional=True,
        )

    async def delete(self) -> None:
        """Delete the document; a missing document is not an error."""
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            method="DELETE",
            access_token=await self._client.get_token(),
        )


_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
    "array_contains": "ARRAY_CONTAINS",
    "array-contains": "ARRAY_CONTAINS",
}


class _Query:
    """Fluent query builder; runs via runQuery (filters AND-ed, order/offset/limit on server)."""

    def __init__(self, client: FirestoreRESTClient, parent: str, collection_id: str):
        self._client = client
        self._parent = parent
        self._collection_id = collection_id
        self._filters: list[tuple[str, str, Any]] = []
        self._order_by_field: str | None = None
        self._order_direction: str = "ASCENDING"
        self._offset: int = 0
        self._limit: int = 0

    def where(self, field: str, op: str, value: Any) -> _Query:
        self._filters.append((field, _OP_MAP.get(op, op), value))
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> _Query:
        self._order_by_field = field
        self._order_direction = direction
        return self

    def offset(self, n: int) -> _Query:
        self._offset = n
        return self

    def limit(self, n: int) -> _Query:
        self._limit = n
        return self

    def _where_clause(self) -> dict | None:
        clauses = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": op,
                    "value": _encode_value(value),
                }
            }
            for field, op, value in self._filters
        ]
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"compositeFilter": {"op": "AND", "filters": clauses}}

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Run the structured query and yield matching snapshots."""
        structured: dict[str, Any] = {"from": [{"collectionId": self._collection_id}]}
        where = self._where_clause()
        if where is not None:
            structured["where"] = where
        if self._order_by_field is not None:
            structured["orderBy"] = [
                {
                    "field": {"fieldPath": self._order_by_field},
                    "direction": self._order_direction,
                }
            ]
        if self._offset:
            structured["offset"] = self._offset
        if self._limit:
            structured["limit"] = self._limit

        resp = await _request_async(
            self._client._http,
            f"{_BASE}/{self._parent}:runQuery",
            method="POST",
            body={"structuredQuery": structured},
            access_token=await self._client.get_token(),
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" not in item:
                continue
            doc = item["document"]
            yield DocumentSnapshot(
                _doc_id(doc.get("name", "")), decode_document(doc), doc.get("updateTime")
            )


class CollectionReference:
    """One collection path, e.g. workflows."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path.rstrip("/")

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document with the given ID (DocumentExistsError if it exists)."""
        url = f"{_BASE}/{self._path}?documentId={quote(document_id, safe='')}"
        await _request_async(
            self._client._http,
            url,
            method="POST",
            body=encode_document(data),
            access_token=await self._client.get_token(),
        )

    def where(self, field: str, op: str, value: Any) -> _Query:
        """Start a query with a filter. Chain .where(), .order_by(), .offset(), .limit(), then .stream()."""
        parent, collection_id = self._path.rsplit("/", 1)
        return _Query(self._client, parent, collection_id).where(field, op, value)

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """List all documents in the collection, following page tokens."""
        page_token: str | None = None
        while True:
            params = [("pageSize", str(_PAGE_SIZE))]
            if page_token:
                params.append(("pageToken", page_token))
            out = await _request_async(
                self._client._http,
                f"{_BASE}/{self._path}",
                access_token=await self._client.get_token(),
                params=params,
            )
            if not out:
                return
            for doc in out.get("documents", []):
                yield DocumentSnapshot(
                    _doc_id(doc.get("name", "")), decode_document(doc), doc.get("updateTime")
                )
            page_token = out.get("nextPageToken")
            if not page_token:
                return


class WriteBatch:
    """Writes committed atomically in one documents:commit call (all or nothing)."""

    def __init__(self, client: FirestoreRESTClient):
        self._client = client
        self._writes: list[dict[str, Any]] = []

    def set(
        self,
        ref: DocumentReference,
        data: dict[str, Any],
        *,
        update_time: str | None = None,
    ) -> WriteBatch:
        write: dict[str, Any] = {"update": {"name": ref.path, "fields": encode_fields(data)}}
        if update_time:
            write["currentDocument"] = {"updateTime": update_time}
        self._writes.append(write)
        return self

    def update(self, ref: DocumentReference, data: dict[str, Any]) -> WriteBatch:
        self._writes.append(
            {
                "update": {"name": ref.path, "fields": encode_fields(data)},
                "updateMask": {"fieldPaths": list(data)},
                "currentDocument": {"exists": True},
            }
        )
        return self

    async def commit(self) -> None:
        if not self._writes:
            return
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._client._database}/documents:commit",
            method="POST",
            body={"writes": self._writes},
            access_token=await self._client.get_token(),
            conditional=True,
        )
        self._writes = []


class FirestoreRESTClient:
    """Entry point: project-scoped collections, batches and token refresh."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._database = f"projects/{project_id}/databases/(default)"
        self._prefix = f"{self._database}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=30.0)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the httpx client unless it was injected by the caller."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Current bearer token; google-auth refreshes synchronously, so run it in a thread."""
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")

    def batch(self) -> WriteBatch:
        return WriteBatch(self)
