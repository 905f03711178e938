"""In-memory document client with the FirestoreRESTClient API.

Used for development and tests (DATABASE_BACKEND=memory) so the same
Firestore repositories run without a Google project. Writes happen under
one asyncio.Lock: conditional sets compare the stored update time, and a
batch applies all of its writes or none.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import operator
from collections.abc import AsyncIterator, Callable
from typing import Any

from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError

_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
    "array-contains": lambda a, b: isinstance(a, list) and b in a,
}


class MemoryDocumentSnapshot:
    def __init__(self, id_: str, data: dict, update_time: str | None = None):
        self.id = id_
        self._data = data
        self.update_time = update_time

    def to_dict(self) -> dict:
        return self._data


class MemoryDocumentReference:
    def __init__(self, client: InMemoryDocumentClient, collection: str, document_id: str):
        self._client = client
        self._collection = collection
        self.id = document_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    async def get(self) -> MemoryDocumentSnapshot | None:
        async with self._client._lock:
            return self._client._snapshot(self._collection, self.id)

    async def set(self, data: dict[str, Any], *, update_time: str | None = None) -> None:
        async with self._client._lock:
            self._client._check_update_time(self._collection, self.id, update_time)
            self._client._write(self._collection, self.id, data)

    async def update(self, data: dict[str, Any]) -> None:
        async with self._client._lock:
            stored = self._client._docs(self._collection).get(self.id)
            if stored is None:
                raise PreconditionFailedError(self.path)
            self._client._write(self._collection, self.id, {**stored[0], **data})

    async def delete(self) -> None:
        async with self._client._lock:
            self._client._docs(self._collection).pop(self.id, None)


class _MemoryQuery:
    def __init__(self, client: InMemoryDocumentClient, collection: str):
        self._client = client
        self._collection = collection
        self._filters: list[tuple[str, Callable[[Any, Any], bool], Any]] = []
        self._order: tuple[str, bool] | None = None
        self._offset = 0
        self._limit = 0

    def where(self, field: str, op: str, value: Any) -> _MemoryQuery:
        if op not in _OPS:
            raise ValueError(f"Unsupported operator: {op!r}")
        self._filters.append((field, _OPS[op], value))
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> _MemoryQuery:
        self._order = (field, direction == "DESCENDING")
        return self

    def offset(self, n: int) -> _MemoryQuery:
        self._offset = n
        return self

    def limit(self, n: int) -> _MemoryQuery:
        self._limit = n
        return self

    async def stream(self) -> AsyncIterator[MemoryDocumentSnapshot]:
        async with self._client._lock:
            snapshots = [
                self._client._snapshot(self._collection, doc_id)
                for doc_id in list(self._client._docs(self._collection))
            ]
        matched = [
            s
            for s in snapshots
            if s is not None
            and all(
                field in s.to_dict() and op(s.to_dict()[field], value)
                for field, op, value in self._filters
            )
        ]
        if self._order is not None:
            field, reverse = self._order
            matched = [s for s in matched if s.to_dict().get(field) is not None]
            matched.sort(key=lambda s: s.to_dict()[field], reverse=reverse)
        matched = matched[self._offset :]
        if self._limit:
            matched = matched[: self._limit]
        for snapshot in matched:
            yield snapshot


class MemoryCollectionReference:
    def __init__(self, client: InMemoryDocumentClient, name: str):
        self._client = client
        self._name = name

    def document(self, document_id: str) -> MemoryDocumentReference:
        return MemoryDocumentReference(self._client, self._name, document_id)

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        async with self._client._lock:
            if document_id in self._client._docs(self._name):
                raise DocumentExistsError(f"{self._name}/{document_id}")
            self._client._write(self._name, document_id, data)

    def where(self, field: str, op: str, value: Any) -> _MemoryQuery:
        return _MemoryQuery(self._client, self._name).where(field, op, value)

    async def stream(self) -> AsyncIterator[MemoryDocumentSnapshot]:
        async for snapshot in _MemoryQuery(self._client, self._name).stream():
            yield snapshot


class MemoryWriteBatch:
    def __init__(self, client: InMemoryDocumentClient):
        self._client = client
        self._writes: list[tuple[MemoryDocumentReference, dict[str, Any], str | None, bool]] = []

    def set(
        self,
        ref: MemoryDocumentReference,
        data: dict[str, Any],
        *,
        update_time: str | None = None,
    ) -> MemoryWriteBatch:
        self._writes.append((ref, data, update_time, False))
        return self

    def update(self, ref: MemoryDocumentReference, data: dict[str, Any]) -> MemoryWriteBatch:
        self._writes.append((ref, data, None, True))
        return self

    async def commit(self) -> None:
        async with self._client._lock:
            # Check every precondition before applying anything.
            for ref, _, update_time, merge in self._writes:
                self._client._check_update_time(ref._collection, ref.id, update_time)
                if merge and ref.id not in self._client._docs(ref._collection):
                    raise PreconditionFailedError(ref.path)
            for ref, data, _, merge in self._writes:
                if merge:
                    stored = self._client._docs(ref._collection)[ref.id][0]
                    data = {**stored, **data}
                self._client._write(ref._collection, ref.id, data)
        self._writes = []


class InMemoryDocumentClient:
    """Process-local document store; same surface as FirestoreRESTClient."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, tuple[dict[str, Any], str]]] = {}
        self._lock = asyncio.Lock()
        self._sequence = itertools.count(1)

    def collection(self, collection_id: str) -> MemoryCollectionReference:
        return MemoryCollectionReference(self, collection_id)

    def batch(self) -> MemoryWriteBatch:
        return MemoryWriteBatch(self)

    async def aclose(self) -> None:
        self._collections.clear()

    # Callers hold self._lock.

    def _docs(self, collection: str) -> dict[str, tuple[dict[str, Any], str]]:
        return self._collections.setdefault(collection, {})

    def _snapshot(self, collection: str, document_id: str) -> MemoryDocumentSnapshot | None:
        stored = self._docs(collection).get(document_id)
        if stored is None:
            return None
        data, update_time = stored
        return MemoryDocumentSnapshot(document_id, copy.deepcopy(data), update_time)

    def _check_update_time(
        self, collection: str, document_id: str, update_time: str | None
    ) -> None:
        if update_time is None:
            return
        stored = self._docs(collection).get(document_id)
        if stored is None or stored[1] != update_time:
            raise PreconditionFailedError(f"{collection}/{document_id}")

    def _write(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        update_time = f"{next(self._sequence):012d}"
        self._docs(collection)[document_id] = (copy.deepcopy(data), update_time)
