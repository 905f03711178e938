"""FirestoreRESTClient against a mocked Firestore REST API (httpx.MockTransport)."""

import json
from datetime import UTC, datetime
from types import SimpleNamespace

import httpx
import pytest

from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.firebase._rest_client import FirestoreRESTClient
from app.infrastructure.firebase._rest_encoding import decode_document, encode_document

PREFIX = "projects/demo/databases/(default)/documents"


def _client(handler) -> FirestoreRESTClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirestoreRESTClient("demo", SimpleNamespace(valid=True, token="tok"), http_client=http)


def _error(status: int, name: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": status, "status": name}})


def test_encoding_keeps_types() -> None:
    stamp = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)
    data = {
        "title": "Post",
        "current_step": 2,
        "estimated_hours": 1.5,
        "is_default": True,
        "due_date": stamp,
        "tags": ["a", "b"],
        "settings": {"notify_on_update": False},
        "completed_at": None,
    }
    encoded = encode_document(data)
    assert encoded["fields"]["current_step"] == {"integerValue": "2"}
    assert encoded["fields"]["due_date"] == {"timestampValue": "2026-03-02T09:30:00.000000Z"}
    assert decode_document(encoded) == data


async def test_get_returns_snapshot_with_update_time() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.path.endswith("/documents/tasks/t1")
        return httpx.Response(
            200,
            json={
                "name": f"{PREFIX}/tasks/t1",
                "fields": {"title": {"stringValue": "Post"}},
                "updateTime": "2026-03-02T09:00:00.000001Z",
            },
        )

    snapshot = await _client(handler).collection("tasks").document("t1").get()
    assert snapshot.id == "t1"
    assert snapshot.to_dict() == {"title": "Post"}
    assert snapshot.update_time == "2026-03-02T09:00:00.000001Z"


async def test_get_missing_returns_none() -> None:
    client = _client(lambda request: _error(404, "NOT_FOUND"))
    assert await client.collection("tasks").document("t1").get() is None


async def test_create_conflict_raises_document_exists() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.params["documentId"] == "t1"
        return _error(409, "ALREADY_EXISTS")

    with pytest.raises(DocumentExistsError):
        await _client(handler).collection("tasks").create("t1", {"title": "Post"})


async def test_conditional_set_sends_precondition() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return _error(400, "FAILED_PRECONDITION")

    ref = _client(handler).collection("tasks").document("t1")
    with pytest.raises(PreconditionFailedError):
        await ref.set({"version": 2}, update_time="2026-03-02T09:00:00Z")
    assert seen["params"] == {"currentDocument.updateTime": "2026-03-02T09:00:00Z"}


async def test_query_builds_structured_query() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json=[
                {"readTime": "2026-03-02T09:00:00Z"},
                {
                    "document": {
                        "name": f"{PREFIX}/tasks/t1",
                        "fields": {"client_id": {"stringValue": "c1"}},
                        "updateTime": "2026-03-02T09:00:00Z",
                    }
                },
            ],
        )

    query = (
        _client(handler)
        .collection("tasks")
        .where("client_id", "==", "c1")
        .where("assigned_user_ids", "array-contains", "u1")
        .limit(5)
    )
    ids = [doc.id async for doc in query.stream()]
    assert ids == ["t1"]
    assert seen["url"].endswith(f"{PREFIX}:runQuery")
    structured = seen["body"]["structuredQuery"]
    assert structured["from"] == [{"collectionId": "tasks"}]
    assert structured["limit"] == 5
    filters = structured["where"]["compositeFilter"]["filters"]
    assert [f["fieldFilter"]["op"] for f in filters] == ["EQUAL", "ARRAY_CONTAINS"]


async def test_collection_stream_follows_page_tokens() -> None:
    pages = {
        None: {"documents": [{"name": f"{PREFIX}/tasks/a", "fields": {}}], "nextPageToken": "p2"},
        "p2": {"documents": [{"name": f"{PREFIX}/tasks/b", "fields": {}}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

    ids = [doc.id async for doc in _client(handler).collection("tasks").stream()]
    assert ids == ["a", "b"]


async def test_batch_commit_is_one_request() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/documents:commit")
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"writeResults": [{}, {}]})

    client = _client(handler)
    coll = client.collection("workflows")
    batch = client.batch()
    batch.set(coll.document("w1"), {"is_default": False}, update_time="T1")
    batch.set(coll.document("w2"), {"is_default": True}, update_time="T2")
    await batch.commit()
    assert len(bodies) == 1
    writes = bodies[0]["writes"]
    assert [w["currentDocument"]["updateTime"] for w in writes] == ["T1", "T2"]
    assert writes[1]["update"]["name"] == f"{PREFIX}/workflows/w2"


async def test_batch_conflict_raises_precondition_failed() -> None:
    client = _client(lambda request: _error(409, "ABORTED"))
    batch = client.batch()
    batch.set(client.collection("workflows").document("w1"), {}, update_time="T1")
    with pytest.raises(PreconditionFailedError):
        await batch.commit()
