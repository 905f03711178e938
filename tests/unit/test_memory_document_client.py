"""InMemoryDocumentClient: conditional writes, atomic batches and queries."""

import pytest

from app.infrastructure.exceptions import DocumentExistsError, PreconditionFailedError
from app.infrastructure.memory.document_client import InMemoryDocumentClient


@pytest.fixture
def store() -> InMemoryDocumentClient:
    return InMemoryDocumentClient()


async def _ids(query) -> list[str]:
    return [doc.id async for doc in query.stream()]


async def test_create_then_get(store) -> None:
    await store.collection("tasks").create("t1", {"title": "Post", "version": 1})
    snapshot = await store.collection("tasks").document("t1").get()
    assert snapshot.id == "t1"
    assert snapshot.to_dict() == {"title": "Post", "version": 1}
    assert snapshot.update_time


async def test_get_missing_returns_none(store) -> None:
    assert await store.collection("tasks").document("nope").get() is None


async def test_create_existing_raises(store) -> None:
    await store.collection("tasks").create("t1", {})
    with pytest.raises(DocumentExistsError):
        await store.collection("tasks").create("t1", {})


async def test_snapshots_are_copies(store) -> None:
    await store.collection("tasks").create("t1", {"tags": ["a"]})
    snapshot = await store.collection("tasks").document("t1").get()
    snapshot.to_dict()["tags"].append("b")
    again = await store.collection("tasks").document("t1").get()
    assert again.to_dict()["tags"] == ["a"]


async def test_conditional_set_detects_concurrent_write(store) -> None:
    ref = store.collection("tasks").document("t1")
    await ref.set({"version": 1})
    first = await ref.get()
    second = await ref.get()
    await ref.set({"version": 2}, update_time=first.update_time)
    with pytest.raises(PreconditionFailedError):
        await ref.set({"version": 2}, update_time=second.update_time)
    assert (await ref.get()).to_dict() == {"version": 2}


async def test_update_merges_and_requires_document(store) -> None:
    ref = store.collection("workflows").document("w1")
    with pytest.raises(PreconditionFailedError):
        await ref.update({"name": "x"})
    await ref.set({"name": "Old", "is_default": True})
    await ref.update({"name": "New"})
    assert (await ref.get()).to_dict() == {"name": "New", "is_default": True}


async def test_batch_applies_all_or_nothing(store) -> None:
    coll = store.collection("workflows")
    await coll.create("w1", {"is_default": True})
    await coll.create("w2", {"is_default": False})
    w1 = await coll.document("w1").get()
    w2 = await coll.document("w2").get()
    await coll.document("w1").update({"name": "touched"})

    batch = store.batch()
    batch.set(coll.document("w2"), {"is_default": True}, update_time=w2.update_time)
    batch.set(coll.document("w1"), {"is_default": False}, update_time=w1.update_time)
    with pytest.raises(PreconditionFailedError):
        await batch.commit()

    assert (await coll.document("w1").get()).to_dict()["is_default"] is True
    assert (await coll.document("w2").get()).to_dict()["is_default"] is False


async def test_query_filters_order_and_limit(store) -> None:
    coll = store.collection("tasks")
    await coll.create("a", {"client_id": "c1", "n": 3, "users": ["u1"]})
    await coll.create("b", {"client_id": "c1", "n": 1, "users": ["u2"]})
    await coll.create("c", {"client_id": "c2", "n": 2, "users": ["u1", "u2"]})
    assert await _ids(coll.where("client_id", "==", "c1").order_by("n")) == ["b", "a"]
    assert await _ids(coll.where("users", "array-contains", "u1").order_by("n", "DESCENDING")) == [
        "a",
        "c",
    ]
    assert await _ids(coll.where("n", ">=", 1).order_by("n").offset(1).limit(1)) == ["c"]


async def test_unknown_operator_rejected(store) -> None:
    with pytest.raises(ValueError):
        store.collection("tasks").where("n", "~", 1)


async def test_delete_is_idempotent(store) -> None:
    ref = store.collection("tasks").document("t1")
    await ref.set({"a": 1})
    await ref.delete()
    await ref.delete()
    assert await ref.get() is None
