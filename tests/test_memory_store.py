import pytest

from schooldesk.store import MemoryStore
from schooldesk.store.base import ConditionFailed, DocumentNotFound, DuplicateDocument, UniqueKey, WriteOp, where

pytestmark = pytest.mark.anyio("asyncio")


async def test_documents_are_copies():
    store = MemoryStore()
    doc = {"tags": ["a"]}
    await store.set("things", "t1", doc)
    doc["tags"].append("b")

    stored = await store.get("things", "t1")
    stored["tags"].append("c")
    assert (await store.get("things", "t1"))["tags"] == ["a"]


async def test_create_rejects_existing_id():
    store = MemoryStore()
    await store.create("things", "t1", {})
    with pytest.raises(DuplicateDocument):
        await store.create("things", "t1", {})


async def test_unique_key_is_scoped():
    store = MemoryStore()
    key = UniqueKey(fields=("a",), scope={"status": "active"})
    await store.add("things", {"a": 1, "status": "active"}, unique=key)
    await store.add("things", {"a": 1, "status": "dropped"}, unique=key)

    with pytest.raises(DuplicateDocument):
        await store.add("things", {"a": 1, "status": "active"}, unique=key)


async def test_conditional_update():
    store = MemoryStore({"things": {"t1": {"approved": False}}})
    await store.update("things", "t1", {"approved": True}, expect={"approved": False})

    with pytest.raises(ConditionFailed):
        await store.update("things", "t1", {"approved": True}, expect={"approved": False})
    with pytest.raises(DocumentNotFound):
        await store.update("things", "t2", {"approved": True})


async def test_query_filters_order_and_limit():
    store = MemoryStore({"things": {
        "a": {"n": 3, "kind": "x"},
        "b": {"n": 1, "kind": "x"},
        "c": {"n": 2, "kind": "y"},
    }})

    docs = await store.query("things", [where("kind", "==", "x")], order_by="n")
    assert [d["id"] for d in docs] == ["b", "a"]

    docs = await store.query("things", [where("n", ">=", 2)], order_by="n", descending=True, limit=1)
    assert [d["id"] for d in docs] == ["a"]


async def test_batch_is_all_or_nothing():
    store = MemoryStore({"things": {"t1": {}}})
    ops = [
        WriteOp("set", "things", "t2", {"n": 1}),
        WriteOp("create", "things", "t1", {"n": 2}),
    ]
    with pytest.raises(DuplicateDocument):
        await store.batch_write(ops)
    assert await store.get("things", "t2") is None
