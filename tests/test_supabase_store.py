"""
Supabase adapter against a fake client that records the query chain.
"""

from types import SimpleNamespace

import httpx
import pytest
from postgrest.exceptions import APIError

from schooldesk.core.errors import UpstreamFailure
from schooldesk.store.base import ConditionFailed, DocumentNotFound, DuplicateDocument, WriteOp, where
from schooldesk.store.supabase_store import SupabaseStore

pytestmark = pytest.mark.anyio("asyncio")


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.calls = [("table", table)]
        client.queries.append(self)

    def __getattr__(self, name):
        def _chain(*args, **kwargs):
            self.calls.append((name, args, kwargs) if kwargs else (name, *args))
            return self
        return _chain

    def execute(self):
        outcome = self.client.responses.pop(0) if self.client.responses else []
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(data=outcome)


class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries: list[FakeQuery] = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        query = FakeQuery(self, f"rpc:{name}")
        query.calls.append(("params", params))
        return query


async def test_query_translates_filters():
    client = FakeClient([{"id": "s1", "class": "JSS1"}])
    store = SupabaseStore(client)

    docs = await store.query(
        "students", [where("class", "==", "JSS1"), where("registrationNumber", ">=", "2025-")],
        order_by="name", limit=5,
    )

    assert docs == [{"id": "s1", "class": "JSS1"}]
    calls = client.queries[0].calls
    assert ("eq", "class", "JSS1") in calls
    assert ("gte", "registrationNumber", "2025-") in calls
    assert ("order", ("name",), {"desc": False}) in calls
    assert ("limit", 5) in calls


async def test_unique_violation_maps_to_duplicate():
    client = FakeClient(APIError({"message": "duplicate key", "code": "23505", "hint": None, "details": None}))
    with pytest.raises(DuplicateDocument):
        await SupabaseStore(client).create("attendance", "JSS1_2025-03-10", {"classId": "JSS1"})


async def test_other_api_errors_are_upstream_failures():
    client = FakeClient(APIError({"message": "boom", "code": "XX000", "hint": None, "details": None}))
    with pytest.raises(UpstreamFailure) as excinfo:
        await SupabaseStore(client).get("students", "s1")
    assert excinfo.value.retryable is True


async def test_transport_errors_are_upstream_failures():
    client = FakeClient(httpx.ConnectError("unreachable"))
    with pytest.raises(UpstreamFailure):
        await SupabaseStore(client).query("students")


async def test_conditional_update_distinguishes_missing_from_changed():
    # update matched nothing, follow-up get finds the row
    store = SupabaseStore(FakeClient([], [{"id": "t1", "approved": True}]))
    with pytest.raises(ConditionFailed):
        await store.update("teachers", "t1", {"approved": True}, expect={"approved": False})

    store = SupabaseStore(FakeClient([], []))
    with pytest.raises(DocumentNotFound):
        await store.update("teachers", "t1", {"approved": True}, expect={"approved": False})


async def test_batch_write_goes_through_rpc():
    client = FakeClient([])
    await SupabaseStore(client).batch_write([
        WriteOp("set", "results", "s1_math_first", {"grade": "A"}),
        WriteOp("delete", "results", "s2_math_first"),
    ])

    calls = client.queries[0].calls
    assert calls[0] == ("table", "rpc:batch_write")
    assert calls[1] == ("params", {"ops": [
        {"kind": "set", "collection": "results", "id": "s1_math_first", "fields": {"grade": "A"}},
        {"kind": "delete", "collection": "results", "id": "s2_math_first", "fields": {}},
    ]})
