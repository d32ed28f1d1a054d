"""
Supabase adapter for the document store port.

Each collection is a table keyed by a text ``id`` column. The supabase client
is synchronous, so every call runs in Starlette's threadpool.

Unique keys are enforced by the database (unique / partial unique indexes);
a violation (SQLSTATE 23505) surfaces as ``DuplicateDocument``. Batches go
through the ``batch_write(ops jsonb)`` SQL function so they commit in one
transaction.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool
from supabase import Client

from schooldesk.core.errors import UpstreamFailure
from schooldesk.store.base import (
    ConditionFailed,
    DocumentNotFound,
    DuplicateDocument,
    Filter,
    UniqueKey,
    WriteOp,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseStore:
    def __init__(self, client: Client):
        self.client = client

    async def _run(self, operation: str, fn: Callable[[], Any]) -> Any:
        try:
            return await run_in_threadpool(fn)
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateDocument(operation) from exc
            logger.warning("Supabase %s rejected: %s", operation, exc)
            raise UpstreamFailure(operation, exc) from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Supabase %s unreachable: %s", operation, exc)
            raise UpstreamFailure(operation, exc) from exc

    @staticmethod
    def _apply(query, flt: Filter):
        if flt.op == "==":
            return query.eq(flt.field, flt.value)
        if flt.op == "!=":
            return query.neq(flt.field, flt.value)
        if flt.op == "in":
            return query.in_(flt.field, list(flt.value))
        if flt.op == ">":
            return query.gt(flt.field, flt.value)
        if flt.op == ">=":
            return query.gte(flt.field, flt.value)
        if flt.op == "<":
            return query.lt(flt.field, flt.value)
        if flt.op == "<=":
            return query.lte(flt.field, flt.value)
        raise ValueError(f"Unsupported filter operator: {flt.op}")

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        result = await self._run(
            f"get {collection}/{doc_id}",
            lambda: self.client.table(collection).select("*").eq("id", doc_id).limit(1).execute(),
        )
        return result.data[0] if result.data else None

    async def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        filters = list(filters)

        def _execute():
            query = self.client.table(collection).select("*")
            for flt in filters:
                query = self._apply(query, flt)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            return query.execute()

        result = await self._run(f"query {collection}", _execute)
        return result.data or []

    async def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], merge: bool = False) -> dict:
        row = {**fields, "id": doc_id}
        result = await self._run(
            f"set {collection}/{doc_id}",
            lambda: self.client.table(collection).upsert(row).execute(),
        )
        return result.data[0] if result.data else row

    async def create(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        unique: Optional[UniqueKey] = None,
    ) -> dict:
        row = {**fields, "id": doc_id}
        result = await self._run(
            f"create {collection}/{doc_id}",
            lambda: self.client.table(collection).insert(row).execute(),
        )
        return result.data[0] if result.data else row

    async def add(self, collection: str, fields: Mapping[str, Any], unique: Optional[UniqueKey] = None) -> dict:
        return await self.create(collection, uuid.uuid4().hex, fields, unique=unique)

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        def _execute():
            query = self.client.table(collection).update(dict(fields)).eq("id", doc_id)
            for key, value in (expect or {}).items():
                query = query.eq(key, value)
            return query.execute()

        result = await self._run(f"update {collection}/{doc_id}", _execute)
        if result.data:
            return result.data[0]
        if await self.get(collection, doc_id) is None:
            raise DocumentNotFound(f"{collection}/{doc_id}")
        raise ConditionFailed(f"{collection}/{doc_id}")

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._run(
            f"delete {collection}/{doc_id}",
            lambda: self.client.table(collection).delete().eq("id", doc_id).execute(),
        )

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        payload = [
            {"kind": op.kind, "collection": op.collection, "id": op.doc_id, "fields": dict(op.fields)}
            for op in ops
        ]
        await self._run(
            f"batch_write ({len(payload)} ops)",
            lambda: self.client.rpc("batch_write", {"ops": payload}).execute(),
        )
