"""
In-memory document store for mock deployments and tests.

Operations never await between the check and the write, so each call (and
each batch) is atomic with respect to other coroutines on the loop.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Iterable, Mapping, Optional, Sequence

from schooldesk.store.base import (
    ConditionFailed,
    DocumentNotFound,
    DuplicateDocument,
    Filter,
    UniqueKey,
    WriteOp,
    matches,
)


class MemoryStore:
    def __init__(self, seed: Optional[Mapping[str, Mapping[str, Mapping[str, Any]]]] = None):
        self._collections: dict[str, dict[str, dict]] = {}
        self._unique_keys: dict[str, UniqueKey] = {}
        for collection, docs in (seed or {}).items():
            for doc_id, fields in docs.items():
                self._table(collection)[doc_id] = dict(copy.deepcopy(fields))

    def _table(self, collection: str) -> dict[str, dict]:
        return self._collections.setdefault(collection, {})

    @staticmethod
    def _out(doc_id: str, doc: Mapping[str, Any]) -> dict:
        return {**copy.deepcopy(dict(doc)), "id": doc_id}

    def _violates(self, collection: str, doc_id: str, fields: Mapping[str, Any], unique: Optional[UniqueKey]) -> bool:
        if doc_id in self._table(collection):
            return True
        key = unique or self._unique_keys.get(collection)
        if key is None:
            return False
        if any(fields.get(k) != v for k, v in key.scope.items()):
            return False
        for existing in self._table(collection).values():
            if all(existing.get(k) == v for k, v in key.scope.items()) and all(
                existing.get(f) == fields.get(f) for f in key.fields
            ):
                return True
        return False

    def add_unique_key(self, collection: str, key: UniqueKey) -> None:
        """Register a permanent unique constraint, like a database index."""
        self._unique_keys[collection] = key

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._table(collection).get(doc_id)
        return None if doc is None else self._out(doc_id, doc)

    async def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        filters = list(filters)
        docs = [
            self._out(doc_id, doc)
            for doc_id, doc in self._table(collection).items()
            if all(matches(doc, f) for f in filters)
        ]
        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by)), reverse=descending)
        if limit is not None:
            docs = docs[:limit]
        return docs

    async def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], merge: bool = False) -> dict:
        table = self._table(collection)
        doc = dict(table.get(doc_id, {})) if merge else {}
        doc.update(copy.deepcopy(dict(fields)))
        doc.pop("id", None)
        table[doc_id] = doc
        return self._out(doc_id, doc)

    async def create(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        unique: Optional[UniqueKey] = None,
    ) -> dict:
        if self._violates(collection, doc_id, fields, unique):
            raise DuplicateDocument(f"{collection}/{doc_id}")
        return await self.set(collection, doc_id, fields)

    async def add(self, collection: str, fields: Mapping[str, Any], unique: Optional[UniqueKey] = None) -> dict:
        return await self.create(collection, uuid.uuid4().hex, fields, unique=unique)

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        table = self._table(collection)
        if doc_id not in table:
            raise DocumentNotFound(f"{collection}/{doc_id}")
        current = table[doc_id]
        if expect and any(current.get(k) != v for k, v in expect.items()):
            raise ConditionFailed(f"{collection}/{doc_id}")
        current.update(copy.deepcopy(dict(fields)))
        return self._out(doc_id, current)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._table(collection).pop(doc_id, None)

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        # Validate every op before applying any so the batch is all-or-nothing.
        for op in ops:
            if op.kind == "create" and self._violates(op.collection, op.doc_id, op.fields, None):
                raise DuplicateDocument(f"{op.collection}/{op.doc_id}")
            if op.kind == "update" and op.doc_id not in self._table(op.collection):
                raise DocumentNotFound(f"{op.collection}/{op.doc_id}")
        for op in ops:
            if op.kind in ("set", "create"):
                await self.set(op.collection, op.doc_id, op.fields)
            elif op.kind == "update":
                await self.update(op.collection, op.doc_id, op.fields)
            elif op.kind == "delete":
                await self.delete(op.collection, op.doc_id)
