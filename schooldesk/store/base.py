"""
Document store port.

Services talk to persistence only through this interface. Documents are plain
dicts; every document returned by an adapter carries its id under ``"id"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, Optional, Protocol, Sequence

FilterOp = Literal["==", "!=", "in", ">", ">=", "<", "<="]


@dataclass(frozen=True)
class Filter:
    field: str
    op: FilterOp
    value: Any


def where(field_name: str, op: FilterOp, value: Any) -> Filter:
    return Filter(field_name, op, value)


@dataclass(frozen=True)
class UniqueKey:
    """A set of fields that must be unique among documents matching ``scope``."""

    fields: tuple[str, ...]
    scope: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WriteOp:
    kind: Literal["set", "create", "update", "delete"]
    collection: str
    doc_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)


class DuplicateDocument(Exception):
    """Insert collided with an existing id or unique key."""


class ConditionFailed(Exception):
    """Conditional update did not find the expected field values."""


class DocumentNotFound(Exception):
    """Update targeted a document that does not exist."""


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> Optional[dict]: ...

    async def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]: ...

    async def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], merge: bool = False) -> dict: ...

    async def create(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        unique: Optional[UniqueKey] = None,
    ) -> dict: ...

    async def add(self, collection: str, fields: Mapping[str, Any], unique: Optional[UniqueKey] = None) -> dict: ...

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> dict: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def batch_write(self, ops: Sequence[WriteOp]) -> None: ...


def matches(doc: Mapping[str, Any], flt: Filter) -> bool:
    value = doc.get(flt.field)
    if flt.op == "==":
        return value == flt.value
    if flt.op == "!=":
        return value != flt.value
    if flt.op == "in":
        return value in flt.value
    if value is None:
        return False
    if flt.op == ">":
        return value > flt.value
    if flt.op == ">=":
        return value >= flt.value
    if flt.op == "<":
        return value < flt.value
    if flt.op == "<=":
        return value <= flt.value
    raise ValueError(f"Unsupported filter operator: {flt.op}")


__all__ = [
    "ConditionFailed",
    "DocumentNotFound",
    "DocumentStore",
    "DuplicateDocument",
    "Filter",
    "UniqueKey",
    "WriteOp",
    "matches",
    "where",
]
