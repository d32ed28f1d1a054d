from schooldesk.store.base import (
    ConditionFailed,
    DocumentNotFound,
    DocumentStore,
    DuplicateDocument,
    Filter,
    UniqueKey,
    WriteOp,
    where,
)
from schooldesk.store.memory import MemoryStore

__all__ = [
    "ConditionFailed",
    "DocumentNotFound",
    "DocumentStore",
    "DuplicateDocument",
    "Filter",
    "MemoryStore",
    "UniqueKey",
    "WriteOp",
    "where",
]
