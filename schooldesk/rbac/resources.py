"""
Resource references: what a capability is being exercised on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union


@dataclass(frozen=True)
class ClassRef:
    class_id: str


@dataclass(frozen=True)
class ClassesRef:
    """Several target classes at once, e.g. a class announcement."""
    class_ids: tuple[str, ...]

    @classmethod
    def of(cls, class_ids: Iterable[str]) -> "ClassesRef":
        return cls(tuple(class_ids))


@dataclass(frozen=True)
class SubjectRef:
    subject_id: str


@dataclass(frozen=True)
class RecordRef:
    """A self-authored record: only its author and scope matter for access."""
    author_id: str
    created_date: Optional[str] = None
    class_id: Optional[str] = None
    subject_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], author_field: str = "authorId") -> "RecordRef":
        return cls(
            author_id=str(doc.get(author_field) or ""),
            created_date=doc.get("date"),
            class_id=doc.get("classId"),
            subject_id=doc.get("subjectId"),
        )


ResourceRef = Union[ClassRef, ClassesRef, SubjectRef, RecordRef]


def class_id_of(resource: Optional[ResourceRef]) -> Optional[str]:
    if isinstance(resource, ClassRef):
        return resource.class_id
    if isinstance(resource, RecordRef):
        return resource.class_id
    return None


def subject_id_of(resource: Optional[ResourceRef]) -> Optional[str]:
    if isinstance(resource, SubjectRef):
        return resource.subject_id
    if isinstance(resource, RecordRef):
        return resource.subject_id
    return None
