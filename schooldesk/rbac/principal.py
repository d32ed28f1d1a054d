"""
Roles and the authenticated principal.

A principal is passed explicitly to every authorization and domain call;
nothing in the package reads an ambient "current user".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping


class Role(str, Enum):
    """User roles in the system"""
    ADMIN = "admin"
    TEACHER = "teacher"

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, role_str: str) -> "Role":
        """Convert string to Role enum; unknown roles raise ValueError."""
        return cls((role_str or "").lower().strip())

    @classmethod
    def is_valid(cls, role_str: str) -> bool:
        return (role_str or "").lower().strip() in cls.get_all()

    @classmethod
    def get_all(cls) -> list[str]:
        return [role.value for role in cls]


def _ids(values: Iterable[Any] | None) -> frozenset[str]:
    return frozenset(str(v) for v in (values or ()) if v)


@dataclass(frozen=True)
class Principal:
    id: str
    role: Role
    name: str = ""
    email: str = ""
    assigned_classes: frozenset[str] = field(default_factory=frozenset)
    assigned_subjects: frozenset[str] = field(default_factory=frozenset)
    approved: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Principal":
        """Build a principal from a ``teachers`` or ``admins`` document."""
        role = Role.from_string(doc.get("role", ""))
        return cls(
            id=str(doc.get("uid") or doc["id"]),
            role=role,
            name=doc.get("name", ""),
            email=doc.get("email", ""),
            assigned_classes=_ids(doc.get("assignedClasses")),
            assigned_subjects=_ids(doc.get("assignedSubjects")),
            approved=bool(doc.get("approved", True)) if role is Role.TEACHER else True,
        )

    def to_dict(self) -> dict:
        return {
            "uid": self.id,
            "role": self.role.value,
            "name": self.name,
            "email": self.email,
            "assignedClasses": sorted(self.assigned_classes),
            "assignedSubjects": sorted(self.assigned_subjects),
            "approved": self.approved,
        }
