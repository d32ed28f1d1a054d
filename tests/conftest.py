"""
Shared fixtures: an in-memory store seeded with a small school, a clock
frozen at a fixed school-day morning, and principals for each role.
"""

from datetime import datetime, timedelta, timezone

import pytest

from schooldesk.core.clock import SchoolClock
from schooldesk.rbac import Principal, Role
from schooldesk.store.memory import MemoryStore

MORNING = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FrozenTime:
    """Mutable "now" for the clock; tests move it forward explicitly."""

    def __init__(self, start: datetime = MORNING):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def frozen_time() -> FrozenTime:
    return FrozenTime()


@pytest.fixture
def clock(frozen_time) -> SchoolClock:
    return SchoolClock("UTC", now_fn=frozen_time)


def school_seed() -> dict:
    return {
        "admins": {
            "admin-1": {"role": "admin", "name": "Ada Admin", "email": "ada@school.test"},
        },
        "teachers": {
            "t-math": {
                "role": "teacher",
                "name": "Tunde Math",
                "email": "tunde@school.test",
                "approved": True,
                "assignedClasses": ["JSS1", "JSS2"],
                "assignedSubjects": ["math"],
            },
            "t-eng": {
                "role": "teacher",
                "name": "Efe English",
                "email": "efe@school.test",
                "approved": True,
                "assignedClasses": ["JSS2"],
                "assignedSubjects": ["english"],
            },
            "t-new": {
                "role": "teacher",
                "name": "Nkem New",
                "email": "nkem@school.test",
                "approved": False,
                "assignedClasses": [],
                "assignedSubjects": [],
            },
        },
        "students": {
            "s1": {"name": "Amaka", "email": "amaka@school.test", "class": "JSS1", "session": "2024-2025",
                   "registrationNumber": "2025-001"},
            "s2": {"name": "Bola", "email": "bola@school.test", "class": "JSS1", "session": "2024-2025",
                   "registrationNumber": "2025-002"},
            "s3": {"name": "Chidi", "email": "chidi@school.test", "class": "JSS1", "session": "2024-2025",
                   "registrationNumber": "2025-003"},
            "s4": {"name": "Dayo", "email": "dayo@school.test", "class": "JSS1", "session": "2024-2025",
                   "registrationNumber": "2025-004"},
            "s5": {"name": "Emeka", "email": "emeka@school.test", "class": "JSS2", "session": "2024-2025",
                   "registrationNumber": "2025-005"},
            "s6": {"name": "Funke", "email": "funke@school.test", "class": "JSS1", "session": "2024-2025",
                   "registrationNumber": "2025-006"},
        },
        "subjects": {
            "math": {"name": "Mathematics", "resultsLocked": False},
            "english": {"name": "English Language", "resultsLocked": False},
        },
    }


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(school_seed())


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN, name="Ada Admin")


@pytest.fixture
def teacher() -> Principal:
    return Principal(
        id="t-math",
        role=Role.TEACHER,
        name="Tunde Math",
        assigned_classes=frozenset({"JSS1", "JSS2"}),
        assigned_subjects=frozenset({"math"}),
    )


@pytest.fixture
def other_teacher() -> Principal:
    return Principal(
        id="t-eng",
        role=Role.TEACHER,
        name="Efe English",
        assigned_classes=frozenset({"JSS2"}),
        assigned_subjects=frozenset({"english"}),
    )
