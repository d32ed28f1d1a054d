"""
Pydantic schemas for attendance, results and subject registrations.
"""

from typing import List, Literal, Optional

from pydantic import Field

from schooldesk.schemas.base import CamelModel


# ---- Attendance ----
class AttendanceEntry(CamelModel):
    student_id: str
    student_name: str = ""
    status: Literal["present", "absent", "late"]


class AttendanceTake(CamelModel):
    students: List[AttendanceEntry] = Field(min_length=1)
    subject: Optional[str] = None
    period: Optional[str] = None
    notes: Optional[str] = None


class AttendanceUpdate(CamelModel):
    students: List[AttendanceEntry] = Field(min_length=1)
    notes: Optional[str] = None


# ---- Results ----
class Scores(CamelModel):
    classwork: float = Field(default=0, ge=0)
    test: float = Field(default=0, ge=0)
    examination: float = Field(default=0, ge=0)


class ResultItem(CamelModel):
    student_id: str
    subject_id: str
    term_id: Optional[str] = None
    scores: Scores = Field(default_factory=Scores)
    comments: Optional[str] = None


class ResultEnter(ResultItem):
    class_id: str


class ScoresPatch(CamelModel):
    """Only the scores sent are changed; the rest keep their stored values."""

    classwork: Optional[float] = Field(default=None, ge=0)
    test: Optional[float] = Field(default=None, ge=0)
    examination: Optional[float] = Field(default=None, ge=0)


class ResultUpdate(CamelModel):
    scores: Optional[ScoresPatch] = None
    comments: Optional[str] = None


class BulkResults(CamelModel):
    results: List[ResultItem] = Field(min_length=1)


class ResultSubmit(CamelModel):
    """Continuous assessment result: three CA tests out of 30 and an exam out of 70."""

    student_id: str
    student_name: Optional[str] = None
    subject_id: str
    subject_name: Optional[str] = None
    class_id: str
    term_id: Optional[str] = None
    session_id: Optional[str] = None
    ca1: Optional[float] = Field(default=None, ge=0, le=30)
    ca2: Optional[float] = Field(default=None, ge=0, le=30)
    ca3: Optional[float] = Field(default=None, ge=0, le=30)
    exam: Optional[float] = Field(default=None, ge=0, le=70)
    comments: Optional[str] = None


class ResultsLock(CamelModel):
    locked: bool


# ---- Subject registration ----
class RegistrationCreate(CamelModel):
    student_id: str
    subject_id: str
    class_id: str
    notes: Optional[str] = None


class BulkRegistration(CamelModel):
    class_id: str
    subject_id: str
    student_ids: List[str] = Field(min_length=1)
    notes: Optional[str] = None


class RegistrationUpdate(CamelModel):
    status: Optional[Literal["active", "dropped", "suspended"]] = None
    notes: Optional[str] = None
