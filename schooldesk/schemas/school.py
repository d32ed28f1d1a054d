"""
Pydantic schemas for announcements, staff, students and fees.
"""

from typing import Dict, List, Optional

from pydantic import Field

from schooldesk.schemas.base import CamelModel


# ---- Announcements ----
class AnnouncementCreate(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    is_pinned: bool = False


class ClassAnnouncementCreate(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    class_ids: List[str] = Field(min_length=1)


class AnnouncementUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None


# ---- Teachers ----
class TeacherSignup(CamelModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    department: Optional[str] = None
    phone: Optional[str] = None
    requested_classes: List[str] = []
    requested_subjects: List[str] = []


class ProfileUpdate(CamelModel):
    phone: Optional[str] = None
    department: Optional[str] = None
    bio: Optional[str] = None


class TeacherAssignment(CamelModel):
    role: str = "teacher"
    departments: List[str] = []
    assigned_classes: List[str] = []
    assigned_subjects: List[str] = []
    phone: Optional[str] = None


# ---- Students ----
class StudentCreate(CamelModel):
    name: str
    email: str
    class_: str = Field(alias="class")
    session: str
    registration_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    optional_fees: Optional[dict] = None


class StudentUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    session: Optional[str] = None
    date_of_birth: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    optional_fees: Optional[dict] = None


# ---- Fees ----
class FeeStructureCreate(CamelModel):
    # e.g. {"tuition": 50000, "development": 5000, "exam": 2500}
    items: Dict[str, float] = Field(min_length=1)


class PaymentCreate(CamelModel):
    student_id: str
    session: str
    term: str
    amount: float = Field(gt=0)
    method: str = "Cash"
    date: Optional[str] = None
    reference: Optional[str] = None
    received_by: Optional[str] = None
