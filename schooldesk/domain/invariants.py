"""
Domain invariant checks, layered after authorization and before the write.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import DuplicateRegistration, EditWindowClosed, ResultsLocked
from schooldesk.rbac import Capability, Principal, RecordRef, require

PAID = "Paid"
PART_PAYMENT = "Part Payment"
UNPAID = "Unpaid"


def ensure_same_day_edit(principal: Principal, record: Mapping[str, Any], clock: SchoolClock) -> None:
    """
    Attendance is editable by its author on the day it was taken, then frozen.

    Authorship is checked first (AccessDenied), then the date window
    (EditWindowClosed).
    """
    require(principal, Capability.EDIT_ATTENDANCE, RecordRef.from_document(record, author_field="teacherId"))
    today = clock.today_iso()
    if record.get("date") != today:
        raise EditWindowClosed(str(record.get("date")), today)


def ensure_results_unlocked(subject_id: str, subject: Optional[Mapping[str, Any]]) -> None:
    """An admin lock on the subject blocks every result write, whoever the author."""
    if subject and subject.get("resultsLocked"):
        raise ResultsLocked(subject_id)


def ensure_not_registered(
    student_id: str,
    subject_id: str,
    class_id: str,
    active_registrations: Sequence[Mapping[str, Any]],
) -> None:
    for reg in active_registrations:
        if (
            reg.get("studentId") == student_id
            and reg.get("subjectId") == subject_id
            and reg.get("classId") == class_id
            and reg.get("status", "active") == "active"
        ):
            raise DuplicateRegistration(student_id, subject_id, class_id)


def fee_status(total_fee: float, total_paid: float) -> str:
    if total_fee - total_paid <= 0:
        return PAID
    if total_paid > 0:
        return PART_PAYMENT
    return UNPAID
