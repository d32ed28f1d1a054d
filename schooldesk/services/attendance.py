"""
Attendance: daily class registers.

One register per class per day (id ``{classId}_{date}``). The author may edit
it until the school day ends; after that it is frozen.
"""

import logging
from typing import Any, Mapping, Optional

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import AttendanceAlreadySubmitted, ResourceNotFound, StateConflict
from schooldesk.domain import ensure_same_day_edit
from schooldesk.rbac import Capability, ClassRef, Principal, require
from schooldesk.services.common import fetch, require_fields
from schooldesk.store.base import ConditionFailed, DocumentNotFound, DocumentStore, DuplicateDocument, where

logger = logging.getLogger(__name__)

COLLECTION = "attendance"


def attendance_id(class_id: str, day: str) -> str:
    return f"{class_id}_{day}"


async def take_attendance(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    class_id: str,
    data: Mapping[str, Any],
) -> dict:
    require_fields(data, "students")
    require(principal, Capability.TAKE_ATTENDANCE, ClassRef(class_id))

    today = clock.today_iso()
    now = clock.timestamp()
    record_id = attendance_id(class_id, today)
    record = {
        "classId": class_id,
        "teacherId": principal.id,
        "teacherName": principal.name,
        "teacherRole": principal.role.value,
        "date": today,
        "timestamp": now,
        # [{studentId, studentName, status: present|absent|late}]
        "students": list(data["students"]),
        "subject": data.get("subject") or "",
        "period": data.get("period") or "",
        "notes": data.get("notes") or "",
        "status": "submitted",
        "updatedAt": now,
    }
    try:
        await store.create(COLLECTION, record_id, record)
    except DuplicateDocument:
        raise AttendanceAlreadySubmitted(record_id) from None

    logger.info("Attendance %s taken by %s", record_id, principal.id)
    return {"success": True, "attendanceId": record_id, "message": "Attendance recorded successfully"}


async def update_attendance(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    record_id: str,
    data: Mapping[str, Any],
) -> dict:
    require_fields(data, "students")
    record = await fetch(store, COLLECTION, record_id, "Attendance record")
    ensure_same_day_edit(principal, record, clock)

    update = {
        "students": list(data["students"]),
        "notes": data.get("notes") or record.get("notes", ""),
        "updatedAt": clock.timestamp(),
    }
    try:
        # Guard on the date so a record cannot be re-keyed between check and write
        await store.update(COLLECTION, record_id, update, expect={"date": record["date"]})
    except DocumentNotFound:
        raise ResourceNotFound("Attendance record", record_id) from None
    except ConditionFailed:
        raise StateConflict(f"Attendance record {record_id} changed while it was being edited") from None

    return {"success": True, "message": "Attendance updated successfully"}


async def _class_records(store: DocumentStore, principal: Principal, class_id: str) -> list[dict]:
    filters = [where("classId", "==", class_id)]
    if not principal.is_admin:
        filters.append(where("teacherId", "==", principal.id))
    return await store.query(COLLECTION, filters, order_by="date", descending=True)


async def get_attendance_history(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    subject: Optional[str] = None,
) -> list[dict]:
    """Registers for a class; teachers see the ones they took, admins all."""
    require(principal, Capability.VIEW_ATTENDANCE, ClassRef(class_id))
    records = await _class_records(store, principal, class_id)

    if start_date:
        records = [r for r in records if r.get("date", "") >= start_date]
    if end_date:
        records = [r for r in records if r.get("date", "") <= end_date]
    if subject:
        records = [r for r in records if r.get("subject") == subject]
    return records


async def get_student_attendance_report(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    student_id: str,
) -> dict:
    require(principal, Capability.VIEW_ATTENDANCE, ClassRef(class_id))
    records = await _class_records(store, principal, class_id)

    entries = []
    for record in records:
        for student in record.get("students", []):
            if student.get("studentId") == student_id:
                entries.append({
                    "date": record.get("date"),
                    "status": student.get("status"),
                    "subject": record.get("subject"),
                    "period": record.get("period"),
                })
                break

    total = len(entries)
    present = sum(1 for e in entries if e["status"] == "present")
    absent = sum(1 for e in entries if e["status"] == "absent")
    late = sum(1 for e in entries if e["status"] == "late")
    percentage = (present / total * 100) if total > 0 else 0

    return {
        "studentId": student_id,
        "classId": class_id,
        "records": entries,
        "statistics": {
            "total": total,
            "present": present,
            "absent": absent,
            "late": late,
            "attendancePercentage": f"{percentage:.2f}%",
        },
    }


async def get_class_attendance_summary(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    day: str,
) -> dict:
    require(principal, Capability.VIEW_ATTENDANCE, ClassRef(class_id))
    records = await store.query(
        COLLECTION, [where("classId", "==", class_id), where("date", "==", day)]
    )
    return {
        "date": day,
        "classId": class_id,
        "records": records,
        "statistics": {"totalRecords": len(records)},
    }


async def get_today_attendance(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    class_id: str,
) -> Optional[dict]:
    require(principal, Capability.VIEW_ATTENDANCE, ClassRef(class_id))
    return await store.get(COLLECTION, attendance_id(class_id, clock.today_iso()))


async def get_attendance_stats(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    class_id: str,
    day: Optional[str] = None,
) -> dict:
    require(principal, Capability.VIEW_ATTENDANCE, ClassRef(class_id))
    record = await store.get(COLLECTION, attendance_id(class_id, day or clock.today_iso()))
    if record is None:
        return {"present": 0, "absent": 0, "total": 0, "students": []}

    students = record.get("students", [])
    return {
        "present": sum(1 for s in students if s.get("status") == "present"),
        "absent": sum(1 for s in students if s.get("status") == "absent"),
        "total": len(students),
        "students": students,
    }
