"""
Subject registration service.

Teachers register, edit and remove subjects for students of their assigned
classes; admins for any class. A (student, subject, class) triple is
registered at most once among active registrations. The pre-insert query
gives a clear error; the unique key on the insert closes the race where the
store enforces it.
"""

import logging
from typing import Any, Mapping, Optional

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import DuplicateRegistration, ResourceNotFound, SchoolDeskError, ValidationFailed
from schooldesk.domain import ensure_not_registered
from schooldesk.rbac import Capability, ClassRef, Principal, authorize, require
from schooldesk.services.common import fetch, require_fields, summarize
from schooldesk.store.base import DocumentNotFound, DocumentStore, DuplicateDocument, UniqueKey, where

logger = logging.getLogger(__name__)

COLLECTION = "studentSubjects"
STATUSES = ("active", "dropped", "suspended")
EDITABLE_FIELDS = ("status", "notes")

REGISTRATION_KEY = UniqueKey(fields=("studentId", "subjectId", "classId"), scope={"status": "active"})


async def _active_for(store: DocumentStore, student_id: str, subject_id: str, class_id: str) -> list[dict]:
    return await store.query(COLLECTION, [
        where("studentId", "==", student_id),
        where("subjectId", "==", subject_id),
        where("classId", "==", class_id),
        where("status", "==", "active"),
    ])


async def _subject_name(store: DocumentStore, subject_id: str) -> str:
    # Registration is allowed even when the subject has no catalogue entry
    subject = await store.get("subjects", subject_id)
    return (subject or {}).get("name") or subject_id


async def register_student_subject(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
    subject_name: Optional[str] = None,
) -> dict:
    require_fields(data, "studentId", "subjectId", "classId")
    student_id, subject_id, class_id = data["studentId"], data["subjectId"], data["classId"]
    require(principal, Capability.REGISTER_SUBJECT, ClassRef(class_id))

    student = await fetch(store, "students", student_id, "Student")
    if student.get("class") != class_id:
        raise ValidationFailed(f"Student {student_id} does not belong to class {class_id}")

    ensure_not_registered(student_id, subject_id, class_id, await _active_for(store, student_id, subject_id, class_id))

    now = clock.timestamp()
    registration = {
        "studentId": student_id,
        "studentName": student.get("name", ""),
        "subjectId": subject_id,
        "subjectName": subject_name or await _subject_name(store, subject_id),
        "classId": class_id,
        "registeredBy": principal.id,
        "registeredByName": principal.name,
        "registeredByRole": principal.role.value,
        "notes": data.get("notes") or "",
        "status": "active",
        "registeredAt": now,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        doc = await store.add(COLLECTION, registration, unique=REGISTRATION_KEY)
    except DuplicateDocument:
        raise DuplicateRegistration(student_id, subject_id, class_id) from None

    return {**doc, "success": True, "message": "Subject registered successfully"}


async def bulk_register_subjects(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    """Register one subject for many students; failures are reported per student."""
    require_fields(data, "classId", "subjectId", "studentIds")
    class_id, subject_id = data["classId"], data["subjectId"]
    require(principal, Capability.REGISTER_SUBJECT, ClassRef(class_id))

    subject_name = await _subject_name(store, subject_id)
    successful, failed = [], []
    for student_id in data["studentIds"]:
        try:
            result = await register_student_subject(
                store,
                principal,
                clock,
                {"studentId": student_id, "subjectId": subject_id, "classId": class_id, "notes": data.get("notes")},
                subject_name=subject_name,
            )
        except SchoolDeskError as exc:
            failed.append({"studentId": student_id, "error": exc.message, "code": exc.code})
        else:
            successful.append({"studentId": student_id, "registrationId": result["id"], "message": "Registered successfully"})

    logger.info(
        "Bulk registration of %s in %s: %d registered, %d failed", subject_id, class_id, len(successful), len(failed)
    )
    return summarize(successful, failed)


async def get_student_subjects(store: DocumentStore, principal: Principal, student_id: str) -> list[dict]:
    """Active registrations of a student, limited to classes the principal may view."""
    registrations = await store.query(
        COLLECTION, [where("studentId", "==", student_id), where("status", "==", "active")]
    )
    return [
        r for r in registrations
        if authorize(principal, Capability.VIEW_SUBJECT_REGISTRATION, ClassRef(r.get("classId", ""))).allowed
    ]


async def get_students_for_subject(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    subject_id: Optional[str] = None,
) -> list[dict]:
    require(principal, Capability.VIEW_SUBJECT_REGISTRATION, ClassRef(class_id))
    filters = [where("classId", "==", class_id), where("status", "==", "active")]
    if subject_id:
        filters.append(where("subjectId", "==", subject_id))
    return await store.query(COLLECTION, filters)


async def get_class_subjects(store: DocumentStore, principal: Principal, class_id: str) -> list[dict]:
    """Active registrations of a class grouped by subject."""
    registrations = await get_students_for_subject(store, principal, class_id)

    subjects: dict[str, dict] = {}
    for reg in registrations:
        entry = subjects.setdefault(reg["subjectId"], {
            "subjectId": reg["subjectId"],
            "subjectName": reg.get("subjectName"),
            "classId": class_id,
            "studentCount": 0,
            "students": [],
        })
        entry["studentCount"] += 1
        entry["students"].append({
            "registrationId": reg["id"],
            "studentId": reg["studentId"],
            "studentName": reg.get("studentName"),
            "registeredAt": reg.get("registeredAt"),
        })
    return list(subjects.values())


async def get_class_subject_summary(store: DocumentStore, principal: Principal, class_id: str) -> dict:
    subjects = await get_class_subjects(store, principal, class_id)
    return {
        "classId": class_id,
        "totalRegistrations": sum(s["studentCount"] for s in subjects),
        "subjectStats": {
            s["subjectId"]: {
                "subjectId": s["subjectId"],
                "subjectName": s["subjectName"],
                "studentCount": s["studentCount"],
            }
            for s in subjects
        },
    }


async def update_subject_registration(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    registration_id: str,
    data: Mapping[str, Any],
) -> dict:
    registration = await fetch(store, COLLECTION, registration_id, "Subject registration")
    require(principal, Capability.EDIT_SUBJECT_REGISTRATION, ClassRef(registration["classId"]))

    update = {k: data[k] for k in EDITABLE_FIELDS if data.get(k) is not None}
    status = update.get("status")
    if status is not None and status not in STATUSES:
        raise ValidationFailed(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
    if status == "active" and registration.get("status") != "active":
        others = await _active_for(
            store, registration["studentId"], registration["subjectId"], registration["classId"]
        )
        ensure_not_registered(
            registration["studentId"],
            registration["subjectId"],
            registration["classId"],
            [r for r in others if r["id"] != registration_id],
        )

    update["updatedAt"] = clock.timestamp()
    try:
        await store.update(COLLECTION, registration_id, update)
    except DocumentNotFound:
        raise ResourceNotFound("Subject registration", registration_id) from None
    return {"success": True, "message": "Subject registration updated successfully"}


async def remove_subject_registration(store: DocumentStore, principal: Principal, registration_id: str) -> dict:
    registration = await fetch(store, COLLECTION, registration_id, "Subject registration")
    require(principal, Capability.REMOVE_SUBJECT_REGISTRATION, ClassRef(registration["classId"]))

    await store.delete(COLLECTION, registration_id)
    return {"success": True, "message": "Subject registration removed successfully"}
