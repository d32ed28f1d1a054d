"""
Teacher operations: own classes, subjects and profile for teachers; approval and
assignment management for admins.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import ResourceNotFound, StateConflict, ValidationFailed
from schooldesk.rbac import Capability, ClassRef, Principal, Role, require
from schooldesk.services.common import require_fields
from schooldesk.store.base import ConditionFailed, DocumentNotFound, DocumentStore, DuplicateDocument, where

logger = logging.getLogger(__name__)

COLLECTION = "teachers"
PROFILE_FIELDS = ("phone", "department", "bio")

IdentityChanged = Optional[Callable[[str], Awaitable[None]]]


def _as_items(ids) -> list[dict]:
    return [{"id": i, "name": i} for i in sorted(ids)]


async def register_teacher(store: DocumentStore, clock: SchoolClock, uid: str, data: Mapping[str, Any]) -> dict:
    """
    Create the pending profile of a newly signed-up teacher. Requested classes
    and subjects are kept for the admin to review; nothing is assigned until
    an admin approves the teacher and sets the assignment.
    """
    require_fields(data, "name", "email")
    if await store.get("admins", uid) is not None:
        raise StateConflict(f"A profile already exists for {uid}")

    now = clock.timestamp()
    profile = {
        "email": data["email"],
        "name": data["name"],
        "role": Role.TEACHER.value,
        "department": data.get("department") or "",
        "phone": data.get("phone") or "",
        "assignedClasses": [],
        "assignedSubjects": [],
        "requestedClasses": list(data.get("requestedClasses") or []),
        "requestedSubjects": list(data.get("requestedSubjects") or []),
        "approved": False,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        doc = await store.create(COLLECTION, uid, profile)
    except DuplicateDocument:
        raise StateConflict(f"A profile already exists for {uid}") from None

    logger.info("Teacher %s signed up, awaiting approval", uid)
    return {"uid": uid, **doc}


async def get_teacher_classes(principal: Principal) -> list[dict]:
    require(principal, Capability.VIEW_ASSIGNED_CLASSES)
    return _as_items(principal.assigned_classes)


async def get_teacher_subjects(store: DocumentStore, principal: Principal) -> list[dict]:
    require(principal, Capability.VIEW_ASSIGNED_CLASSES)
    if not principal.assigned_subjects:
        return []
    names = {s["id"]: s.get("name") or s["id"] for s in await store.query("subjects")}
    return [{"id": s, "name": names.get(s, s)} for s in sorted(principal.assigned_subjects)]


async def get_all_classes(store: DocumentStore, principal: Principal) -> list[dict]:
    """Every class known to the school: those assigned to teachers and those students belong to."""
    require(principal, Capability.VIEW_ALL_CLASSES)
    return _as_items(await _known_classes(store))


async def _known_classes(store: DocumentStore) -> set[str]:
    classes = set()
    for teacher in await store.query(COLLECTION):
        classes.update(c for c in teacher.get("assignedClasses") or () if c)
    for student in await store.query("students"):
        if student.get("class"):
            classes.add(student["class"])
    return classes


async def get_class_students(store: DocumentStore, principal: Principal, class_id: str) -> list[dict]:
    require(principal, Capability.VIEW_CLASS_STUDENTS, ClassRef(class_id))
    students = await store.query("students", [where("class", "==", class_id)], order_by="name")
    return [
        {
            "id": s["id"],
            "name": s.get("name", ""),
            "email": s.get("email", ""),
            "registrationNumber": s.get("registrationNumber", ""),
        }
        for s in students
    ]


async def get_dashboard_overview(store: DocumentStore, principal: Principal, clock: SchoolClock) -> dict:
    require(principal, Capability.VIEW_OWN_PROFILE)
    pending_actions = []
    total_classes = len(principal.assigned_classes)
    total_subjects = len(principal.assigned_subjects)

    if principal.is_admin:
        total_students = len(await store.query("students"))
        total_classes = len(await _known_classes(store))
        total_subjects = len(await store.query("subjects"))
    else:
        classes = sorted(principal.assigned_classes)
        total_students = len(await store.query("students", [where("class", "in", classes)])) if classes else 0

        today = clock.today_iso()
        for class_id in classes:
            # Cleared as soon as any teacher has marked the class today
            if await store.get("attendance", f"{class_id}_{today}") is None:
                pending_actions.append({
                    "title": f"Register for {class_id}",
                    "description": f"Attendance has not been marked for {class_id} today",
                    "type": "attendance",
                    "classId": class_id,
                    "actionRequired": True,
                })

    return {
        "totalClasses": total_classes,
        "totalStudents": total_students,
        "totalSubjects": total_subjects,
        "pendingActions": pending_actions,
    }


async def _own_profile(store: DocumentStore, uid: str) -> tuple[str, dict]:
    """The caller's profile and its collection: teachers first, then admins, as at login."""
    for collection in (COLLECTION, "admins"):
        doc = await store.get(collection, uid)
        if doc is not None:
            return collection, doc
    raise ResourceNotFound("Profile", uid)


async def get_teacher_profile(store: DocumentStore, principal: Principal) -> dict:
    require(principal, Capability.VIEW_OWN_PROFILE)
    _, profile = await _own_profile(store, principal.id)
    return profile


async def update_teacher_profile(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require(principal, Capability.EDIT_OWN_PROFILE)
    update = {k: data[k] for k in PROFILE_FIELDS if data.get(k) is not None}
    update["updatedAt"] = clock.timestamp()
    collection, _ = await _own_profile(store, principal.id)
    try:
        await store.update(collection, principal.id, update)
    except DocumentNotFound:
        raise ResourceNotFound("Profile", principal.id) from None
    return {"success": True, "message": "Profile updated successfully"}


async def list_teachers(store: DocumentStore, principal: Principal, approved: bool) -> list[dict]:
    require(principal, Capability.MANAGE_TEACHERS)
    teachers = await store.query(COLLECTION, [where("approved", "==", approved)])
    return [{"uid": t["id"], **t} for t in teachers]


async def approve_teacher(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    teacher_uid: str,
    on_identity_change: IdentityChanged = None,
) -> dict:
    require(principal, Capability.MANAGE_TEACHERS)
    try:
        # Compare-and-swap: only a pending teacher can be approved
        await store.update(
            COLLECTION,
            teacher_uid,
            {"approved": True, "approvedBy": principal.id, "updatedAt": clock.timestamp()},
            expect={"approved": False},
        )
    except DocumentNotFound:
        raise ResourceNotFound("Teacher", teacher_uid) from None
    except ConditionFailed:
        raise StateConflict(f"Teacher {teacher_uid} is already approved") from None

    logger.info("Teacher %s approved by %s", teacher_uid, principal.id)
    if on_identity_change is not None:
        await on_identity_change(teacher_uid)
    return {"success": True, "message": "Teacher approved successfully"}


async def update_teacher_assignment(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    teacher_uid: str,
    data: Mapping[str, Any],
    on_identity_change: IdentityChanged = None,
) -> dict:
    require(principal, Capability.MANAGE_TEACHERS)
    role = data.get("role") or Role.TEACHER.value
    if not Role.is_valid(role):
        raise ValidationFailed(f"Invalid role. Must be one of: {', '.join(Role.get_all())}")

    update = {
        "role": Role.from_string(role).value,
        "departments": list(data.get("departments") or []),
        "assignedClasses": list(data.get("assignedClasses") or []),
        "assignedSubjects": list(data.get("assignedSubjects") or []),
        "updatedAt": clock.timestamp(),
    }
    if data.get("phone") is not None:
        update["phone"] = data["phone"]

    try:
        await store.update(COLLECTION, teacher_uid, update)
    except DocumentNotFound:
        raise ResourceNotFound("Teacher", teacher_uid) from None

    logger.info("Assignments of teacher %s changed by %s", teacher_uid, principal.id)
    if on_identity_change is not None:
        await on_identity_change(teacher_uid)
    return {"success": True, "message": "Teacher assignment updated successfully"}
