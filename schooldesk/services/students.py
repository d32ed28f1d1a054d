"""
Student roster service (admin only).
"""

import logging
import re
from typing import Any, Mapping, Optional

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import ResourceNotFound
from schooldesk.rbac import Capability, Principal, require
from schooldesk.services.common import fetch, require_fields
from schooldesk.store.base import DocumentNotFound, DocumentStore, where

logger = logging.getLogger(__name__)

COLLECTION = "students"
EDITABLE_FIELDS = (
    "name", "email", "class", "session", "dateOfBirth", "phone", "address",
    "parentName", "parentPhone", "parentPhoneNumber", "optionalFees",
)


async def generate_registration_number(store: DocumentStore, clock: SchoolClock) -> str:
    """Next number of the current year, formatted ``YYYY-NNN``."""
    year = clock.today().year
    existing = await store.query(COLLECTION, [
        where("registrationNumber", ">=", f"{year}-"),
        where("registrationNumber", "<", f"{year + 1}-"),
    ])
    pattern = re.compile(rf"^{year}-(\d+)$")
    highest = 0
    for student in existing:
        match = pattern.match(student.get("registrationNumber") or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{year}-{highest + 1:03d}"


async def register_student(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require(principal, Capability.MANAGE_STUDENTS)
    require_fields(data, "name", "email", "class", "session")

    now = clock.timestamp()
    student = {
        "name": data["name"],
        "email": data["email"],
        "class": data["class"],
        "session": data["session"],
        "dateOfBirth": data.get("dateOfBirth") or "",
        "phone": data.get("phone") or "",
        "address": data.get("address") or "",
        "registrationNumber": data.get("registrationNumber") or await generate_registration_number(store, clock),
        "parentName": data.get("parentName") or "",
        "parentPhone": data.get("parentPhone") or "",
        "optionalFees": data.get("optionalFees") or {"schoolBus": {"enabled": False}},
        "enrollmentDate": now,
        "createdAt": now,
        "updatedAt": now,
    }
    doc = await store.add(COLLECTION, student)
    logger.info("Student %s registered as %s", doc["id"], doc["registrationNumber"])
    return doc


async def get_students(store: DocumentStore, principal: Principal, class_id: Optional[str] = None) -> list[dict]:
    require(principal, Capability.VIEW_ALL_STUDENTS)
    if class_id:
        return await store.query(COLLECTION, [where("class", "==", class_id)])
    return await store.query(COLLECTION, order_by="enrollmentDate", descending=True)


async def update_student(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    student_id: str,
    data: Mapping[str, Any],
) -> dict:
    require(principal, Capability.MANAGE_STUDENTS)
    update = {k: data[k] for k in EDITABLE_FIELDS if data.get(k) is not None}
    update["updatedAt"] = clock.timestamp()
    try:
        await store.update(COLLECTION, student_id, update)
    except DocumentNotFound:
        raise ResourceNotFound("Student", student_id) from None
    return {"success": True, "message": "Student updated successfully"}


async def delete_student(store: DocumentStore, principal: Principal, student_id: str) -> dict:
    require(principal, Capability.MANAGE_STUDENTS)
    await fetch(store, COLLECTION, student_id, "Student")
    await store.delete(COLLECTION, student_id)
    return {"success": True, "message": "Student deleted successfully"}
