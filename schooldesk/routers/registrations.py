"""
Subject registration router — which students take which subjects.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.academic import BulkRegistration, RegistrationCreate, RegistrationUpdate
from schooldesk.services import registrations
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/registrations", tags=["Subject Registrations"])


@router.post("")
async def register_subject(
    body: RegistrationCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await registrations.register_student_subject(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


@router.post("/bulk")
async def bulk_register(
    body: BulkRegistration,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    outcome = await registrations.bulk_register_subjects(store, principal, clock, body.to_document())
    summary = outcome["summary"]
    return success_response(
        data=outcome,
        message=f"{summary['successCount']} of {summary['totalAttempted']} students registered",
    )


@router.get("/students/{student_id}")
async def get_student_subjects(
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await registrations.get_student_subjects(store, principal, student_id))


@router.get("/class/{class_id}")
async def get_class_registrations(
    class_id: str,
    subject_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    if subject_id:
        data = await registrations.get_students_for_subject(store, principal, class_id, subject_id)
    else:
        data = await registrations.get_class_subjects(store, principal, class_id)
    return success_response(data=data)


@router.get("/class/{class_id}/summary")
async def get_class_summary(
    class_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await registrations.get_class_subject_summary(store, principal, class_id))


@router.patch("/{registration_id}")
async def update_registration(
    registration_id: str,
    body: RegistrationUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await registrations.update_subject_registration(
        store, principal, clock, registration_id, body.to_document()
    )
    return success_response(data=result, message=result["message"])


@router.delete("/{registration_id}")
async def remove_registration(
    registration_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    result = await registrations.remove_subject_registration(store, principal, registration_id)
    return success_response(data=result, message=result["message"])
