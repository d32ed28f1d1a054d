"""
Students router — roster management (admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.school import StudentCreate, StudentUpdate
from schooldesk.services import students
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/students", tags=["Students"])


@router.post("")
async def register_student(
    body: StudentCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    student = await students.register_student(store, principal, clock, body.to_document())
    return success_response(
        data=student,
        message=f"Student registered successfully (Reg #: {student['registrationNumber']})",
    )


@router.get("")
async def list_students(
    class_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await students.get_students(store, principal, class_id))


@router.patch("/{student_id}")
async def update_student(
    student_id: str,
    body: StudentUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await students.update_student(store, principal, clock, student_id, body.to_document())
    return success_response(data=result, message=result["message"])


@router.delete("/{student_id}")
async def delete_student(
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    result = await students.delete_student(store, principal, student_id)
    return success_response(data=result, message=result["message"])
