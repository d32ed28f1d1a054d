"""
Attendance router — daily class registers.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.academic import AttendanceTake, AttendanceUpdate
from schooldesk.services import attendance
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])


@router.post("/{class_id}")
async def take_attendance(
    class_id: str,
    body: AttendanceTake,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await attendance.take_attendance(store, principal, clock, class_id, body.to_document())
    return success_response(data=result, message=result["message"])


@router.patch("/{attendance_id}")
async def update_attendance(
    attendance_id: str,
    body: AttendanceUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    """Same-day correction by the teacher who took the register."""
    result = await attendance.update_attendance(store, principal, clock, attendance_id, body.to_document())
    return success_response(data=result, message=result["message"])


@router.get("/{class_id}/today")
async def get_today(
    class_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    return success_response(data=await attendance.get_today_attendance(store, principal, clock, class_id))


@router.get("/{class_id}/history")
async def get_history(
    class_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    subject: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    records = await attendance.get_attendance_history(store, principal, class_id, start_date, end_date, subject)
    return success_response(data=records)


@router.get("/{class_id}/summary")
async def get_summary(
    class_id: str,
    date: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    day = date or clock.today_iso()
    return success_response(data=await attendance.get_class_attendance_summary(store, principal, class_id, day))


@router.get("/{class_id}/students/{student_id}")
async def get_student_report(
    class_id: str,
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    report = await attendance.get_student_attendance_report(store, principal, class_id, student_id)
    return success_response(data=report)


@router.get("/{class_id}/stats")
async def get_stats(
    class_id: str,
    date: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    return success_response(data=await attendance.get_attendance_stats(store, principal, clock, class_id, date))
