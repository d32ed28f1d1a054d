"""
Teachers router — own classes/subjects/profile, admin approval and assignments.
"""

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import IdentityProvider, get_current_principal, get_identity_provider
from schooldesk.rbac import Principal
from schooldesk.schemas.school import ProfileUpdate, TeacherAssignment
from schooldesk.services import teachers
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/teachers", tags=["Teachers"])


# ===== OWN =====

@router.get("/me/classes")
async def my_classes(principal: Principal = Depends(get_current_principal)):
    return success_response(data=await teachers.get_teacher_classes(principal))


@router.get("/me/subjects")
async def my_subjects(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.get_teacher_subjects(store, principal))


@router.get("/me/overview")
async def my_overview(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    """Dashboard counts plus registers still to be taken today."""
    return success_response(data=await teachers.get_dashboard_overview(store, principal, clock))


@router.get("/me/profile")
async def my_profile(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.get_teacher_profile(store, principal))


@router.patch("/me/profile")
async def update_my_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await teachers.update_teacher_profile(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


# ===== CLASSES =====

@router.get("/classes")
async def all_classes(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.get_all_classes(store, principal))


@router.get("/classes/{class_id}/students")
async def class_students(
    class_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.get_class_students(store, principal, class_id))


# ===== ADMIN =====

@router.get("/pending")
async def pending_teachers(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.list_teachers(store, principal, approved=False))


@router.get("/approved")
async def approved_teachers(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await teachers.list_teachers(store, principal, approved=True))


@router.post("/{teacher_uid}/approve")
async def approve_teacher(
    teacher_uid: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    result = await teachers.approve_teacher(
        store, principal, clock, teacher_uid, on_identity_change=identity.notify_identity_change
    )
    return success_response(data=result, message=result["message"])


@router.put("/{teacher_uid}/assignment")
async def update_assignment(
    teacher_uid: str,
    body: TeacherAssignment,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    result = await teachers.update_teacher_assignment(
        store, principal, clock, teacher_uid, body.to_document(), on_identity_change=identity.notify_identity_change
    )
    return success_response(data=result, message=result["message"])
