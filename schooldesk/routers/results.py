"""
Results router — result entry, bulk entry, distribution and subject locks.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.academic import BulkResults, ResultEnter, ResultsLock, ResultSubmit, ResultUpdate
from schooldesk.services import results
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/results", tags=["Results"])


@router.post("")
async def enter_result(
    body: ResultEnter,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await results.enter_result(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


@router.post("/bulk/{class_id}")
async def bulk_enter_results(
    class_id: str,
    body: BulkResults,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    items = [item.to_document() for item in body.results]
    outcome = await results.bulk_enter_results(store, principal, clock, class_id, items)
    summary = outcome["summary"]
    return success_response(
        data=outcome,
        message=f"{summary['successCount']} of {summary['totalAttempted']} results entered",
    )


@router.get("")
async def get_all_results(
    class_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    """Admin view across classes, subjects, terms and sessions."""
    return success_response(
        data=await results.get_admin_results(store, principal, class_id, subject_id, term_id, session_id)
    )


@router.post("/submit")
async def submit_result(
    body: ResultSubmit,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await results.submit_result(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


@router.get("/pending")
async def get_pending_results(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await results.get_pending_results(store, principal))


@router.get("/combined")
async def get_combined_results(
    class_id: Optional[str] = None,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    """Broadsheet of every subject per student (admin)."""
    return success_response(
        data=await results.get_combined_results(store, principal, class_id, term_id, session_id)
    )


@router.get("/students/{student_id}/terms/{term_id}")
async def get_student_term_results(
    student_id: str,
    term_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await results.get_student_term_results(store, principal, student_id, term_id))


@router.get("/classes/{class_id}/students/{student_id}")
async def get_student_results(
    class_id: str,
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await results.get_student_results(store, principal, class_id, student_id))


@router.put("/subjects/{subject_id}/lock")
async def set_lock(
    subject_id: str,
    body: ResultsLock,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    outcome = await results.set_results_lock(store, principal, clock, subject_id, body.locked)
    return success_response(data=outcome, message="Results locked" if body.locked else "Results unlocked")


@router.patch("/{result_id}")
async def update_result(
    result_id: str,
    body: ResultUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await results.update_result(store, principal, clock, result_id, body.to_document())
    return success_response(data=result, message=result["message"])


@router.get("/{class_id}/{subject_id}")
async def get_results_by_subject(
    class_id: str,
    subject_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await results.get_results_by_subject(store, principal, class_id, subject_id))


@router.get("/{class_id}/{subject_id}/distribution")
async def get_distribution(
    class_id: str,
    subject_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await results.get_grade_distribution(store, principal, class_id, subject_id))


@router.get("/{class_id}/{subject_id}/term")
async def get_term_results(
    class_id: str,
    subject_id: str,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    """Result sheet for a class and subject in one term, across teachers."""
    return success_response(
        data=await results.get_term_results(store, principal, class_id, subject_id, term_id, session_id)
    )
