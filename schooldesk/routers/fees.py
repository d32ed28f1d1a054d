"""
Fees router — structures, payments, receipts and outstanding balances (admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.config import settings
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.school import FeeStructureCreate, PaymentCreate
from schooldesk.services import fees
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/fees", tags=["Fees"])


# ===== STRUCTURES =====
# Sessions such as 2024/2025 are sent as 2024-2025 in paths.

@router.put("/structures/{class_id}/{session}/{term}")
async def set_fee_structure(
    class_id: str,
    session: str,
    term: str,
    body: FeeStructureCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    structure = await fees.create_fee_structure(store, principal, clock, class_id, session, term, body.items)
    return success_response(data=structure, message="Fee structure saved")


@router.get("/structures/{class_id}/{session}/{term}")
async def get_fee_structure(
    class_id: str,
    session: str,
    term: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_fee_structure(store, principal, class_id, session, term))


@router.get("/structures/{class_id}/{session}")
async def get_class_fee_structures(
    class_id: str,
    session: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_class_fee_structures(store, principal, class_id, session))


# ===== PAYMENTS =====

@router.post("/payments")
async def record_payment(
    body: PaymentCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    payment = await fees.record_payment(store, principal, clock, body.to_document())
    return success_response(data=payment, message=f"Payment recorded ({payment['status']})")


@router.delete("/payments/{payment_id}")
async def delete_payment(
    payment_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    outcome = await fees.delete_payment(store, principal, clock, payment_id)
    return success_response(data=outcome, message="Payment deleted")


@router.get("/students/{student_id}")
async def get_student_fee_history(
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_student_fee_records(store, principal, student_id))


@router.get("/students/{student_id}/{session}/{term}")
async def get_student_fees(
    student_id: str,
    session: str,
    term: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    record = await fees.get_student_fee_record(store, principal, student_id, session, term)
    payments = await fees.get_student_payments(store, principal, student_id, session, term)
    return success_response(data={"feeRecord": record, "payments": payments})


@router.get("/receipts/{payment_id}")
async def get_receipt(
    payment_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    receipt = await fees.generate_receipt(store, principal, payment_id, school_name=settings.APP_NAME)
    return success_response(data=receipt)


# ===== REPORTING =====

@router.get("/pending/{class_id}")
async def get_pending(
    class_id: str,
    session: str,
    term: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_students_with_pending_fees(store, principal, class_id, session, term))


@router.get("/summary/{class_id}")
async def get_summary(
    class_id: str,
    session: str,
    term: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_class_fee_summary(store, principal, class_id, session, term))


@router.get("/reminders/{class_id}")
async def get_reminders(
    class_id: str,
    session: str,
    term: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    """Parents to remind about outstanding balances."""
    return success_response(data=await fees.get_fee_reminder_list(store, principal, class_id, session, term))


@router.get("/statistics")
async def get_statistics(
    session: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await fees.get_school_fee_statistics(store, principal, session))
