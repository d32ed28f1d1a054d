"""
Fee structures, student fee records, payments and receipts.

Admin only. A student's fee record for a term holds totalFee, totalPaid,
balance and status; it is recomputed from the payments on every payment and
written in the same batch as the payment itself.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import ResourceNotFound, ValidationFailed
from schooldesk.domain import UNPAID, fee_status
from schooldesk.rbac import Capability, Principal, require
from schooldesk.services.common import fetch, require_fields
from schooldesk.store.base import DocumentStore, WriteOp, where

logger = logging.getLogger(__name__)

STRUCTURES = "feeStructures"
STUDENT_FEES = "studentFees"
PAYMENTS = "payments"
PAYMENT_METHODS = ("Cash", "Transfer", "POS")


def sanitize_session(session: str) -> str:
    """``2024/2025`` -> ``2024-2025``; sessions are stored and keyed in this form."""
    return session.replace("/", "-")


def structure_id(class_id: str, session: str, term: str) -> str:
    return f"{class_id}_{sanitize_session(session)}_{term}"


def fee_record_id(student_id: str, session: str, term: str) -> str:
    return f"{student_id}_{sanitize_session(session)}_{term}"


def _new_fee_record(student_id: str, class_id: str, session: str, term: str, total_fee: float, now: str) -> dict:
    return {
        "studentId": student_id,
        "classId": class_id,
        "session": session,
        "term": term,
        "totalFee": total_fee,
        "totalPaid": 0,
        "balance": total_fee,
        "status": UNPAID,
        "createdAt": now,
        "updatedAt": now,
    }


async def create_fee_structure(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    class_id: str,
    session: str,
    term: str,
    items: Mapping[str, float],
) -> dict:
    """
    Set the fee structure for a class and term, then bring every student's
    fee record in the class in line with the new total. Payments already made
    are kept; balance and status are recomputed.
    """
    require(principal, Capability.EDIT_FEE_STRUCTURE)
    session = sanitize_session(session)
    if not items:
        raise ValidationFailed("A fee structure needs at least one item")
    if any(amount is None or amount < 0 for amount in items.values()):
        raise ValidationFailed("Fee amounts must be zero or more")

    now = clock.timestamp()
    total_fee = sum(items.values())
    structure = {
        "items": dict(items),
        "totalFee": total_fee,
        "classId": class_id,
        "session": session,
        "term": term,
        "createdBy": principal.id,
        "createdByName": principal.name,
        "updatedAt": now,
    }

    ops = [WriteOp("set", STRUCTURES, structure_id(class_id, session, term), structure)]
    students = await store.query("students", [where("class", "==", class_id)])
    for student in students:
        record_id = fee_record_id(student["id"], session, term)
        existing = await store.get(STUDENT_FEES, record_id)
        if existing is None:
            ops.append(WriteOp("set", STUDENT_FEES, record_id,
                               _new_fee_record(student["id"], class_id, session, term, total_fee, now)))
            continue
        total_paid = existing.get("totalPaid") or 0
        ops.append(WriteOp("update", STUDENT_FEES, record_id, {
            "totalFee": total_fee,
            "balance": total_fee - total_paid,
            "status": fee_status(total_fee, total_paid),
            "updatedAt": now,
        }))

    await store.batch_write(ops)
    logger.info("Fee structure %s set to %s for %d students", structure_id(class_id, session, term), total_fee, len(students))
    return {**structure, "studentsInitialized": len(students)}


async def get_fee_structure(store: DocumentStore, principal: Principal, class_id: str, session: str, term: str) -> dict:
    require(principal, Capability.VIEW_FEE_STRUCTURE)
    return await fetch(store, STRUCTURES, structure_id(class_id, session, term), "Fee structure")


async def get_student_fee_record(
    store: DocumentStore, principal: Principal, student_id: str, session: str, term: str
) -> dict:
    require(principal, Capability.VIEW_STUDENT_FEES)
    return await fetch(store, STUDENT_FEES, fee_record_id(student_id, session, term), "Fee record")


async def get_student_payments(
    store: DocumentStore, principal: Principal, student_id: str, session: str, term: str
) -> list[dict]:
    require(principal, Capability.VIEW_STUDENT_FEES)
    session = sanitize_session(session)
    return await store.query(
        PAYMENTS,
        [where("studentId", "==", student_id), where("session", "==", session), where("term", "==", term)],
        order_by="recordedAt",
        descending=True,
    )


async def _fee_record_for_payment(
    store: DocumentStore, student: Mapping[str, Any], session: str, term: str, now: str
) -> dict:
    record = await store.get(STUDENT_FEES, fee_record_id(student["id"], session, term))
    if record is not None:
        return record
    # First payment before the record was initialized: derive it from the class structure
    structure = await store.get(STRUCTURES, structure_id(student.get("class", ""), session, term))
    if structure is None:
        raise ResourceNotFound("Fee structure", structure_id(student.get("class", ""), session, term))
    return _new_fee_record(student["id"], student["class"], session, term, structure.get("totalFee") or 0, now)


async def record_payment(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require(principal, Capability.RECORD_PAYMENTS)
    require_fields(data, "studentId", "session", "term", "amount")
    amount = data["amount"]
    if amount <= 0:
        raise ValidationFailed("Payment amount must be greater than zero")
    method = data.get("method") or "Cash"
    if method not in PAYMENT_METHODS:
        raise ValidationFailed(f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}")

    student = await fetch(store, "students", data["studentId"], "Student")
    session, term = sanitize_session(data["session"]), data["term"]
    now = clock.timestamp()
    record = await _fee_record_for_payment(store, student, session, term, now)

    previous = await store.query(PAYMENTS, [
        where("studentId", "==", student["id"]),
        where("session", "==", session),
        where("term", "==", term),
    ])
    total_paid = sum(p.get("amount") or 0 for p in previous) + amount
    total_fee = record.get("totalFee") or 0

    payment_id = uuid.uuid4().hex
    payment = {
        "paymentId": payment_id,
        "studentId": student["id"],
        "classId": student.get("class"),
        "session": session,
        "term": term,
        "amount": amount,
        "date": data.get("date") or clock.today_iso(),
        "method": method,
        "receivedBy": data.get("receivedBy") or "",
        "reference": data.get("reference") or "",
        "recordedBy": principal.id,
        "recordedByName": principal.name,
        "recordedAt": now,
    }
    balance = {
        **record,
        "totalPaid": total_paid,
        "balance": total_fee - total_paid,
        "status": fee_status(total_fee, total_paid),
        "updatedAt": now,
    }
    balance.pop("id", None)

    await store.batch_write([
        WriteOp("create", PAYMENTS, payment_id, payment),
        WriteOp("set", STUDENT_FEES, fee_record_id(student["id"], session, term), balance),
    ])
    logger.info("Payment %s of %s recorded for %s (%s)", payment_id, amount, student["id"], balance["status"])
    return {
        **payment,
        "totalPaid": total_paid,
        "balance": balance["balance"],
        "status": balance["status"],
    }


async def generate_receipt(
    store: DocumentStore, principal: Principal, payment_id: str, school_name: Optional[str] = None
) -> dict:
    require(principal, Capability.GENERATE_RECEIPTS)
    payment = await fetch(store, PAYMENTS, payment_id, "Payment")
    student = await fetch(store, "students", payment["studentId"], "Student")
    record = await store.get(STUDENT_FEES, fee_record_id(student["id"], payment["session"], payment["term"]))

    return {
        "receiptNumber": payment_id,
        "paymentDate": payment.get("date"),
        "paymentMethod": payment.get("method"),
        "paymentAmount": payment.get("amount"),
        "paymentReference": payment.get("reference"),
        "receivedBy": payment.get("receivedBy"),
        "studentId": student["id"],
        "studentName": student.get("name"),
        "registrationNumber": student.get("registrationNumber"),
        "className": student.get("class"),
        "session": payment["session"],
        "term": payment["term"],
        "feeRecord": record,
        "schoolName": school_name,
    }


async def get_students_with_pending_fees(
    store: DocumentStore, principal: Principal, class_id: str, session: str, term: str
) -> list[dict]:
    require(principal, Capability.VIEW_STUDENT_FEES)
    session = sanitize_session(session)
    students = {s["id"]: s for s in await store.query("students", [where("class", "==", class_id)])}
    records = await store.query(STUDENT_FEES, [
        where("classId", "==", class_id),
        where("session", "==", session),
        where("term", "==", term),
        where("balance", ">", 0),
    ])
    pending = []
    for record in records:
        student = students.get(record.get("studentId"))
        if student is None:
            continue
        pending.append({
            **record,
            "name": student.get("name"),
            "parentPhoneNumber": student.get("parentPhoneNumber") or student.get("parentPhone") or "",
        })
    return pending


async def get_class_fee_summary(
    store: DocumentStore, principal: Principal, class_id: str, session: str, term: str
) -> dict:
    require(principal, Capability.VIEW_STUDENT_FEES)
    session = sanitize_session(session)
    students = await store.query("students", [where("class", "==", class_id)])
    records = await store.query(STUDENT_FEES, [
        where("classId", "==", class_id),
        where("session", "==", session),
        where("term", "==", term),
    ])
    expected = sum(r.get("totalFee") or 0 for r in records)
    collected = sum(r.get("totalPaid") or 0 for r in records)
    return {
        "classId": class_id,
        "session": session,
        "term": term,
        "totalStudents": len(students),
        "totalExpected": expected,
        "totalCollected": collected,
        "totalOutstanding": expected - collected,
        "collectionRate": round(collected / expected * 100, 2) if expected > 0 else 0,
        "feeRecords": records,
    }


async def get_class_fee_structures(store: DocumentStore, principal: Principal, class_id: str, session: str) -> dict:
    """Every term's structure for a class in one session, keyed by term."""
    require(principal, Capability.VIEW_FEE_STRUCTURE)
    structures = await store.query(STRUCTURES, [
        where("classId", "==", class_id),
        where("session", "==", sanitize_session(session)),
    ])
    return {s["term"]: s for s in structures}


async def get_student_fee_records(store: DocumentStore, principal: Principal, student_id: str) -> list[dict]:
    """A student's fee records across all sessions and terms."""
    require(principal, Capability.VIEW_STUDENT_FEES)
    records = await store.query(STUDENT_FEES, [where("studentId", "==", student_id)])
    return sorted(records, key=lambda r: (r.get("session") or "", r.get("term") or ""))


async def delete_payment(store: DocumentStore, principal: Principal, clock: SchoolClock, payment_id: str) -> dict:
    """
    Remove a payment and recompute the fee record from the payments left, in
    one batch.
    """
    require(principal, Capability.RECORD_PAYMENTS)
    payment = await fetch(store, PAYMENTS, payment_id, "Payment")
    student_id, session, term = payment["studentId"], payment["session"], payment["term"]

    ops = [WriteOp("delete", PAYMENTS, payment_id)]
    remaining = await store.query(PAYMENTS, [
        where("studentId", "==", student_id),
        where("session", "==", session),
        where("term", "==", term),
    ])
    total_paid = sum(p.get("amount") or 0 for p in remaining if p["id"] != payment_id)

    record_id = fee_record_id(student_id, session, term)
    record = await store.get(STUDENT_FEES, record_id)
    outcome = {"success": True, "paymentId": payment_id, "totalPaid": total_paid}
    if record is not None:
        total_fee = record.get("totalFee") or 0
        outcome.update(balance=total_fee - total_paid, status=fee_status(total_fee, total_paid))
        ops.append(WriteOp("update", STUDENT_FEES, record_id, {
            "totalPaid": total_paid,
            "balance": outcome["balance"],
            "status": outcome["status"],
            "updatedAt": clock.timestamp(),
        }))

    await store.batch_write(ops)
    logger.info("Payment %s of %s deleted for %s by %s", payment_id, payment.get("amount"), student_id, principal.id)
    return outcome


async def get_fee_reminder_list(
    store: DocumentStore, principal: Principal, class_id: str, session: str, term: str
) -> list[dict]:
    """Students owing fees whose parent can be reached by phone, for bulk SMS export."""
    pending = await get_students_with_pending_fees(store, principal, class_id, session, term)
    return [
        {
            "studentId": p["studentId"],
            "studentName": p.get("name"),
            "parentPhone": p["parentPhoneNumber"],
            "balance": p.get("balance"),
            "dueAmount": p.get("balance"),
            "term": term,
        }
        for p in pending
        if p.get("parentPhoneNumber")
    ]


async def get_school_fee_statistics(
    store: DocumentStore, principal: Principal, session: Optional[str] = None
) -> dict:
    """School-wide totals with one summary per class and term that has fees set."""
    require(principal, Capability.VIEW_STUDENT_FEES)
    filters = [where("session", "==", sanitize_session(session))] if session else []

    summaries: dict[tuple, dict] = {}
    for record in await store.query(STUDENT_FEES, filters):
        key = (record.get("classId"), record.get("session"), record.get("term"))
        summary = summaries.setdefault(key, {
            "classId": key[0],
            "session": key[1],
            "term": key[2],
            "totalStudents": 0,
            "totalExpected": 0,
            "totalCollected": 0,
        })
        summary["totalStudents"] += 1
        summary["totalExpected"] += record.get("totalFee") or 0
        summary["totalCollected"] += record.get("totalPaid") or 0

    class_summaries = []
    for key in sorted(summaries, key=lambda k: tuple(part or "" for part in k)):
        summary = summaries[key]
        if summary["totalExpected"] <= 0:
            continue
        summary["totalOutstanding"] = summary["totalExpected"] - summary["totalCollected"]
        class_summaries.append(summary)

    expected = sum(s["totalExpected"] for s in class_summaries)
    collected = sum(s["totalCollected"] for s in class_summaries)
    return {
        "schoolTotalExpected": expected,
        "schoolTotalCollected": collected,
        "schoolTotalOutstanding": expected - collected,
        "classSummaries": class_summaries,
    }
