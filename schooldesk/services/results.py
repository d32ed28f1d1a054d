"""
Entering, updating and locking subject results.

Lock check and write are separate store calls: a lock set between them lets
one last write through. Accepted; the check runs immediately before the write.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from schooldesk.core.clock import SchoolClock
from schooldesk.core.errors import ResourceNotFound, SchoolDeskError
from schooldesk.domain import (
    ca_average,
    ensure_results_unlocked,
    final_score,
    grade,
    grade_from_final_score,
    total_score,
)
from schooldesk.rbac import Capability, ClassRef, Principal, RecordRef, SubjectRef, require
from schooldesk.services.common import fetch, require_fields, summarize
from schooldesk.store.base import DocumentNotFound, DocumentStore, WriteOp, where

logger = logging.getLogger(__name__)

COLLECTION = "results"
SUBJECTS = "subjects"
GRADES = ("A", "B", "C", "D", "E", "F")


def result_id(student_id: str, subject_id: str, term_id: Optional[str]) -> str:
    return f"{student_id}_{subject_id}_{term_id or 'final'}"


def assessment_result_id(
    student_id: str, subject_id: str, class_id: str, term_id: Optional[str], session_id: Optional[str]
) -> str:
    session = (session_id or "").replace("/", "_")
    return f"{student_id}_{subject_id}_{class_id}_{term_id or 'final'}_{session}"


def _scores(raw: Optional[Mapping[str, Any]]) -> dict:
    raw = raw or {}
    return {
        "classwork": raw.get("classwork") or 0,
        "test": raw.get("test") or 0,
        "examination": raw.get("examination") or 0,
    }


async def _ensure_unlocked(store: DocumentStore, subject_id: str) -> None:
    ensure_results_unlocked(subject_id, await store.get(SUBJECTS, subject_id))


def _result_ref(doc: Mapping[str, Any]) -> RecordRef:
    return RecordRef(
        author_id=str(doc.get("teacherId") or ""),
        class_id=doc.get("classId"),
        subject_id=doc.get("subjectId"),
    )


def _build_result(principal: Principal, data: Mapping[str, Any], class_id: str, now: str) -> dict:
    scores = _scores(data.get("scores"))
    total = total_score(**scores)
    return {
        "studentId": data["studentId"],
        "subjectId": data["subjectId"],
        "classId": class_id,
        "teacherId": principal.id,
        "termId": data.get("termId") or "final",
        "scores": scores,
        "totalScore": total,
        "grade": grade(total),
        "comments": data.get("comments") or "",
        "status": "submitted",
        "submittedAt": now,
        "updatedAt": now,
    }


async def enter_result(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require_fields(data, "studentId", "subjectId", "classId")
    subject_id = data["subjectId"]
    require(principal, Capability.ENTER_RESULTS, SubjectRef(subject_id))

    record_id = result_id(data["studentId"], subject_id, data.get("termId"))
    existing = await store.get(COLLECTION, record_id)
    if existing is not None:
        # Re-entering an existing result is an edit of someone's record
        require(principal, Capability.EDIT_RESULT, _result_ref(existing))

    await _ensure_unlocked(store, subject_id)
    result = _build_result(principal, data, data["classId"], clock.timestamp())
    await store.set(COLLECTION, record_id, result)

    return {
        "success": True,
        "resultId": record_id,
        "totalScore": result["totalScore"],
        "grade": result["grade"],
        "message": "Result entered successfully",
    }


async def update_result(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    record_id: str,
    data: Mapping[str, Any],
) -> dict:
    existing = await fetch(store, COLLECTION, record_id, "Result")
    require(principal, Capability.EDIT_RESULT, _result_ref(existing))
    await _ensure_unlocked(store, existing["subjectId"])

    scores = _scores({**(existing.get("scores") or {}), **(data.get("scores") or {})})
    total = total_score(**scores)
    update = {
        "scores": scores,
        "totalScore": total,
        "grade": grade(total),
        "comments": data.get("comments") or existing.get("comments", ""),
        "updatedAt": clock.timestamp(),
    }
    try:
        await store.update(COLLECTION, record_id, update)
    except DocumentNotFound:
        raise ResourceNotFound("Result", record_id) from None

    return {"success": True, "totalScore": total, "grade": update["grade"], "message": "Result updated successfully"}


async def bulk_enter_results(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    class_id: str,
    items: Sequence[Mapping[str, Any]],
) -> dict:
    """
    Enter many results for one class. Each item is authorized and checked on
    its own; the accepted ones are written in a single batch and the rest are
    reported per item.
    """
    now = clock.timestamp()
    ops: list[WriteOp] = []
    successful, failed = [], []

    for item in items:
        try:
            require_fields(item, "studentId", "subjectId")
            require(principal, Capability.ENTER_RESULTS, SubjectRef(item["subjectId"]))
            record_id = result_id(item["studentId"], item["subjectId"], item.get("termId"))
            existing = await store.get(COLLECTION, record_id)
            if existing is not None:
                require(principal, Capability.EDIT_RESULT, _result_ref(existing))
            await _ensure_unlocked(store, item["subjectId"])
        except SchoolDeskError as exc:
            failed.append({"studentId": item.get("studentId"), "subjectId": item.get("subjectId"), "error": exc.message, "code": exc.code})
            continue

        ops.append(WriteOp("set", COLLECTION, record_id, _build_result(principal, item, class_id, now)))
        successful.append({"studentId": item["studentId"], "subjectId": item["subjectId"], "resultId": record_id})

    if ops:
        await store.batch_write(ops)
    logger.info("Bulk results for class %s: %d written, %d rejected", class_id, len(successful), len(failed))
    return summarize(successful, failed)


async def get_results_by_subject(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    subject_id: str,
) -> list[dict]:
    require(principal, Capability.VIEW_RESULTS, SubjectRef(subject_id))
    filters = [where("classId", "==", class_id), where("subjectId", "==", subject_id)]
    if not principal.is_admin:
        filters.append(where("teacherId", "==", principal.id))
    return await store.query(COLLECTION, filters)


async def get_grade_distribution(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    subject_id: str,
) -> dict:
    results = await get_results_by_subject(store, principal, class_id, subject_id)

    distribution = {g: 0 for g in GRADES}
    for result in results:
        if result.get("grade") in distribution:
            distribution[result["grade"]] += 1
    average = sum(r.get("totalScore") or 0 for r in results) / len(results) if results else 0

    return {
        "classId": class_id,
        "subjectId": subject_id,
        "totalStudents": len(results),
        "gradeDistribution": distribution,
        "averageScore": f"{average:.2f}",
    }


async def get_admin_results(
    store: DocumentStore,
    principal: Principal,
    class_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> list[dict]:
    require(principal, Capability.VIEW_ALL_RESULTS)
    filters = []
    if class_id:
        filters.append(where("classId", "==", class_id))
    if subject_id:
        filters.append(where("subjectId", "==", subject_id))
    if term_id:
        filters.append(where("termId", "==", term_id))
    if session_id:
        filters.append(where("sessionId", "==", session_id))
    return await store.query(COLLECTION, filters)


async def set_results_lock(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    subject_id: str,
    locked: bool,
) -> dict:
    require(principal, Capability.LOCK_RESULTS, SubjectRef(subject_id))
    await store.set(
        SUBJECTS,
        subject_id,
        {"resultsLocked": locked, "lockedBy": principal.id, "updatedAt": clock.timestamp()},
        merge=True,
    )
    logger.info("Results for subject %s %s by %s", subject_id, "locked" if locked else "unlocked", principal.id)
    return {"success": True, "subjectId": subject_id, "resultsLocked": locked}


async def submit_result(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    """
    Submit a continuous-assessment result: three CA tests (out of 30 each) and
    an exam (out of 70). The final score is the CA average plus the exam and is
    graded on the 70/60/50/45/40 scale. One result per student, subject, class,
    term and session; resubmitting merges over the stored one.
    """
    require_fields(data, "studentId", "subjectId", "classId")
    subject_id = data["subjectId"]
    require(principal, Capability.ENTER_RESULTS, SubjectRef(subject_id))

    record_id = assessment_result_id(
        data["studentId"], subject_id, data["classId"], data.get("termId"), data.get("sessionId")
    )
    existing = await store.get(COLLECTION, record_id)
    if existing is not None:
        require(principal, Capability.EDIT_RESULT, _result_ref(existing))

    await _ensure_unlocked(store, subject_id)

    ca1, ca2, ca3, exam = (data.get(k) or 0 for k in ("ca1", "ca2", "ca3", "exam"))
    score = final_score(ca1, ca2, ca3, exam)
    letter = grade_from_final_score(score)
    now = clock.timestamp()
    result = {
        "studentId": data["studentId"],
        "studentName": data.get("studentName") or "",
        "subjectId": subject_id,
        "subjectName": data.get("subjectName") or "",
        "classId": data["classId"],
        "termId": data.get("termId") or "final",
        "sessionId": data.get("sessionId") or "",
        "teacherId": principal.id,
        "teacherName": principal.name,
        "ca1": ca1,
        "ca2": ca2,
        "ca3": ca3,
        "exam": exam,
        "caAverage": ca_average(ca1, ca2, ca3),
        "finalScore": score,
        # Distribution and averages read totalScore for both kinds of result
        "totalScore": score,
        "grade": letter,
        "comments": data.get("comments") or "",
        "status": "submitted",
        "updatedAt": now,
    }
    if existing is None:
        result["submittedAt"] = now
    await store.set(COLLECTION, record_id, result, merge=True)

    logger.info("Result %s submitted by %s: %s (%s)", record_id, principal.id, score, letter)
    return {
        "success": True,
        "resultId": record_id,
        "finalScore": score,
        "grade": letter,
        "message": "Result submitted successfully",
    }


async def get_student_results(
    store: DocumentStore, principal: Principal, class_id: str, student_id: str
) -> list[dict]:
    """A student's results across all subjects in one class."""
    require(principal, Capability.VIEW_CLASS_STUDENTS, ClassRef(class_id))
    return await store.query(COLLECTION, [where("studentId", "==", student_id), where("classId", "==", class_id)])


async def get_student_term_results(
    store: DocumentStore, principal: Principal, student_id: str, term_id: Optional[str] = None
) -> list[dict]:
    student = await fetch(store, "students", student_id, "Student")
    require(principal, Capability.VIEW_CLASS_STUDENTS, ClassRef(student.get("class") or ""))
    return await store.query(
        COLLECTION, [where("studentId", "==", student_id), where("termId", "==", term_id or "final")]
    )


async def get_pending_results(store: DocumentStore, principal: Principal) -> list[dict]:
    """Results this teacher has submitted that are still awaiting review."""
    require(principal, Capability.VIEW_ASSIGNED_CLASSES)
    return await store.query(
        COLLECTION, [where("teacherId", "==", principal.id), where("status", "==", "submitted")]
    )


async def get_term_results(
    store: DocumentStore,
    principal: Principal,
    class_id: str,
    subject_id: str,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> list[dict]:
    """Every result for a class and subject in a term, whoever entered it."""
    require(principal, Capability.VIEW_RESULTS, SubjectRef(subject_id))
    filters = [
        where("classId", "==", class_id),
        where("subjectId", "==", subject_id),
        where("termId", "==", term_id or "final"),
    ]
    if session_id:
        filters.append(where("sessionId", "==", session_id))
    return await store.query(COLLECTION, filters)


async def get_combined_results(
    store: DocumentStore,
    principal: Principal,
    class_id: Optional[str] = None,
    term_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> list[dict]:
    """
    Broadsheet: one row per student with every subject's score and grade and
    the student's average over the subjects found.
    """
    require(principal, Capability.VIEW_ALL_RESULTS)
    filters = []
    if class_id:
        filters.append(where("classId", "==", class_id))
    if term_id:
        filters.append(where("termId", "==", term_id))
    if session_id:
        filters.append(where("sessionId", "==", session_id))

    rows: dict[str, dict] = {}
    for result in await store.query(COLLECTION, filters):
        row = rows.setdefault(result["studentId"], {
            "studentId": result["studentId"],
            "studentName": result.get("studentName") or "",
            "classId": result.get("classId"),
            "subjects": {},
        })
        if not row["studentName"] and result.get("studentName"):
            row["studentName"] = result["studentName"]
        row["subjects"][result["subjectId"]] = {
            "score": result.get("totalScore") or 0,
            "grade": result.get("grade"),
        }

    for row in rows.values():
        scores = [s["score"] for s in row["subjects"].values()]
        row["averageScore"] = round(sum(scores) / len(scores), 2) if scores else 0
    return sorted(rows.values(), key=lambda r: r["studentId"])
