"""
HTTP surface — envelope, status codes and auth, driven through the ASGI app
with mock bearer tokens against the in-memory store.
"""

import httpx
import pytest
from httpx import ASGITransport

from schooldesk.core.clock import get_clock
from schooldesk.core.database import set_store
from schooldesk.main import app

pytestmark = pytest.mark.anyio("asyncio")

ADMIN = {"Authorization": "Bearer mock-admin-1"}
TEACHER = {"Authorization": "Bearer mock-t-math"}
OTHER_TEACHER = {"Authorization": "Bearer mock-t-eng"}
PENDING = {"Authorization": "Bearer mock-t-new"}

REGISTER = {"students": [{"studentId": "s1", "studentName": "Amaka", "status": "present"}]}


@pytest.fixture
async def client(store, clock):
    set_store(store)
    app.dependency_overrides[get_clock] = lambda: clock
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    set_store(None)


async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


class TestAuthentication:
    async def test_missing_token(self, client):
        r = await client.get("/api/auth/me")
        assert r.status_code in (401, 403)
        assert r.json()["success"] is False

    async def test_unknown_token(self, client):
        r = await client.get("/api/auth/me", headers={"Authorization": "Bearer mock-nobody"})
        assert r.status_code == 401
        assert r.json()["data"]["code"] == "unauthenticated"

    async def test_unapproved_teacher_is_rejected(self, client):
        r = await client.get("/api/auth/me", headers=PENDING)
        assert r.status_code == 403

    async def test_me(self, client):
        r = await client.get("/api/auth/me", headers=TEACHER)
        body = r.json()
        assert r.status_code == 200
        assert body["success"] is True
        assert body["data"]["role"] == "teacher"
        assert body["data"]["assignedClasses"] == ["JSS1", "JSS2"]
        assert body["data"]["permissions"]["manage_fees"] is False

    async def test_authorize_endpoint(self, client):
        r = await client.post("/api/auth/authorize", headers=TEACHER,
                              json={"capability": "take_attendance", "classId": "SS3"})
        assert r.json()["data"] == {
            "allowed": False, "reason": "not assigned to this class", "code": "not_assigned_to_class",
        }

        r = await client.post("/api/auth/authorize", headers=ADMIN, json={"capability": "launch_rockets"})
        assert r.status_code == 200
        assert r.json()["data"]["code"] == "unknown_capability"


class TestErrorEnvelope:
    async def test_access_denied(self, client):
        r = await client.post("/api/attendance/SS3", headers=TEACHER, json=REGISTER)
        assert r.status_code == 403
        assert r.json() == {
            "success": False,
            "data": {"code": "not_assigned_to_class", "retryable": False},
            "message": "Access denied: not assigned to this class",
        }

    async def test_duplicate_register(self, client):
        assert (await client.post("/api/attendance/JSS1", headers=TEACHER, json=REGISTER)).status_code == 200
        r = await client.post("/api/attendance/JSS1", headers=TEACHER, json=REGISTER)
        assert r.status_code == 409
        assert r.json()["data"]["code"] == "attendance_already_submitted"

    async def test_edit_window(self, client, frozen_time):
        await client.post("/api/attendance/JSS1", headers=TEACHER, json=REGISTER)
        frozen_time.advance(days=1)
        r = await client.patch("/api/attendance/JSS1_2025-03-10", headers=TEACHER, json=REGISTER)
        assert r.status_code == 409
        assert r.json()["data"]["code"] == "edit_window_closed"

    async def test_results_locked(self, client):
        r = await client.put("/api/results/subjects/math/lock", headers=ADMIN, json={"locked": True})
        assert r.status_code == 200

        r = await client.post("/api/results", headers=TEACHER, json={
            "studentId": "s1", "subjectId": "math", "classId": "JSS1",
            "scores": {"classwork": 10, "test": 10, "examination": 10},
        })
        assert r.status_code == 423
        assert r.json()["data"]["code"] == "results_locked"

    async def test_request_validation(self, client):
        r = await client.post("/api/announcements/class", headers=TEACHER,
                              json={"title": "t", "content": "c", "classIds": []})
        assert r.status_code == 400
        assert r.json()["data"]["code"] == "validation_failed"

    async def test_not_found(self, client):
        r = await client.delete("/api/announcements/missing", headers=ADMIN)
        assert r.status_code == 404


async def test_result_entry_returns_grade(client):
    r = await client.post("/api/results", headers=TEACHER, json={
        "studentId": "s1", "subjectId": "math", "classId": "JSS1", "termId": "first",
        "scores": {"classwork": 25, "test": 25, "examination": 41},
    })
    assert r.status_code == 200
    assert r.json()["data"]["grade"] == "A"

    r = await client.get("/api/results/JSS1/math/distribution", headers=TEACHER)
    assert r.json()["data"]["averageScore"] == "91.00"


async def test_bulk_registration(client):
    r = await client.post("/api/registrations/bulk", headers=TEACHER, json={
        "classId": "JSS1", "subjectId": "math", "studentIds": ["s1", "s2", "s3", "s4", "s5"],
    })
    body = r.json()
    assert r.status_code == 200
    assert body["data"]["summary"]["successCount"] == 4
    assert body["data"]["summary"]["failedCount"] == 1
    assert body["message"] == "4 of 5 students registered"


async def test_teacher_approval_flow(client):
    r = await client.get("/api/teachers/pending", headers=ADMIN)
    assert [t["uid"] for t in r.json()["data"]] == ["t-new"]

    assert (await client.post("/api/teachers/t-new/approve", headers=ADMIN)).status_code == 200
    assert (await client.post("/api/teachers/t-new/approve", headers=ADMIN)).status_code == 409
    assert (await client.get("/api/auth/me", headers=PENDING)).status_code == 200


async def test_fees_are_hidden_from_teachers(client):
    r = await client.get("/api/fees/pending/JSS1", headers=TEACHER, params={"session": "2024-2025", "term": "firstTerm"})
    assert r.status_code == 403
    assert r.json()["data"]["code"] == "insufficient_role"


async def test_fee_payment_flow(client):
    r = await client.put("/api/fees/structures/JSS2/2024-2025/firstTerm", headers=ADMIN,
                         json={"items": {"tuition": 500}})
    assert r.json()["data"]["totalFee"] == 500

    r = await client.post("/api/fees/payments", headers=ADMIN, json={
        "studentId": "s5", "session": "2024/2025", "term": "firstTerm", "amount": 500,
    })
    assert r.json()["data"]["status"] == "Paid"

    r = await client.get(f"/api/fees/receipts/{r.json()['data']['paymentId']}", headers=ADMIN)
    assert r.json()["data"]["feeRecord"]["balance"] == 0


async def test_student_registration_via_api(client):
    r = await client.post("/api/students", headers=ADMIN, json={
        "name": "Gbenga", "email": "g@school.test", "class": "JSS2", "session": "2024/2025",
    })
    assert r.status_code == 200
    assert r.json()["data"]["registrationNumber"] == "2025-007"
    assert "2025-007" in r.json()["message"]


async def test_partial_score_patch_keeps_the_other_scores(client):
    r = await client.post("/api/results", headers=TEACHER, json={
        "studentId": "s1", "subjectId": "math", "classId": "JSS1",
        "scores": {"classwork": 20, "test": 25, "examination": 40},
    })
    assert r.json()["data"]["grade"] == "B"

    r = await client.patch("/api/results/s1_math_final", headers=TEACHER, json={"scores": {"examination": 50}})
    assert r.status_code == 200
    assert r.json()["data"]["totalScore"] == 95
    assert r.json()["data"]["grade"] == "A"

    r = await client.get("/api/results/JSS1/math", headers=TEACHER)
    assert r.json()["data"][0]["scores"] == {"classwork": 20, "test": 25, "examination": 50}


async def test_ca_result_submission(client):
    r = await client.post("/api/results/submit", headers=TEACHER, json={
        "studentId": "s1", "subjectId": "math", "classId": "JSS1", "termId": "first",
        "sessionId": "2024/2025", "ca1": 24, "ca2": 27, "ca3": 30, "exam": 50,
    })
    assert r.status_code == 200
    assert r.json()["data"]["finalScore"] == 77.0

    r = await client.get("/api/results/JSS1/math/term", headers=TEACHER,
                         params={"term_id": "first", "session_id": "2024/2025"})
    assert [row["grade"] for row in r.json()["data"]] == ["A"]

    r = await client.get("/api/results/combined", headers=ADMIN, params={"class_id": "JSS1"})
    assert r.json()["data"][0]["subjects"]["math"]["score"] == 77.0

    r = await client.post("/api/results/submit", headers=TEACHER, json={
        "studentId": "s1", "subjectId": "math", "classId": "JSS1", "ca1": 31,
    })
    assert r.status_code == 400


async def test_signup_then_approval_then_login(client):
    fresh = {"Authorization": "Bearer mock-t-fresh"}
    assert (await client.get("/api/auth/me", headers=fresh)).status_code == 401

    r = await client.post("/api/auth/signup", headers=fresh, json={"name": "Femi Fresh", "email": "femi@school.test"})
    assert r.status_code == 200
    assert r.json()["data"]["approved"] is False

    r = await client.post("/api/auth/signup", headers=fresh, json={"name": "Femi Fresh", "email": "femi@school.test"})
    assert r.status_code == 409
    assert (await client.get("/api/auth/me", headers=fresh)).status_code == 403

    assert (await client.post("/api/teachers/t-fresh/approve", headers=ADMIN)).status_code == 200
    r = await client.get("/api/auth/me", headers=fresh)
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "teacher"


async def test_signup_needs_a_valid_token(client):
    r = await client.post("/api/auth/signup", headers={"Authorization": "Bearer nonsense"},
                          json={"name": "X", "email": "x@school.test"})
    assert r.status_code == 401


async def test_admin_profile(client):
    r = await client.get("/api/teachers/me/profile", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Ada Admin"


async def test_payment_deletion_via_api(client):
    await client.put("/api/fees/structures/JSS2/2024-2025/firstTerm", headers=ADMIN, json={"items": {"tuition": 500}})
    r = await client.post("/api/fees/payments", headers=ADMIN, json={
        "studentId": "s5", "session": "2024/2025", "term": "firstTerm", "amount": 200,
    })
    payment_id = r.json()["data"]["paymentId"]

    r = await client.delete(f"/api/fees/payments/{payment_id}", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Unpaid"

    r = await client.get("/api/fees/statistics", headers=ADMIN)
    assert r.json()["data"]["schoolTotalOutstanding"] == 500
