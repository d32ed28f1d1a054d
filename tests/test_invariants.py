import pytest

from schooldesk.core.errors import AccessDenied, DuplicateRegistration, EditWindowClosed, ResultsLocked
from schooldesk.domain import (
    PAID,
    PART_PAYMENT,
    UNPAID,
    ensure_not_registered,
    ensure_results_unlocked,
    ensure_same_day_edit,
    fee_status,
)


def _record(author="t-math", day="2025-03-10"):
    return {"teacherId": author, "date": day, "classId": "JSS1"}


class TestSameDayEdit:
    def test_author_on_same_day(self, teacher, clock):
        ensure_same_day_edit(teacher, _record(), clock)

    def test_author_next_day(self, teacher, clock, frozen_time):
        frozen_time.advance(days=1)
        with pytest.raises(EditWindowClosed) as excinfo:
            ensure_same_day_edit(teacher, _record(), clock)
        assert excinfo.value.record_date == "2025-03-10"
        assert excinfo.value.today == "2025-03-11"

    def test_authorship_is_checked_before_the_window(self, other_teacher, clock, frozen_time):
        frozen_time.advance(days=3)
        with pytest.raises(AccessDenied):
            ensure_same_day_edit(other_teacher, _record(), clock)

    def test_admin_is_not_the_author(self, admin, clock):
        with pytest.raises(AccessDenied):
            ensure_same_day_edit(admin, _record(), clock)


class TestResultsLock:
    def test_unlocked_or_unknown_subject(self):
        ensure_results_unlocked("math", {"resultsLocked": False})
        ensure_results_unlocked("math", None)

    def test_locked_subject(self):
        with pytest.raises(ResultsLocked) as excinfo:
            ensure_results_unlocked("math", {"resultsLocked": True})
        assert excinfo.value.status_code == 423


class TestRegistrationUniqueness:
    def test_active_duplicate(self):
        regs = [{"studentId": "s1", "subjectId": "math", "classId": "JSS1", "status": "active"}]
        with pytest.raises(DuplicateRegistration):
            ensure_not_registered("s1", "math", "JSS1", regs)

    def test_dropped_registration_does_not_count(self):
        regs = [{"studentId": "s1", "subjectId": "math", "classId": "JSS1", "status": "dropped"}]
        ensure_not_registered("s1", "math", "JSS1", regs)

    def test_other_class_does_not_count(self):
        regs = [{"studentId": "s1", "subjectId": "math", "classId": "JSS2", "status": "active"}]
        ensure_not_registered("s1", "math", "JSS1", regs)


@pytest.mark.parametrize(
    "total_fee,total_paid,expected",
    [(1000, 0, UNPAID), (1000, 400, PART_PAYMENT), (1000, 1000, PAID), (1000, 1200, PAID), (0, 0, PAID)],
)
def test_fee_status(total_fee, total_paid, expected):
    assert fee_status(total_fee, total_paid) == expected
