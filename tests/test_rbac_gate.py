"""
Authorization gate — admin override, class/subject scoping, authorship,
fail-closed handling of unknown capabilities.
"""

import logging

import pytest

from schooldesk.core.errors import AccessDenied, UnknownCapability
from schooldesk.rbac import (
    Capability,
    ClassesRef,
    ClassRef,
    Principal,
    RecordRef,
    Role,
    SubjectRef,
    authorize,
    feature_flags,
    filter_classes,
    filter_subjects,
    require,
)
from schooldesk.rbac.decision import (
    INSUFFICIENT_ROLE,
    MISSING_RESOURCE,
    NOT_ASSIGNED_TO_CLASS,
    NOT_ASSIGNED_TO_SUBJECT,
    NOT_RECORD_AUTHOR,
    UNKNOWN_CAPABILITY,
)
from schooldesk.rbac.registry import CAPABILITY_RULES

ADMIN_ONLY = [
    Capability.VIEW_ALL_CLASSES,
    Capability.VIEW_ALL_STUDENTS,
    Capability.MANAGE_STUDENTS,
    Capability.MANAGE_TEACHERS,
    Capability.VIEW_ALL_RESULTS,
    Capability.LOCK_RESULTS,
    Capability.POST_ANNOUNCEMENT,
    Capability.MANAGE_FEES,
    Capability.VIEW_FEE_STRUCTURE,
    Capability.EDIT_FEE_STRUCTURE,
    Capability.RECORD_PAYMENTS,
    Capability.VIEW_STUDENT_FEES,
    Capability.GENERATE_RECEIPTS,
    Capability.VIEW_SALARIES,
    Capability.ACCESS_SETTINGS,
    Capability.EDIT_OTHER_PROFILES,
]

CLASS_SCOPED = [
    Capability.VIEW_CLASS_STUDENTS,
    Capability.TAKE_ATTENDANCE,
    Capability.VIEW_ATTENDANCE,
    Capability.REGISTER_SUBJECT,
    Capability.EDIT_SUBJECT_REGISTRATION,
    Capability.VIEW_SUBJECT_REGISTRATION,
    Capability.REMOVE_SUBJECT_REGISTRATION,
]


def test_every_capability_has_a_rule():
    assert set(CAPABILITY_RULES) == set(Capability)


@pytest.mark.parametrize("capability", ADMIN_ONLY)
def test_admin_only_capabilities(capability, admin, teacher):
    assert authorize(admin, capability).allowed
    decision = authorize(teacher, capability)
    assert not decision.allowed
    assert decision.code == INSUFFICIENT_ROLE


@pytest.mark.parametrize("capability", CLASS_SCOPED)
def test_class_scoped_capabilities(capability, admin, teacher):
    assert authorize(admin, capability, ClassRef("SS3")).allowed
    assert authorize(teacher, capability, ClassRef("JSS1")).allowed

    denied = authorize(teacher, capability, ClassRef("SS3"))
    assert not denied.allowed
    assert denied.code == NOT_ASSIGNED_TO_CLASS
    assert denied.reason == "not assigned to this class"


def test_teacher_class_scope_needs_a_class(teacher):
    decision = authorize(teacher, Capability.TAKE_ATTENDANCE)
    assert not decision.allowed
    assert decision.code == MISSING_RESOURCE


@pytest.mark.parametrize("capability", [Capability.ENTER_RESULTS, Capability.VIEW_RESULTS])
def test_subject_scoped_capabilities(capability, admin, teacher):
    assert authorize(admin, capability, SubjectRef("physics")).allowed
    assert authorize(teacher, capability, SubjectRef("math")).allowed

    denied = authorize(teacher, capability, SubjectRef("physics"))
    assert denied.code == NOT_ASSIGNED_TO_SUBJECT
    assert denied.reason == "not assigned to this subject"


def test_view_assigned_classes_is_for_teachers(admin, teacher):
    assert authorize(teacher, Capability.VIEW_ASSIGNED_CLASSES).allowed
    assert not authorize(admin, Capability.VIEW_ASSIGNED_CLASSES).allowed


@pytest.mark.parametrize("capability", [
    Capability.VIEW_ANNOUNCEMENTS, Capability.VIEW_OWN_PROFILE, Capability.EDIT_OWN_PROFILE,
])
def test_capabilities_open_to_every_principal(capability, admin, teacher):
    assert authorize(admin, capability).allowed
    assert authorize(teacher, capability).allowed


class TestRecordOwnership:
    def test_author_may_edit_attendance(self, teacher):
        record = RecordRef(author_id="t-math", created_date="2025-03-10", class_id="JSS1")
        assert authorize(teacher, Capability.EDIT_ATTENDANCE, record).allowed

    def test_other_teacher_may_not_edit_attendance(self, other_teacher):
        record = RecordRef(author_id="t-math", created_date="2025-03-10", class_id="JSS2")
        decision = authorize(other_teacher, Capability.EDIT_ATTENDANCE, record)
        assert decision.code == NOT_RECORD_AUTHOR

    def test_admin_has_no_override_on_authored_records(self, admin):
        record = RecordRef(author_id="t-math", class_id="JSS1")
        assert not authorize(admin, Capability.EDIT_ATTENDANCE, record).allowed
        assert not authorize(admin, Capability.EDIT_OWN_ANNOUNCEMENT, record).allowed

    def test_edit_result_needs_authorship_and_subject(self, teacher):
        own = RecordRef(author_id="t-math", subject_id="math")
        assert authorize(teacher, Capability.EDIT_RESULT, own).allowed

        # Authored earlier, since unassigned from the subject
        moved = RecordRef(author_id="t-math", subject_id="physics")
        assert authorize(teacher, Capability.EDIT_RESULT, moved).code == NOT_ASSIGNED_TO_SUBJECT

        someone_else = RecordRef(author_id="t-eng", subject_id="math")
        assert authorize(teacher, Capability.EDIT_RESULT, someone_else).code == NOT_RECORD_AUTHOR

    def test_record_with_empty_author_belongs_to_nobody(self, teacher):
        assert not authorize(teacher, Capability.EDIT_ATTENDANCE, RecordRef(author_id="")).allowed


class TestClassAnnouncements:
    def test_teacher_posts_to_own_classes(self, teacher):
        assert authorize(teacher, Capability.POST_CLASS_ANNOUNCEMENT, ClassesRef.of(["JSS1", "JSS2"])).allowed

    def test_any_foreign_class_denies_the_whole_post(self, teacher):
        decision = authorize(teacher, Capability.POST_CLASS_ANNOUNCEMENT, ClassesRef.of(["JSS1", "SS3"]))
        assert decision.code == NOT_ASSIGNED_TO_CLASS
        assert "SS3" in decision.reason

    def test_empty_target_list_is_denied(self, teacher):
        assert not authorize(teacher, Capability.POST_CLASS_ANNOUNCEMENT, ClassesRef.of([])).allowed

    def test_admins_use_school_wide_announcements(self, admin):
        assert not authorize(admin, Capability.POST_CLASS_ANNOUNCEMENT, ClassesRef.of(["JSS1"])).allowed


class TestUnknownCapability:
    def test_fails_closed(self, admin, caplog):
        with caplog.at_level(logging.ERROR, logger="schooldesk.rbac.gate"):
            decision = authorize(admin, "delete_school")
        assert not decision.allowed
        assert decision.code == UNKNOWN_CAPABILITY
        assert "delete_school" in caplog.text

    def test_require_raises_unknown_capability(self, admin):
        with pytest.raises(UnknownCapability) as excinfo:
            require(admin, "delete_school")
        assert excinfo.value.code == "unknown_capability"
        assert isinstance(excinfo.value, AccessDenied)

    def test_names_are_parsed_case_insensitively(self, teacher):
        assert authorize(teacher, " Take_Attendance ", ClassRef("JSS1")).allowed


def test_require_raises_access_denied_with_reason(teacher):
    with pytest.raises(AccessDenied) as excinfo:
        require(teacher, Capability.TAKE_ATTENDANCE, ClassRef("SS3"))
    assert excinfo.value.reason == "not assigned to this class"
    assert excinfo.value.code == NOT_ASSIGNED_TO_CLASS
    assert excinfo.value.status_code == 403


def test_decisions_are_not_cached(teacher):
    first = authorize(teacher, Capability.TAKE_ATTENDANCE, ClassRef("JSS1"))
    reassigned = Principal(id=teacher.id, role=Role.TEACHER, assigned_classes=frozenset({"JSS3"}))
    assert first.allowed
    assert not authorize(reassigned, Capability.TAKE_ATTENDANCE, ClassRef("JSS1")).allowed


def test_feature_flags(admin, teacher):
    admin_flags = feature_flags(admin)
    teacher_flags = feature_flags(teacher)

    assert admin_flags["manage_fees"] is True
    assert teacher_flags["manage_fees"] is False
    assert teacher_flags["view_assigned_classes"] is True
    assert "take_attendance" not in teacher_flags


def test_filters_keep_only_assigned_items(admin, teacher):
    classes = [{"id": "JSS1"}, {"id": "SS3"}]
    subjects = [{"id": "math"}, {"id": "english"}]

    assert filter_classes(teacher, classes) == [{"id": "JSS1"}]
    assert filter_subjects(teacher, subjects) == [{"id": "math"}]
    assert filter_classes(admin, classes) == classes
    assert filter_subjects(admin, subjects) == subjects


class TestPrincipal:
    def test_from_document_reads_assignments(self):
        principal = Principal.from_document({
            "uid": "t1", "role": "Teacher", "assignedClasses": ["JSS1", None, ""], "approved": False,
        })
        assert principal.role is Role.TEACHER
        assert principal.assigned_classes == frozenset({"JSS1"})
        assert principal.approved is False

    def test_admins_are_always_approved(self):
        assert Principal.from_document({"id": "a1", "role": "admin", "approved": False}).approved

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            Principal.from_document({"id": "x", "role": "bursar"})
