"""
The closed set of capabilities (named action classes).

Capabilities are statically enumerated. Converting an unknown name raises
``UnknownCapability`` at the boundary where the name enters the system.
"""

from enum import Enum

from schooldesk.core.errors import UnknownCapability


class Capability(str, Enum):
    # Classes and rosters
    VIEW_ALL_CLASSES = "view_all_classes"
    VIEW_ASSIGNED_CLASSES = "view_assigned_classes"
    VIEW_ALL_STUDENTS = "view_all_students"
    VIEW_CLASS_STUDENTS = "view_class_students"
    MANAGE_STUDENTS = "manage_students"
    MANAGE_TEACHERS = "manage_teachers"

    # Attendance
    TAKE_ATTENDANCE = "take_attendance"
    EDIT_ATTENDANCE = "edit_attendance"
    VIEW_ATTENDANCE = "view_attendance"

    # Results
    ENTER_RESULTS = "enter_results"
    EDIT_RESULT = "edit_result"
    VIEW_RESULTS = "view_results"
    VIEW_ALL_RESULTS = "view_all_results"
    LOCK_RESULTS = "lock_results"

    # Announcements
    VIEW_ANNOUNCEMENTS = "view_announcements"
    POST_ANNOUNCEMENT = "post_announcement"
    POST_CLASS_ANNOUNCEMENT = "post_class_announcement"
    EDIT_OWN_ANNOUNCEMENT = "edit_own_announcement"

    # Subject registrations
    REGISTER_SUBJECT = "register_subject"
    EDIT_SUBJECT_REGISTRATION = "edit_subject_registration"
    VIEW_SUBJECT_REGISTRATION = "view_subject_registration"
    REMOVE_SUBJECT_REGISTRATION = "remove_subject_registration"

    # Fees and administration
    MANAGE_FEES = "manage_fees"
    VIEW_FEE_STRUCTURE = "view_fee_structure"
    EDIT_FEE_STRUCTURE = "edit_fee_structure"
    RECORD_PAYMENTS = "record_payments"
    VIEW_STUDENT_FEES = "view_student_fees"
    GENERATE_RECEIPTS = "generate_receipts"
    VIEW_SALARIES = "view_salaries"
    ACCESS_SETTINGS = "access_settings"

    # Profiles
    VIEW_OWN_PROFILE = "view_own_profile"
    EDIT_OWN_PROFILE = "edit_own_profile"
    EDIT_OTHER_PROFILES = "edit_other_profiles"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, name: "str | Capability") -> "Capability":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnknownCapability(str(name)) from None
