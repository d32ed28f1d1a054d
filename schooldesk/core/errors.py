"""
Error kinds raised by the authorization core and the domain services.

Every error carries a machine-readable ``code``, the HTTP status the API
layer renders it with, and whether the caller may retry.
"""

from fastapi import status


class SchoolDeskError(Exception):
    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(SchoolDeskError):
    code = "validation_failed"


class AccessDenied(SchoolDeskError):
    code = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, reason: str, code: str | None = None):
        super().__init__(f"Access denied: {reason}")
        self.reason = reason
        if code:
            self.code = code


class UnknownCapability(AccessDenied):
    def __init__(self, name: str):
        super().__init__(f"unknown capability '{name}'", code="unknown_capability")
        self.name = name


class ResourceNotFound(SchoolDeskError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, kind: str, resource_id: str):
        super().__init__(f"{kind} not found: {resource_id}")
        self.kind = kind
        self.resource_id = resource_id


class EditWindowClosed(SchoolDeskError):
    code = "edit_window_closed"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, record_date: str, today: str):
        super().__init__(
            f"Attendance for {record_date} is frozen; it could only be edited on the same day (today is {today})"
        )
        self.record_date = record_date
        self.today = today


class ResultsLocked(SchoolDeskError):
    code = "results_locked"
    status_code = status.HTTP_423_LOCKED

    def __init__(self, subject_id: str):
        super().__init__(f"Results for subject {subject_id} are locked by admin. Cannot edit.")
        self.subject_id = subject_id


class DuplicateRegistration(SchoolDeskError):
    code = "duplicate_registration"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, student_id: str, subject_id: str, class_id: str):
        super().__init__(
            f"Student {student_id} is already registered for subject {subject_id} in class {class_id}"
        )
        self.student_id = student_id
        self.subject_id = subject_id
        self.class_id = class_id


class AttendanceAlreadySubmitted(SchoolDeskError):
    code = "attendance_already_submitted"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, attendance_id: str):
        super().__init__(f"Attendance {attendance_id} was already submitted today; edit it instead")
        self.attendance_id = attendance_id


class StateConflict(SchoolDeskError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class UpstreamFailure(SchoolDeskError):
    code = "upstream_failure"
    status_code = status.HTTP_502_BAD_GATEWAY
    retryable = True

    def __init__(self, operation: str, cause: BaseException | None = None):
        detail = f"{operation} failed"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
        self.operation = operation
        self.cause = cause
