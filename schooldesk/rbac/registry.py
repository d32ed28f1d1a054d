"""
Capability registry: the fixed table mapping each capability to its rule.

A rule takes ``(principal, resource)`` and returns an
``AuthorizationDecision``. Admin override is spelled out per capability;
ownership rules (editing a self-authored record) deliberately have none.
"""

from __future__ import annotations

from typing import Callable, Optional

from schooldesk.core.errors import UnknownCapability
from schooldesk.rbac.capabilities import Capability
from schooldesk.rbac.decision import (
    INSUFFICIENT_ROLE,
    MISSING_RESOURCE,
    NOT_ASSIGNED_TO_CLASS,
    NOT_ASSIGNED_TO_SUBJECT,
    NOT_RECORD_AUTHOR,
    AuthorizationDecision,
)
from schooldesk.rbac.principal import Principal
from schooldesk.rbac.resources import ClassesRef, RecordRef, ResourceRef, class_id_of, subject_id_of
from schooldesk.rbac.scoping import assigned_to_class, owns_record, teaches_subject

Rule = Callable[[Principal, Optional[ResourceRef]], AuthorizationDecision]

_allow = AuthorizationDecision.allow
_deny = AuthorizationDecision.deny


def anyone(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    return _allow()


def admin_only(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if principal.is_admin:
        return _allow()
    return _deny(INSUFFICIENT_ROLE, "insufficient role: administrator required")


def teacher_only(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if principal.is_teacher:
        return _allow()
    return _deny(INSUFFICIENT_ROLE, "insufficient role: teacher required")


def admin_or_assigned_class(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if principal.is_admin:
        return _allow("administrator")
    if not principal.is_teacher:
        return _deny(INSUFFICIENT_ROLE, "insufficient role")
    class_id = class_id_of(resource)
    if not class_id:
        return _deny(MISSING_RESOURCE, "a class is required for this action")
    if not assigned_to_class(principal, class_id):
        return _deny(NOT_ASSIGNED_TO_CLASS, "not assigned to this class")
    return _allow()


def admin_or_teaches_subject(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if principal.is_admin:
        return _allow("administrator")
    if not principal.is_teacher:
        return _deny(INSUFFICIENT_ROLE, "insufficient role")
    subject_id = subject_id_of(resource)
    if not subject_id:
        return _deny(MISSING_RESOURCE, "a subject is required for this action")
    if not teaches_subject(principal, subject_id):
        return _deny(NOT_ASSIGNED_TO_SUBJECT, "not assigned to this subject")
    return _allow()


def record_author(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if not isinstance(resource, RecordRef):
        return _deny(MISSING_RESOURCE, "a record is required for this action")
    if not owns_record(principal, resource):
        return _deny(NOT_RECORD_AUTHOR, "not the author of this record")
    return _allow()


def author_teaching_subject(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    decision = record_author(principal, resource)
    if not decision:
        return decision
    return admin_or_teaches_subject(principal, resource)


def teacher_of_every_class(principal: Principal, resource: Optional[ResourceRef]) -> AuthorizationDecision:
    if not principal.is_teacher:
        return _deny(INSUFFICIENT_ROLE, "insufficient role: teacher required")
    if not isinstance(resource, ClassesRef) or not resource.class_ids:
        return _deny(MISSING_RESOURCE, "at least one target class is required")
    outside = [c for c in resource.class_ids if not assigned_to_class(principal, c)]
    if outside:
        return _deny(
            NOT_ASSIGNED_TO_CLASS,
            f"cannot post to classes you are not assigned to ({', '.join(sorted(outside))})",
        )
    return _allow()


CAPABILITY_RULES: dict[Capability, Rule] = {
    Capability.VIEW_ALL_CLASSES: admin_only,
    Capability.VIEW_ASSIGNED_CLASSES: teacher_only,
    Capability.VIEW_ALL_STUDENTS: admin_only,
    Capability.VIEW_CLASS_STUDENTS: admin_or_assigned_class,
    Capability.MANAGE_STUDENTS: admin_only,
    Capability.MANAGE_TEACHERS: admin_only,
    Capability.TAKE_ATTENDANCE: admin_or_assigned_class,
    Capability.EDIT_ATTENDANCE: record_author,
    Capability.VIEW_ATTENDANCE: admin_or_assigned_class,
    Capability.ENTER_RESULTS: admin_or_teaches_subject,
    Capability.EDIT_RESULT: author_teaching_subject,
    Capability.VIEW_RESULTS: admin_or_teaches_subject,
    Capability.VIEW_ALL_RESULTS: admin_only,
    Capability.LOCK_RESULTS: admin_only,
    Capability.VIEW_ANNOUNCEMENTS: anyone,
    Capability.POST_ANNOUNCEMENT: admin_only,
    Capability.POST_CLASS_ANNOUNCEMENT: teacher_of_every_class,
    Capability.EDIT_OWN_ANNOUNCEMENT: record_author,
    Capability.REGISTER_SUBJECT: admin_or_assigned_class,
    Capability.EDIT_SUBJECT_REGISTRATION: admin_or_assigned_class,
    Capability.VIEW_SUBJECT_REGISTRATION: admin_or_assigned_class,
    Capability.REMOVE_SUBJECT_REGISTRATION: admin_or_assigned_class,
    Capability.MANAGE_FEES: admin_only,
    Capability.VIEW_FEE_STRUCTURE: admin_only,
    Capability.EDIT_FEE_STRUCTURE: admin_only,
    Capability.RECORD_PAYMENTS: admin_only,
    Capability.VIEW_STUDENT_FEES: admin_only,
    Capability.GENERATE_RECEIPTS: admin_only,
    Capability.VIEW_SALARIES: admin_only,
    Capability.ACCESS_SETTINGS: admin_only,
    Capability.VIEW_OWN_PROFILE: anyone,
    Capability.EDIT_OWN_PROFILE: anyone,
    Capability.EDIT_OTHER_PROFILES: admin_only,
}

# Capabilities whose rule needs no resource; used for UI feature gating.
RESOURCE_FREE = frozenset(
    cap for cap, rule in CAPABILITY_RULES.items() if rule in (anyone, admin_only, teacher_only)
)


def resolve(capability: Capability | str) -> Rule:
    cap = Capability.parse(capability)
    rule = CAPABILITY_RULES.get(cap)
    if rule is None:
        raise UnknownCapability(cap.value)
    return rule
