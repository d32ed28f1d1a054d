"""
Resource scoping predicates.

Admins are never "assigned" to a class or subject. Where an admin override
is intended, the capability table grants it explicitly.
"""

from typing import Optional

from schooldesk.rbac.principal import Principal
from schooldesk.rbac.resources import RecordRef


def assigned_to_class(principal: Principal, class_id: Optional[str]) -> bool:
    return principal.is_teacher and bool(class_id) and class_id in principal.assigned_classes


def teaches_subject(principal: Principal, subject_id: Optional[str]) -> bool:
    return principal.is_teacher and bool(subject_id) and subject_id in principal.assigned_subjects


def owns_record(principal: Principal, record: RecordRef) -> bool:
    return bool(record.author_id) and record.author_id == principal.id
