"""
RBAC core for SchoolDesk.

- Role / Principal: who is acting
- Capability: the closed set of action classes
- Resource references: what is being acted on
- authorize / require: the gate every domain operation passes through
"""

from schooldesk.rbac.capabilities import Capability
from schooldesk.rbac.decision import AuthorizationDecision
from schooldesk.rbac.gate import authorize, feature_flags, filter_classes, filter_subjects, require
from schooldesk.rbac.principal import Principal, Role
from schooldesk.rbac.resources import ClassesRef, ClassRef, RecordRef, ResourceRef, SubjectRef
from schooldesk.rbac.scoping import assigned_to_class, owns_record, teaches_subject

__all__ = [
    "AuthorizationDecision",
    "Capability",
    "ClassRef",
    "ClassesRef",
    "Principal",
    "RecordRef",
    "ResourceRef",
    "Role",
    "SubjectRef",
    "assigned_to_class",
    "authorize",
    "feature_flags",
    "filter_classes",
    "filter_subjects",
    "owns_record",
    "require",
    "teaches_subject",
]
