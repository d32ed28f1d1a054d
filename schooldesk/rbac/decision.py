from __future__ import annotations

from dataclasses import dataclass

ALLOWED = "allowed"
INSUFFICIENT_ROLE = "insufficient_role"
NOT_ASSIGNED_TO_CLASS = "not_assigned_to_class"
NOT_ASSIGNED_TO_SUBJECT = "not_assigned_to_subject"
NOT_RECORD_AUTHOR = "not_record_author"
MISSING_RESOURCE = "missing_resource"
UNKNOWN_CAPABILITY = "unknown_capability"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of one authorization check. Produced fresh for every call."""

    allowed: bool
    reason: str
    code: str = ALLOWED

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, reason: str = "allowed") -> "AuthorizationDecision":
        return cls(True, reason, ALLOWED)

    @classmethod
    def deny(cls, code: str, reason: str) -> "AuthorizationDecision":
        return cls(False, reason, code)

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reason": self.reason, "code": self.code}
