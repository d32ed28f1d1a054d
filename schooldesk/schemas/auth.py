"""
Pydantic schemas for the authorization endpoints.
"""

from typing import List, Optional

from schooldesk.rbac import ClassesRef, ClassRef, RecordRef, ResourceRef, SubjectRef
from schooldesk.schemas.base import CamelModel


class AuthorizeQuery(CamelModel):
    capability: str
    class_id: Optional[str] = None
    class_ids: Optional[List[str]] = None
    subject_id: Optional[str] = None
    author_id: Optional[str] = None
    created_date: Optional[str] = None

    def resource(self) -> Optional[ResourceRef]:
        if self.author_id is not None:
            return RecordRef(self.author_id, self.created_date, self.class_id, self.subject_id)
        if self.class_ids is not None:
            return ClassesRef.of(self.class_ids)
        if self.class_id is not None:
            return ClassRef(self.class_id)
        if self.subject_id is not None:
            return SubjectRef(self.subject_id)
        return None
