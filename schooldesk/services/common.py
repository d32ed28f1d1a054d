"""Helpers shared by the domain services."""

from typing import Any, Mapping

from schooldesk.core.errors import ResourceNotFound, ValidationFailed
from schooldesk.store.base import DocumentStore


def require_fields(data: Mapping[str, Any], *names: str) -> None:
    """Structural validation: every named field present and non-empty."""
    missing = [n for n in names if data.get(n) in (None, "", [], ())]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")


async def fetch(store: DocumentStore, collection: str, doc_id: str, kind: str) -> dict:
    doc = await store.get(collection, doc_id)
    if doc is None:
        raise ResourceNotFound(kind, doc_id)
    return doc


def summarize(successful: list, failed: list) -> dict:
    return {
        "success": not failed,
        "results": {"successful": successful, "failed": failed},
        "summary": {
            "totalAttempted": len(successful) + len(failed),
            "successCount": len(successful),
            "failedCount": len(failed),
        },
    }
