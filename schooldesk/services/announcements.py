"""
Announcements service.

Admins post school-wide announcements; teachers post to their own classes.
Only the author may edit or delete an announcement.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from schooldesk.core.clock import SchoolClock
from schooldesk.rbac import Capability, ClassesRef, Principal, RecordRef, require
from schooldesk.services.common import fetch, require_fields
from schooldesk.store.base import DocumentStore, where

COLLECTION = "announcements"
READS = "announcementReads"


def _visible_to(principal: Principal, announcement: Mapping[str, Any]) -> bool:
    if principal.is_admin or announcement.get("visibility") == "all":
        return True
    if announcement.get("authorId") == principal.id:
        return True
    return bool(principal.assigned_classes.intersection(announcement.get("classIds") or ()))


async def get_announcements(store: DocumentStore, principal: Principal) -> list[dict]:
    require(principal, Capability.VIEW_ANNOUNCEMENTS)
    announcements = await store.query(COLLECTION, order_by="createdAt", descending=True)
    return [a for a in announcements if _visible_to(principal, a)]


async def post_announcement(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require_fields(data, "title", "content")
    require(principal, Capability.POST_ANNOUNCEMENT)

    now = clock.timestamp()
    doc = await store.add(COLLECTION, {
        "type": "admin",
        "title": data["title"],
        "content": data["content"],
        "classIds": [],
        "authorId": principal.id,
        "authorName": principal.name or "Admin",
        "authorRole": principal.role.value,
        "visibility": "all",
        "isPinned": bool(data.get("isPinned", False)),
        "createdAt": now,
        "updatedAt": now,
    })
    return {"success": True, "announcementId": doc["id"], "message": "Announcement posted successfully"}


async def post_class_announcement(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    data: Mapping[str, Any],
) -> dict:
    require_fields(data, "title", "content", "classIds")
    class_ids = list(data["classIds"])
    require(principal, Capability.POST_CLASS_ANNOUNCEMENT, ClassesRef.of(class_ids))

    now = clock.timestamp()
    doc = await store.add(COLLECTION, {
        "type": "teacher",
        "title": data["title"],
        "content": data["content"],
        "classIds": class_ids,
        "authorId": principal.id,
        "authorName": principal.name,
        "authorRole": principal.role.value,
        "visibility": "class",
        "isPinned": False,
        "createdAt": now,
        "updatedAt": now,
    })
    return {"success": True, "announcementId": doc["id"], "message": "Announcement posted successfully"}


async def update_announcement(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    announcement_id: str,
    data: Mapping[str, Any],
) -> dict:
    announcement = await fetch(store, COLLECTION, announcement_id, "Announcement")
    require(principal, Capability.EDIT_OWN_ANNOUNCEMENT, RecordRef.from_document(announcement))

    await store.update(COLLECTION, announcement_id, {
        "title": data.get("title") or announcement.get("title"),
        "content": data.get("content") or announcement.get("content"),
        "updatedAt": clock.timestamp(),
    })
    return {"success": True, "message": "Announcement updated successfully"}


async def delete_announcement(store: DocumentStore, principal: Principal, announcement_id: str) -> dict:
    announcement = await fetch(store, COLLECTION, announcement_id, "Announcement")
    require(principal, Capability.EDIT_OWN_ANNOUNCEMENT, RecordRef.from_document(announcement))

    await store.delete(COLLECTION, announcement_id)
    return {"success": True, "message": "Announcement deleted successfully"}


async def mark_announcement_as_read(
    store: DocumentStore,
    principal: Principal,
    clock: SchoolClock,
    announcement_id: str,
) -> dict:
    require(principal, Capability.VIEW_ANNOUNCEMENTS)
    await fetch(store, COLLECTION, announcement_id, "Announcement")
    await store.set(READS, f"{principal.id}_{announcement_id}", {
        "userId": principal.id,
        "announcementId": announcement_id,
        "readAt": clock.timestamp(),
    })
    return {"success": True}


async def get_unread_announcement_count(store: DocumentStore, principal: Principal) -> int:
    announcements = await get_announcements(store, principal)
    reads = await store.query(READS, [where("userId", "==", principal.id)])
    read_ids = {r.get("announcementId") for r in reads}
    return sum(1 for a in announcements if a["id"] not in read_ids)


async def get_recent_announcement_count(store: DocumentStore, principal: Principal, clock: SchoolClock) -> int:
    """Announcements visible to the principal from the last 24 hours."""
    since = clock.now() - timedelta(hours=24)
    announcements = await get_announcements(store, principal)
    return sum(1 for a in announcements if _created_at(a) >= since)


def _created_at(announcement: Mapping[str, Any]) -> datetime:
    raw = announcement.get("createdAt")
    if not raw:
        return datetime.min.replace(tzinfo=timezone.utc)
    created = datetime.fromisoformat(raw)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created
