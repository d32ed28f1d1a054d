"""
Announcements router — school-wide (admin) and class (teacher) notices.
"""

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal
from schooldesk.rbac import Principal
from schooldesk.schemas.school import AnnouncementCreate, AnnouncementUpdate, ClassAnnouncementCreate
from schooldesk.services import announcements
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/announcements", tags=["Announcements"])


@router.get("")
async def list_announcements(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    return success_response(data=await announcements.get_announcements(store, principal))


@router.get("/unread-count")
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    return success_response(data={
        "unread": await announcements.get_unread_announcement_count(store, principal),
        "recent": await announcements.get_recent_announcement_count(store, principal, clock),
    })


@router.post("")
async def post_announcement(
    body: AnnouncementCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await announcements.post_announcement(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


@router.post("/class")
async def post_class_announcement(
    body: ClassAnnouncementCreate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await announcements.post_class_announcement(store, principal, clock, body.to_document())
    return success_response(data=result, message=result["message"])


@router.patch("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    body: AnnouncementUpdate,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    result = await announcements.update_announcement(store, principal, clock, announcement_id, body.to_document())
    return success_response(data=result, message=result["message"])


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
):
    result = await announcements.delete_announcement(store, principal, announcement_id)
    return success_response(data=result, message=result["message"])


@router.post("/{announcement_id}/read")
async def mark_read(
    announcement_id: str,
    principal: Principal = Depends(get_current_principal),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    return success_response(data=await announcements.mark_announcement_as_read(store, principal, clock, announcement_id))
