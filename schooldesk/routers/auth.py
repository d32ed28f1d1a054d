"""
Auth router — sign-up, who am I, what may I do.
Tokens are issued by the identity provider; this API only verifies them.
"""

from fastapi import APIRouter, Depends

from schooldesk.core.clock import SchoolClock, get_clock
from schooldesk.core.database import get_store
from schooldesk.core.security import get_current_principal, get_verified_uid
from schooldesk.rbac import Principal, authorize, feature_flags
from schooldesk.schemas.auth import AuthorizeQuery
from schooldesk.schemas.school import TeacherSignup
from schooldesk.services import teachers
from schooldesk.store.base import DocumentStore
from schooldesk.utils.response import success_response

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/signup")
async def signup(
    body: TeacherSignup,
    uid: str = Depends(get_verified_uid),
    store: DocumentStore = Depends(get_store),
    clock: SchoolClock = Depends(get_clock),
):
    """Register the signed-in user as a teacher awaiting admin approval."""
    profile = await teachers.register_teacher(store, clock, uid, body.to_document())
    return success_response(data=profile, message="Registration received. An administrator will approve your account.")


@router.get("/me")
async def get_me(principal: Principal = Depends(get_current_principal)):
    return success_response(data={**principal.to_dict(), "permissions": feature_flags(principal)})


@router.get("/permissions")
async def get_permissions(principal: Principal = Depends(get_current_principal)):
    """Resource-free capabilities of the caller, for showing/hiding UI."""
    return success_response(data=feature_flags(principal))


@router.post("/authorize")
async def check_authorization(
    body: AuthorizeQuery,
    principal: Principal = Depends(get_current_principal),
):
    decision = authorize(principal, body.capability, body.resource())
    return success_response(data=decision.to_dict(), message=decision.reason)
