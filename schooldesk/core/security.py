"""
Security module — identity provider (Firebase JWT or mock tokens) + principal
dependencies for the routers.

Auth Flow:
1. User signs in via Firebase → gets an ID token
2. Frontend sends the token as a Bearer header
3. Backend verifies the token with the Firebase Admin SDK
4. Backend loads the profile from the ``teachers`` or ``admins`` collection
5. Unapproved teachers are rejected
6. The resulting Principal is passed explicitly to every service call

Mock mode accepts ``mock-{uid}`` tokens and skips step 3.

A newly signed-up user has a verified token but no profile yet; sign-up uses
``get_verified_uid`` to create the pending teacher profile.
"""

import logging
import os
from typing import Awaitable, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from schooldesk.core.config import settings
from schooldesk.core.database import get_store
from schooldesk.core.errors import UpstreamFailure
from schooldesk.rbac import Principal
from schooldesk.store.base import DocumentStore

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer()

IdentityListener = Callable[[str], Awaitable[None] | None]

# ---------------------------------------------------------------------------
# Firebase initialization (lazy)
# ---------------------------------------------------------------------------
_firebase_app = None


def _init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        # Try default credentials
        _firebase_app = firebase_admin.initialize_app()


async def load_principal(store: DocumentStore, uid: str) -> Optional[Principal]:
    """Teacher profile first, then admin profile, as registered by the school."""
    for collection in ("teachers", "admins"):
        doc = await store.get(collection, uid)
        if doc:
            return Principal.from_document({"uid": uid, **doc})
    return None


class IdentityProvider:
    def __init__(self, store: DocumentStore, mode: str = "mock"):
        self.store = store
        self.mode = mode
        self._listeners: list[IdentityListener] = []

    async def current_principal(self, token: str) -> Optional[Principal]:
        uid = await self.verify_token(token)
        if uid is None:
            return None
        return await load_principal(self.store, uid)

    async def verify_token(self, token: str) -> Optional[str]:
        """The uid the token was issued to, or None when it does not verify."""
        if self.mode == "mock":
            return token[5:] if token.startswith("mock-") and len(token) > 5 else None

        _init_firebase()
        from firebase_admin import auth as fb_auth

        try:
            decoded = await run_in_threadpool(fb_auth.verify_id_token, token)
        except (ValueError, fb_auth.InvalidIdTokenError, fb_auth.ExpiredIdTokenError, fb_auth.RevokedIdTokenError):
            logger.info("Rejected invalid or expired Firebase token")
            return None
        except fb_auth.CertificateFetchError as exc:
            raise UpstreamFailure("verify Firebase token", exc) from exc
        return decoded["uid"]

    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        """Subscribe to role/assignment/approval changes; returns an unsubscribe function."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    async def notify_identity_change(self, uid: str) -> None:
        for listener in list(self._listeners):
            outcome = listener(uid)
            if outcome is not None:
                await outcome


_identity_provider: IdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider is None or _identity_provider.store is not get_store():
        _identity_provider = IdentityProvider(get_store(), settings.AUTH_MODE)
    return _identity_provider


# ---------------------------------------------------------------------------
# Principal dependency — the core auth function
# ---------------------------------------------------------------------------
async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Validate the Bearer token and return the Principal.
    Only users already registered in the store can authenticate.
    """
    principal = await identity.current_principal(credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token. Only registered school staff can login.",
        )
    if not principal.approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is pending approval. Contact the school administrator.",
        )
    return principal



async def get_verified_uid(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str:
    """Uid of a verified token, whether or not a school profile exists for it yet (sign-up)."""
    uid = await identity.verify_token(credentials.credentials)
    if uid is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return uid
