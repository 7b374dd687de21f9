"""
Session gate shared by every protected route.

A request gets through only with a verified session for an existing identity
and a profile record in ``users``. A missing profile is created from the
sign-up metadata. Anything else sends the caller back to the login page.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from servicehub.core.errors import IdentityError, StoreError
from servicehub.core.security import AuthUser, IdentityClient, get_identity_client
from servicehub.db.firebase_ops import DocumentExists, FirestoreBaseModel, USERS, get_firestore_ops_instance
from servicehub.models.schemas import UserProfile

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=LOGIN_PATH, auto_error=False)


class LoginRedirect(Exception):
    """Raised by the gate; turned into a 303 redirect to the login page."""

    def __init__(self, return_path: Optional[str] = None):
        super().__init__(return_path)
        self.return_path = return_path

    @property
    def location(self) -> str:
        if not self.return_path:
            return LOGIN_PATH
        return f"{LOGIN_PATH}?{urlencode({'redirect': self.return_path}, safe='/')}"


def profile_defaults(user: AuthUser) -> UserProfile:
    """Profile synthesized from sign-up metadata, with email and role fallbacks."""
    name = user.metadata.get("name")
    if not name and user.email:
        name = user.email.split("@")[0]
    role = user.metadata.get("role") or "client"
    return UserProfile(id=user.uid, name=name or "User", role=role)


def ensure_profile(firestore_ops: FirestoreBaseModel, user: AuthUser) -> UserProfile:
    """Return the stored profile, inserting one first when it is missing."""
    existing = firestore_ops.get(USERS, user.uid)
    if existing:
        return UserProfile(**existing)

    profile = profile_defaults(user)
    try:
        firestore_ops.insert(USERS, {"name": profile.name, "role": profile.role}, document_id=user.uid)
    except DocumentExists:
        # Created by a concurrent request between the read and the insert.
        existing = firestore_ops.get(USERS, user.uid)
        if existing:
            return UserProfile(**existing)
        raise
    logger.info("Provisioned %s profile for %s", profile.role, user.uid)
    return profile


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    identity: IdentityClient = Depends(get_identity_client),
) -> AuthUser:
    try:
        claims = identity.get_session(token)
        return identity.get_user(claims["uid"])
    except IdentityError as e:
        return_path = request.url.path
        if request.url.query:
            return_path = f"{return_path}?{request.url.query}"
        logger.info("Rejected session for %s: %s", return_path, e.message)
        raise LoginRedirect(return_path=return_path)


def get_current_profile(
    user: AuthUser = Depends(get_current_user),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
) -> UserProfile:
    try:
        return ensure_profile(firestore_ops, user)
    except StoreError as e:
        logger.error("Error creating profile for %s: %s", user.uid, e.message)
        raise LoginRedirect()


async def require_client(profile: UserProfile = Depends(get_current_profile)) -> UserProfile:
    if profile.role != "client":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only clients can access this view")
    return profile


async def require_provider(profile: UserProfile = Depends(get_current_profile)) -> UserProfile:
    if profile.role != "provider":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only providers can access this view")
    return profile
