import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from servicehub.core.dependencies import LOGIN_PATH, ensure_profile, get_current_profile, get_current_user
from servicehub.core.errors import EMAIL_NOT_CONFIRMED_MESSAGE, IdentityError, StoreError, is_email_not_confirmed
from servicehub.core.security import AuthUser, IdentityClient, Session, get_identity_client
from servicehub.db.firebase_ops import FirestoreBaseModel, get_firestore_ops_instance
from servicehub.models.schemas import (
    LoginForm,
    LoginResponse,
    PagePayload,
    SignUpForm,
    SignUpResponse,
    Token,
    UserProfile,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

DASHBOARD_PATH = "/dashboard"
CHECK_EMAIL_MESSAGE = "Please check your email to confirm your account before logging in."


def _token(session: Session) -> Token:
    return Token(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
    )


def _safe_redirect(target: Optional[str]) -> str:
    # Only same-site paths; anything else falls back to the dashboard.
    # Browsers treat a backslash after the first slash like a second slash.
    if not target or not target.startswith("/") or target[1:2] in ("/", "\\"):
        return DASHBOARD_PATH
    return target


@router.get("/login", response_model=PagePayload)
async def login_page(redirect: Optional[str] = None, message: Optional[str] = None):
    return PagePayload(page="login", redirect=_safe_redirect(redirect), message=message)


@router.get("/signup", response_model=PagePayload)
async def signup_page():
    return PagePayload(page="signup")


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    form: SignUpForm,
    identity: IdentityClient = Depends(get_identity_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    name = form.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please fill in all fields")

    try:
        result = identity.sign_up(form.email, form.password, {"name": name, "role": form.role})
    except IdentityError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message or "An error occurred during signup")

    # Profile creation failure is not fatal here; the dashboard gate retries it.
    try:
        ensure_profile(
            firestore_ops,
            AuthUser(uid=result.user_id, email=form.email, metadata={"name": name, "role": form.role}),
        )
    except StoreError as e:
        logger.error("Error creating profile for %s: %s", result.user_id, e.message)

    if result.session:
        return SignUpResponse(user_id=result.user_id, token=_token(result.session), redirect_to=DASHBOARD_PATH)

    # Email confirmation required: no session until the address is verified.
    return SignUpResponse(user_id=result.user_id, redirect_to=LOGIN_PATH, message=CHECK_EMAIL_MESSAGE)


@router.post("/login", response_model=LoginResponse)
def login(
    form: LoginForm,
    redirect: Optional[str] = None,
    identity: IdentityClient = Depends(get_identity_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    try:
        session = identity.sign_in(form.email, form.password)
        user = identity.get_user(session.user_id)
    except IdentityError as e:
        if is_email_not_confirmed(e.message):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_NOT_CONFIRMED_MESSAGE)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message or "An error occurred during login")

    try:
        ensure_profile(firestore_ops, user)
    except StoreError as e:
        logger.error("Error creating profile for %s: %s", user.uid, e.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Profile setup failed: {e.message}")

    logger.info("User %s signed in", user.uid)
    return LoginResponse(token=_token(session), redirect_to=_safe_redirect(redirect))


@router.post("/logout")
def logout(
    user: AuthUser = Depends(get_current_user),
    identity: IdentityClient = Depends(get_identity_client),
):
    try:
        identity.sign_out(user.uid)
    except IdentityError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return {"message": "Signed out", "redirect_to": "/"}


@router.get("/me", response_model=UserProfile)
async def read_users_me(profile: UserProfile = Depends(get_current_profile)):
    return profile
