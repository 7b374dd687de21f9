"""
Identity provider client.

Identities, sessions and email confirmation are owned by Firebase Auth. The
admin SDK covers user creation, token verification and revocation; password
sign-in is only offered by the Identity Toolkit REST API, which is called
with the project's public web API key.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from fastapi import Request
from firebase_admin import auth, exceptions as firebase_exceptions

from servicehub.core.config import Settings
from servicehub.core.errors import IdentityError

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
SIGN_IN_TIMEOUT = 15 # seconds

# Identity Toolkit error codes mapped to messages a user can act on.
SIGN_IN_ERRORS = {
    "EMAIL_NOT_FOUND": "Invalid login credentials",
    "INVALID_PASSWORD": "Invalid login credentials",
    "INVALID_LOGIN_CREDENTIALS": "Invalid login credentials",
    "USER_DISABLED": "This account has been disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts, please try again later",
}


@dataclass
class Session:
    access_token: str
    user_id: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


@dataclass
class SignUpResult:
    user_id: str
    session: Optional[Session] = None


@dataclass
class AuthUser:
    uid: str
    email: Optional[str]
    email_verified: bool = False
    # Sign-up metadata ({"name": ..., "role": ...}), kept as custom claims.
    metadata: Dict[str, Any] = field(default_factory=dict)


class IdentityClient:
    def __init__(self, settings: Settings, app=None):
        self.settings = settings
        self.app = app

    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> SignUpResult:
        try:
            user = auth.create_user(
                email=email,
                password=password,
                display_name=metadata.get("name"),
                email_verified=False,
                app=self.app,
            )
            auth.set_custom_user_claims(user.uid, metadata, app=self.app)
        except auth.EmailAlreadyExistsError as e:
            raise IdentityError("User already registered", code="EMAIL_EXISTS") from e
        except ValueError as e:
            # The admin SDK validates password length and email format locally.
            raise IdentityError(str(e), code="INVALID_ARGUMENT") from e
        except firebase_exceptions.FirebaseError as e:
            logger.error("Sign-up failed for %s: %s", email, e)
            raise IdentityError(str(e), code=e.code) from e

        logger.info("Created identity %s with role %s", user.uid, metadata.get("role"))

        if self.settings.require_email_confirmation:
            try:
                link = auth.generate_email_verification_link(email, app=self.app)
                logger.info("Email confirmation link generated for %s", user.uid)
                logger.debug("Confirmation link for %s: %s", email, link)
            except firebase_exceptions.FirebaseError as e:
                logger.error("Could not generate confirmation link for %s: %s", user.uid, e)
            return SignUpResult(user_id=user.uid)

        return SignUpResult(user_id=user.uid, session=self.sign_in(email, password))

    def sign_in(self, email: str, password: str) -> Session:
        try:
            response = requests.post(
                SIGN_IN_URL,
                params={"key": self.settings.firebase_api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=SIGN_IN_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error("Sign-in request failed: %s", e)
            raise IdentityError("Could not reach the authentication service", code="NETWORK_ERROR") from e
        try:
            payload = response.json() if response.content else {}
        except ValueError as e:
            # Proxies and Google front ends can answer with an HTML error page.
            logger.error("Sign-in returned a non-JSON body (status %s)", response.status_code)
            raise IdentityError("Could not reach the authentication service", code="BAD_RESPONSE") from e
        if not response.ok:
            code = payload.get("error", {}).get("message", "UNKNOWN")
            # Codes can carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
            code = code.split(" : ")[0].strip()
            logger.info("Sign-in rejected for %s: %s", email, code)
            raise IdentityError(SIGN_IN_ERRORS.get(code, code.replace("_", " ").capitalize()), code=code)

        session = Session(
            access_token=payload["idToken"],
            user_id=payload["localId"],
            refresh_token=payload.get("refreshToken"),
            expires_in=int(payload["expiresIn"]) if payload.get("expiresIn") else None,
        )

        if self.settings.require_email_confirmation:
            user = self.get_user(session.user_id)
            if not user.email_verified:
                raise IdentityError("Email not confirmed", code="EMAIL_NOT_VERIFIED")
        return session

    def sign_out(self, user_id: str) -> None:
        try:
            auth.revoke_refresh_tokens(user_id, app=self.app)
        except firebase_exceptions.FirebaseError as e:
            logger.error("Sign-out failed for %s: %s", user_id, e)
            raise IdentityError(str(e), code=e.code) from e

    def get_session(self, token: Optional[str]) -> Dict[str, Any]:
        """Verify a session token and return its claims."""
        if not token:
            raise IdentityError("Auth session missing", code="SESSION_MISSING")
        try:
            return auth.verify_id_token(token, app=self.app, check_revoked=True)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise IdentityError(str(e) or "Invalid session", code="INVALID_SESSION") from e

    def get_user(self, user_id: str) -> AuthUser:
        try:
            record = auth.get_user(user_id, app=self.app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise IdentityError(str(e) or "User not found", code="USER_NOT_FOUND") from e
        return AuthUser(
            uid=record.uid,
            email=record.email,
            email_verified=bool(record.email_verified),
            metadata=dict(record.custom_claims or {}),
        )


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity
