"""Error types shared by the store facade, the identity client and the routers."""

from typing import Optional

EMAIL_NOT_CONFIRMED_MESSAGE = (
    "Please confirm your email address before logging in. "
    "Check your inbox for a confirmation email."
)


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""


class StoreError(Exception):
    """A Firestore call failed. ``message`` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IdentityError(Exception):
    """A Firebase Auth call failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


def is_email_not_confirmed(message: Optional[str]) -> bool:
    """Pick the unconfirmed-email case out of a generic identity error message."""
    if not message:
        return False
    lowered = message.lower()
    return "confirm" in lowered or "email_not_verified" in lowered
