"""
Application settings.

Values are read from environment variables when a ``Settings`` instance is
created. The two Firebase values are required: the project id identifies the
Firestore store the application talks to and the web API key is the public
key used for password sign-in. Startup calls ``Settings.validate()`` and
refuses to continue when either is missing.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from servicehub.core.errors import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = field(default_factory=lambda: os.getenv("PROJECT_NAME", "ServiceHub API"))
    api_version: str = field(default_factory=lambda: os.getenv("API_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    firebase_project_id: str = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID", ""))
    firebase_api_key: str = field(default_factory=lambda: os.getenv("FIREBASE_API_KEY", ""))
    # Path to a service-account key. Application default credentials are
    # used when unset.
    firebase_credentials: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_CREDENTIALS") or None)

    # When true, sign-up does not hand out a session and sign-in refuses
    # identities whose email address has not been verified yet.
    require_email_confirmation: bool = field(
        default_factory=lambda: _env_bool("REQUIRE_EMAIL_CONFIRMATION", "true")
    )

    notification_duration_ms: int = field(
        default_factory=lambda: int(os.getenv("NOTIFICATION_DURATION_MS", "3000"))
    )
    notification_limit: int = field(default_factory=lambda: int(os.getenv("NOTIFICATION_LIMIT", "5")))

    def validate(self) -> "Settings":
        missing = []
        if not self.firebase_project_id:
            missing.append("FIREBASE_PROJECT_ID")
        if not self.firebase_api_key:
            missing.append("FIREBASE_API_KEY")
        if missing:
            raise ConfigurationError(f"Missing Firebase environment variables: {', '.join(missing)}")
        return self


def get_settings() -> Settings:
    return Settings()
