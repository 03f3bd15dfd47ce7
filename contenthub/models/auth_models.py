"""
Authentication Pipeline Models.

Pydantic models and enumerations for the auth request/response
contracts between ``AuthService``, ``SessionManager`` and the web layer.

Every auth operation returns a structured, inspectable result rather
than raw strings or exception side-channels.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from contenthub.models.enums import AuthState


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of authentication error categories.

    Used by ``AuthService`` to classify Supabase errors and by the
    web layer to decide which feedback to display.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    USER_BANNED = "user_banned"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    WEAK_PASSWORD = "weak_password"
    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_ERROR = "unknown_error"


# ---------------------------------------------------------------------------
# Supabase error-code mapping
# ---------------------------------------------------------------------------

SUPABASE_ERROR_MAP: dict[str, tuple[AuthErrorCode, str]] = {
    "invalid_credentials": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "invalid login credentials": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "invalid_grant": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "email not confirmed": (
        AuthErrorCode.EMAIL_NOT_CONFIRMED,
        "Please confirm your email address before signing in.",
    ),
    "user_banned": (
        AuthErrorCode.USER_BANNED,
        "Your account has been deactivated. Contact the site administrator.",
    ),
    "user_already_exists": (
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "An account with this email already exists. Try signing in.",
    ),
    "user already registered": (
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "An account with this email already exists. Try signing in.",
    ),
    "weak_password": (
        AuthErrorCode.WEAK_PASSWORD,
        "Password is too weak. Choose a longer password.",
    ),
}


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check."""

    is_valid: bool
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for sign-in, sign-up and sign-out.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable error description, or an informational message
        on success (e.g. "check your inbox").
    email:
        The normalised email address the operation was run for.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    email: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Identity and session as seen by the application
# ---------------------------------------------------------------------------

class AuthUser(BaseModel):
    """Identity issued by Supabase Auth.  Not owned by this application."""

    id: str
    email: str
    full_name: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_provider(cls, user: Any) -> "AuthUser":
        """Build from a ``gotrue`` ``User`` object."""
        metadata: Mapping[str, Any] = getattr(user, "user_metadata", None) or {}
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None) or "",
            full_name=metadata.get("full_name"),
        )


class AuthSession(BaseModel):
    """Token pair bound to an ``AuthUser``."""

    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @classmethod
    def from_provider(cls, session: Any) -> "AuthSession":
        """Build from a ``gotrue`` ``Session`` object."""
        expires_at: Optional[int] = getattr(session, "expires_at", None)
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=(
                datetime.fromtimestamp(expires_at, tz=timezone.utc)
                if expires_at is not None
                else None
            ),
        )


class AuthSnapshot(BaseModel):
    """Read-only view of a ``SessionManager`` at one point in time."""

    state: AuthState
    user: Optional[AuthUser] = None
    is_admin: bool = False
    loading: bool = True
    has_session: bool = False

    model_config = {"frozen": True}

    @property
    def is_authenticated(self) -> bool:
        return self.state in (
            AuthState.AUTHENTICATED_ADMIN,
            AuthState.AUTHENTICATED_NON_ADMIN,
        )
