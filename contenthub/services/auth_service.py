"""
Authentication Service.

Single orchestrator for every authentication concern: sign-in,
sign-up, sign-out, input validation and error classification.

The service is shared by all visitors and holds no per-visitor state;
each call receives the visitor's ``SessionManager`` and drives the
Supabase client that manager wraps.  Routers stay thin form handlers.

All methods return typed ``AuthResult`` or ``ValidationResult``
models.  The web layer never inspects raw exceptions.
"""

from __future__ import annotations

import re
from typing import Optional

import httpx

from contenthub.auth import SessionManager
from contenthub.logger import StructuredLogger
from contenthub.models.auth_models import (
    SUPABASE_ERROR_MAP,
    AuthErrorCode,
    AuthResult,
    ValidationResult,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MIN_PASSWORD_LENGTH: int = 6

# C0 controls (U+0000 to U+001F), DEL (U+007F) and C1 controls (U+0080 to U+009F).
_CONTROL_CHAR_RE: re.Pattern[str] = re.compile(r"[\x00-\x1f\x7f-\x9f]")

SIGN_UP_SUCCESS_MESSAGE: str = (
    "Account created successfully! Please check your email to verify your account."
)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AuthService:
    """Centralised authentication service.

    Parameters
    ----------
    site_url:
        Public base URL of the site.  Confirmation emails redirect here.
    logger:
        Structured JSON logger for audit-grade logging.
    """

    def __init__(self, site_url: str, logger: StructuredLogger) -> None:
        self._site_url: str = site_url.rstrip("/")
        self._logger: StructuredLogger = logger

    # ==================================================================
    # Validation
    # ==================================================================

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        """Validate an email address against a simplified RFC 5322 regex."""
        if not email or not email.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Email address is required.",
            )
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult(
                is_valid=False,
                error_message="Please enter a valid email address.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_password(password: str) -> ValidationResult:
        """Enforce the password policy: at least six characters.

        Strength rules beyond length belong to the auth provider, which
        reports them as ``weak_password``.
        """
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return ValidationResult(
                is_valid=False,
                error_message=(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
                ),
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_name(name: str, field_label: str = "Full name") -> ValidationResult:
        """Validate a display name.

        Rejects control characters (including newlines and tabs) to
        prevent log injection and display corruption.
        """
        stripped = name.strip()
        if not stripped:
            return ValidationResult(
                is_valid=False,
                error_message=f"{field_label} is required.",
            )
        if _CONTROL_CHAR_RE.search(stripped):
            return ValidationResult(
                is_valid=False,
                error_message=(
                    f"{field_label} contains invalid characters. "
                    "Only printable characters are allowed."
                ),
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    # ==================================================================
    # Sign-in
    # ==================================================================

    async def sign_in(
        self,
        session: SessionManager,
        email: str,
        password: str,
    ) -> AuthResult:
        """Exchange credentials for a session.

        On failure the session state is untouched and loading is
        cleared.  On success the auth client's ``SIGNED_IN``
        notification populates the session and clears loading.

        Parameters
        ----------
        session:
            The visitor's ``SessionManager``.
        email:
            The raw email entered by the user.
        password:
            The raw password entered by the user.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message=email_check.error_message,
            )
        if not password:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message="Password is required.",
            )

        email = self.normalize_email(email)
        session.begin_loading()

        try:
            response = await session.client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except RuntimeError:
            session.end_loading()
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message="Cannot reach the server. Please try again later.",
                email=email,
            )
        except Exception as exc:
            session.end_loading()
            return self.classify_error(exc, operation="LOGIN", email=email)

        user_id: Optional[str] = getattr(getattr(response, "user", None), "id", None)
        self._logger.info(
            "User authenticated: %s",
            email,
            extra={"event": "LOGIN", "email": email, "user_id": user_id},
        )
        return AuthResult(success=True, email=email)

    # ==================================================================
    # Sign-up
    # ==================================================================

    async def sign_up(
        self,
        session: SessionManager,
        email: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> AuthResult:
        """Register a credential with ``full_name`` metadata.

        Does not create a Profile: that happens lazily on the first
        admin check after sign-in.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message=email_check.error_message,
            )

        pw_check = self.validate_password(password)
        if not pw_check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message=pw_check.error_message,
            )

        display_name: Optional[str] = None
        if full_name and full_name.strip():
            name_check = self.validate_name(full_name)
            if not name_check.is_valid:
                return AuthResult(
                    success=False,
                    error_code=AuthErrorCode.VALIDATION_ERROR,
                    error_message=name_check.error_message,
                )
            display_name = full_name.strip()

        email = self.normalize_email(email)

        try:
            await session.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "email_redirect_to": f"{self._site_url}/",
                    "data": {"full_name": display_name},
                },
            })
        except RuntimeError:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message=(
                    "Cannot reach the server. "
                    "An internet connection is required to create an account."
                ),
                email=email,
            )
        except Exception as exc:
            return self.classify_error(exc, operation="REGISTER", email=email)

        self._logger.info(
            "User registered: %s",
            email,
            extra={"event": "REGISTER", "email": email},
        )
        return AuthResult(
            success=True,
            email=email,
            error_message=SIGN_UP_SUCCESS_MESSAGE,
        )

    # ==================================================================
    # Sign-out
    # ==================================================================

    async def sign_out(self, session: SessionManager) -> AuthResult:
        """Best-effort server-side sign-out, then clear local state.

        Local state is cleared even when the remote call fails, so the
        visitor is always signed out from this application's view.
        """
        snapshot = session.snapshot
        user_email = snapshot.user.email if snapshot.user else "unknown"
        user_id = snapshot.user.id if snapshot.user else "unknown"

        try:
            await session.client.auth.sign_out()
        except RuntimeError:
            self._logger.debug(
                "Offline; skipping server-side sign_out for %s.", user_email,
            )
        except Exception as exc:
            self._logger.warning(
                "Server-side sign_out failed for %s: %s", user_email, exc,
            )

        session.clear()

        self._logger.info(
            "User logged out: %s",
            user_email,
            extra={"event": "LOGOUT", "email": user_email, "user_id": user_id},
        )
        return AuthResult(success=True, email=None if user_email == "unknown" else user_email)

    # ==================================================================
    # Error classification
    # ==================================================================

    def classify_error(
        self,
        exc: Exception,
        operation: str,
        email: Optional[str] = None,
    ) -> AuthResult:
        """Map a Supabase or network exception to a structured ``AuthResult``.

        Parameters
        ----------
        exc:
            The exception raised by the auth client.
        operation:
            ``"LOGIN"`` or ``"REGISTER"``; used in log events.
        email:
            Normalised email the operation ran for.
        """
        if isinstance(exc, (ConnectionError, TimeoutError, httpx.TransportError)):
            self._logger.warning(
                "Network error during %s: %s", operation.lower(), exc,
                extra={"event": f"{operation}_NETWORK_ERROR"},
            )
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message="Cannot reach the server. Check your internet connection.",
                email=email,
            )

        # Supabase auth errors: inspect the code and message text
        error_str = f"{getattr(exc, 'code', '') or ''} {exc}".lower()

        for code_key, (error_code, human_message) in SUPABASE_ERROR_MAP.items():
            if code_key in error_str:
                self._logger.warning(
                    "Auth error (%s): %s", code_key, exc,
                    extra={"event": f"{operation}_FAILED", "error_code": code_key},
                )
                return AuthResult(
                    success=False,
                    error_code=error_code,
                    error_message=human_message,
                    email=email,
                )

        self._logger.warning(
            "Unknown %s error: %s", operation.lower(), exc,
            extra={"event": f"{operation}_FAILED", "error_code": "unknown"},
        )
        return AuthResult(
            success=False,
            error_code=AuthErrorCode.UNKNOWN_ERROR,
            error_message="An unexpected error occurred. Please try again later.",
            email=email,
        )
