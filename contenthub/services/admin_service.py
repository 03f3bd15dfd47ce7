"""
Admin Service.

Grants admin privilege through the ``make_user_admin`` stored procedure.
The call runs on the requesting visitor's own client, so the database
applies its authorization to that visitor.

A new admin sees the admin area only after signing out and in again:
role changes are picked up on a fresh sign-in, never mid-session.
"""

from __future__ import annotations

from contenthub.auth import SessionManager
from contenthub.guard import AdminAccessError, require_admin
from contenthub.logger import StructuredLogger
from contenthub.models.service_models import ServiceResult
from contenthub.repositories.base_repository import RepositoryError
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.auth_service import AuthService
from contenthub.services.base_service import BaseService
from contenthub.utils.audit import log_audit_event

GRANT_SUCCESS_MESSAGE: str = (
    "Admin privileges granted. They need to sign out and sign in again "
    "to see the changes."
)
SELF_GRANT_SUCCESS_MESSAGE: str = (
    "Admin privileges granted. Sign out and sign in again to see the changes."
)


class AdminService(BaseService):
    """Admin-grant operations.

    Parameters
    ----------
    self_service_enabled:
        Whether signed-in users may promote themselves.
    logger:
        Structured logger instance.
    """

    def __init__(self, self_service_enabled: bool, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._self_service_enabled = self_service_enabled

    @property
    def self_service_enabled(self) -> bool:
        return self._self_service_enabled

    async def grant_admin(self, session: SessionManager, email: str) -> ServiceResult:
        """Promote the profile with *email*.  Caller must be an admin."""
        email_check = AuthService.validate_email(email)
        if not email_check.is_valid:
            return ServiceResult(
                success=False,
                error=email_check.error_message,
                status_code=400,
            )
        target = AuthService.normalize_email(email)

        @require_admin(session)
        async def _grant() -> ServiceResult:
            return await self._call_grant(session, target, GRANT_SUCCESS_MESSAGE)

        try:
            return await _grant()
        except AdminAccessError as exc:
            self._logger.warning(
                "Admin grant for %s refused: %s", target, exc,
                extra={"event": "GRANT_ADMIN_DENIED"},
            )
            return ServiceResult(success=False, error=str(exc), status_code=403)

    async def grant_self(self, session: SessionManager) -> ServiceResult:
        """Promote the signed-in visitor, when self-service is enabled."""
        if not self._self_service_enabled:
            return ServiceResult(
                success=False,
                error="Self-service admin grants are disabled.",
                status_code=404,
            )
        user = session.snapshot.user
        if user is None or not user.email:
            return ServiceResult(
                success=False,
                error="You must be signed in to do that.",
                status_code=401,
            )
        return await self._call_grant(
            session, AuthService.normalize_email(user.email), SELF_GRANT_SUCCESS_MESSAGE,
        )

    async def _call_grant(
        self,
        session: SessionManager,
        target_email: str,
        success_message: str,
    ) -> ServiceResult:
        actor = session.snapshot.user
        actor_id = actor.id if actor else "unknown"
        repo = ProfileRepository(lambda: session.client, self._logger)
        try:
            await repo.grant_admin(target_email)
        except RuntimeError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=503)
        except RepositoryError as exc:
            self._logger.warning(
                "Admin grant for %s failed: %s", target_email, exc.original_error or exc,
                extra={"event": "GRANT_ADMIN_FAILED", "user_id": actor_id},
            )
            return ServiceResult(
                success=False,
                error=f"Failed to grant admin privileges to {target_email}.",
                status_code=400,
            )

        log_audit_event(
            logger=self._logger,
            action="GRANT_ADMIN",
            entity_type="Profile",
            entity_id=target_email,
            user_id=actor_id,
            details={"email": target_email},
        )
        return ServiceResult(
            success=True,
            data={"email": target_email},
            message=success_message,
        )
