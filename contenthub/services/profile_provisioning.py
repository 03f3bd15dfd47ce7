"""
Lazy Profile Provisioning Service.

Ensures every authenticated user owns exactly one ``profiles`` row, the
application's record of admin privilege.

Provisioning strategy:
    - Look the profile up by the Supabase Auth user id (unique, indexed).
    - Missing: insert one with ``is_admin=False``.  The initial admin
      flag never comes from any external source.
    - Insert hits the ``user_id`` unique constraint: another request
      created the row first.  Re-fetch it instead of failing.
    - ``is_admin`` is never written here.  Elevation only happens
      through the ``make_user_admin`` stored procedure.
"""

from __future__ import annotations

from typing import Optional

from contenthub.logger import StructuredLogger
from contenthub.models.profile import Profile
from contenthub.repositories.base_repository import DuplicateRecordError, RepositoryError
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.base_service import BaseService
from contenthub.utils.audit import log_audit_event


class ProfileProvisioningError(Exception):
    """Custom exception for profile provisioning failures."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


def default_full_name(email: str) -> str:
    """Display name used when the user gave none: the email local part."""
    return email.split("@", 1)[0]


class ProfileProvisioningService(BaseService):
    """Creates profiles on demand and answers "is this user an admin?".

    One instance per visitor, bound to that visitor's session client so
    the ``profiles`` row-level-security policies see the user's JWT.
    """

    def __init__(
        self,
        repo: ProfileRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo

    async def get_or_create_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
    ) -> Profile:
        """Return the user's profile, creating it if it does not exist.

        Idempotent: repeated and concurrent calls for the same user end
        with exactly one row.

        Args:
            user_id: Supabase Auth user id.
            email: The user's email address.
            full_name: Display name; defaults to the email local part.

        Returns:
            The existing or newly created Profile.

        Raises:
            ProfileProvisioningError: If the lookup or the insert fails.
        """
        try:
            existing: Optional[Profile] = await self._repo.get_by_user_id(user_id)
        except RepositoryError as exc:
            raise ProfileProvisioningError(
                f"Profile lookup failed for user {user_id}",
                original_error=exc,
            ) from exc

        if existing is not None:
            return existing

        return await self._provision_new_profile(user_id, email, full_name)

    async def resolve_admin_status(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
    ) -> bool:
        """Return ``True`` iff the user's profile grants admin.

        Never raises: any failure is logged and resolves to ``False``.
        """
        try:
            profile = await self.get_or_create_profile(user_id, email, full_name)
        except ProfileProvisioningError as exc:
            self._logger.warning(
                "Admin check failed for user %s; treating as non-admin. Error: %s",
                user_id,
                exc.original_error or exc,
                extra={"event": "ADMIN_CHECK_FAILED", "user_id": user_id},
            )
            return False
        return bool(profile.is_admin)

    # ------------------------------------------------------------------
    # Private implementation
    # ------------------------------------------------------------------

    async def _provision_new_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str],
    ) -> Profile:
        """Insert a non-admin profile, recovering from a concurrent insert."""
        display_name = full_name or default_full_name(email)
        self._logger.info(
            "Profile provisioning: creating profile for %s (ID: %s)",
            email,
            user_id,
        )

        new_profile = Profile(
            user_id=user_id,
            email=email,
            full_name=display_name,
            is_admin=False,
        )

        try:
            created: Profile = await self._repo.insert(new_profile)
        except DuplicateRecordError as exc:
            self._logger.info(
                "Profile provisioning: profile for %s already exists. "
                "Re-fetching.",
                user_id,
            )
            try:
                retried: Optional[Profile] = await self._repo.get_by_user_id(user_id)
            except RepositoryError as retry_exc:
                raise ProfileProvisioningError(
                    f"Profile re-fetch failed for user {user_id}",
                    original_error=retry_exc,
                ) from retry_exc
            if retried is None:
                raise ProfileProvisioningError(
                    f"Profile for user {user_id} conflicted on insert "
                    "but could not be found",
                    original_error=exc,
                ) from exc
            return retried
        except RepositoryError as exc:
            raise ProfileProvisioningError(
                f"Failed to create profile for user {user_id}",
                original_error=exc,
            ) from exc

        log_audit_event(
            logger=self._logger,
            action="PROFILE_CREATE",
            entity_type="Profile",
            entity_id=created.id or user_id,
            user_id=user_id,
            details={"email": email, "full_name": display_name, "is_admin": False},
        )
        return created
