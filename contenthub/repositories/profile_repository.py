"""
Profile Repository.

Handles all ``profiles`` data access through one visitor's session
client, so every call runs under that user's row-level-security policy.

Unlike the public repositories, lookups here keep "no row" and "lookup
failed" apart: the first triggers lazy creation, the second must not.
"""

from __future__ import annotations

from typing import Optional

from contenthub.models.profile import Profile
from contenthub.repositories.base_repository import (
    BaseRepository,
    DuplicateRecordError,
    RepositoryError,
    is_not_found,
    is_unique_violation,
)


class ProfileRepository(BaseRepository):
    """Data access layer for Profile rows.

    **No ``update_admin()`` method.**  Admin status changes only through
    the ``make_user_admin`` stored procedure (see :meth:`grant_admin`),
    which enforces its own authorization in the database.
    """

    TABLE = "profiles"

    async def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        """Fetch the profile for *user_id*.

        Returns ``None`` when no row exists.

        Raises:
            RepositoryError: On any failure other than "no row".
        """
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("user_id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as exc:
            if is_not_found(exc):
                return None
            raise RepositoryError(
                f"Profile lookup failed for user {user_id}: {exc}",
                original_error=exc,
            ) from exc

        if response is None or not response.data:
            return None
        return Profile.model_validate(response.data)

    async def insert(self, profile: Profile) -> Profile:
        """Insert a new profile row and return it as stored.

        Raises:
            DuplicateRecordError: A row for ``profile.user_id`` already
                exists (unique constraint on ``user_id``).
            RepositoryError: Any other write failure.
        """
        data = profile.model_dump(
            exclude={"id", "created_at", "updated_at"},
            exclude_none=True,
        )
        try:
            response = await self.supabase.table(self.TABLE).insert(data).execute()
        except Exception as exc:
            if is_unique_violation(exc):
                raise DuplicateRecordError(
                    f"Profile for user {profile.user_id} already exists",
                    original_error=exc,
                ) from exc
            raise RepositoryError(
                f"Profile insert failed for user {profile.user_id}: {exc}",
                original_error=exc,
            ) from exc

        if not response.data:
            raise RepositoryError(
                f"Profile insert for user {profile.user_id} returned no row"
            )
        created = Profile.model_validate(response.data[0])
        self._logger.info("Profile created: user %s", created.user_id)
        return created

    async def grant_admin(self, email: str) -> None:
        """Grant admin to the profile with *email* via ``make_user_admin``.

        Raises:
            RepositoryError: The procedure rejected the call or failed.
        """
        normalized_email = email.strip().lower()
        try:
            await self.supabase.rpc(
                "make_user_admin", {"user_email": normalized_email},
            ).execute()
        except Exception as exc:
            raise RepositoryError(
                f"make_user_admin failed for {normalized_email}: {exc}",
                original_error=exc,
            ) from exc
