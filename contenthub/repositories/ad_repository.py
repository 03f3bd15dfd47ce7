"""
Ad Repository.

Lookups behind ad resolution.  Both queries use ``limit(1)`` instead of
``single()`` so "no row" is an empty list rather than an error, and both
order by ``created_at`` descending: when several rows match, the newest
wins.

The management methods serve the admin screens.  They run on the admin
visitor's own client, so row-level security authorizes every write.
"""

from __future__ import annotations

from typing import Any, Optional

from contenthub.models.ads import Ad, AdPlacement
from contenthub.models.enums import AdSlot
from contenthub.repositories.base_repository import BaseRepository, RepositoryError

_PLACEMENT_COLUMNS: str = (
    "id, post_id, ad_id, position, is_active, created_at, "
    "ads:ad_id (id, name, code, position, is_active, created_at)"
)


class AdRepository(BaseRepository):
    """Access to ``ads`` and ``ad_placements``."""

    TABLE = "ads"
    PLACEMENTS_TABLE = "ad_placements"

    async def get_placement_ad(self, post_id: str, slot: AdSlot) -> Optional[Ad]:
        """The ad of the newest active placement for (*post_id*, *slot*).

        A placement whose ad has been deactivated does not count.
        """

        async def _query() -> Optional[Ad]:
            response = await (
                self.supabase.table(self.PLACEMENTS_TABLE)
                .select(_PLACEMENT_COLUMNS)
                .eq("post_id", post_id)
                .eq("position", str(slot))
                .eq("is_active", True)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            placements = self._parse_rows(
                AdPlacement, response.data, operation_name="get_placement_ad",
            )
            if not placements:
                return None
            ad = placements[0].ad
            if ad is None or not ad.is_active:
                return None
            return ad

        return await self._read_or_default(
            _query, lambda: None, operation_name="get_placement_ad (ad_placements)",
        )

    async def get_global_ad(self, slot: AdSlot) -> Optional[Ad]:
        """The newest active ad assigned to *slot*."""

        async def _query() -> Optional[Ad]:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("position", str(slot))
                .eq("is_active", True)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            ads = self._parse_rows(Ad, response.data, operation_name="get_global_ad")
            return ads[0] if ads else None

        return await self._read_or_default(
            _query, lambda: None, operation_name="get_global_ad (ads)",
        )

    # ------------------------------------------------------------------
    # Admin management (run on an admin visitor's client)
    # ------------------------------------------------------------------
    # Unlike the lookups above these raise: the admin screens report
    # failures instead of rendering an empty list.

    async def list_all(self) -> list[Ad]:
        """Every ad, active or not, newest first.

        Raises:
            RepositoryError: The read failed.
        """
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(f"Listing ads failed: {exc}", original_error=exc) from exc
        return self._parse_rows(Ad, response.data, operation_name="list_all")

    async def insert_ad(self, fields: dict[str, Any]) -> Ad:
        """Create an ad and return the stored row.

        Raises:
            RepositoryError: The insert failed.
        """
        try:
            response = await self.supabase.table(self.TABLE).insert(fields).execute()
        except Exception as exc:
            raise RepositoryError(f"Creating ad failed: {exc}", original_error=exc) from exc
        return Ad.model_validate(response.data[0])

    async def update_ad(self, ad_id: str, fields: dict[str, Any]) -> Optional[Ad]:
        """Update the ad *ad_id*; ``None`` when no such ad exists.

        Raises:
            RepositoryError: The update failed.
        """
        try:
            response = await (
                self.supabase.table(self.TABLE).update(fields).eq("id", ad_id).execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Updating ad {ad_id} failed: {exc}", original_error=exc,
            ) from exc
        return Ad.model_validate(response.data[0]) if response.data else None

    async def delete_ad(self, ad_id: str) -> bool:
        """Delete the ad *ad_id*; ``False`` when no such ad exists.

        Raises:
            RepositoryError: The delete failed.
        """
        return await self._delete(self.TABLE, ad_id)

    async def list_placements(self) -> list[AdPlacement]:
        """Every per-content placement with its ad, newest first.

        Raises:
            RepositoryError: The read failed.
        """
        try:
            response = await (
                self.supabase.table(self.PLACEMENTS_TABLE)
                .select(_PLACEMENT_COLUMNS)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Listing ad placements failed: {exc}", original_error=exc,
            ) from exc
        return self._parse_rows(AdPlacement, response.data, operation_name="list_placements")

    async def insert_placement(self, fields: dict[str, Any]) -> AdPlacement:
        """Create a placement and return the stored row.

        Raises:
            RepositoryError: The insert failed.
        """
        try:
            response = await (
                self.supabase.table(self.PLACEMENTS_TABLE).insert(fields).execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Creating ad placement failed: {exc}", original_error=exc,
            ) from exc
        return AdPlacement.model_validate(response.data[0])

    async def update_placement(
        self, placement_id: str, fields: dict[str, Any],
    ) -> Optional[AdPlacement]:
        """Update the placement *placement_id*; ``None`` when it does not exist.

        Raises:
            RepositoryError: The update failed.
        """
        try:
            response = await (
                self.supabase.table(self.PLACEMENTS_TABLE)
                .update(fields)
                .eq("id", placement_id)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Updating ad placement {placement_id} failed: {exc}", original_error=exc,
            ) from exc
        return AdPlacement.model_validate(response.data[0]) if response.data else None

    async def delete_placement(self, placement_id: str) -> bool:
        """Delete the placement *placement_id*; ``False`` when it does not exist.

        Raises:
            RepositoryError: The delete failed.
        """
        return await self._delete(self.PLACEMENTS_TABLE, placement_id)

    async def _delete(self, table: str, row_id: str) -> bool:
        try:
            response = await self.supabase.table(table).delete().eq("id", row_id).execute()
        except Exception as exc:
            raise RepositoryError(
                f"Deleting {table} row {row_id} failed: {exc}", original_error=exc,
            ) from exc
        return bool(response.data)
