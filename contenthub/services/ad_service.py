"""
Ad Resolution Service.

Picks the ad for one placement slot on one render:

1. With a content id, an active per-content placement whose ad is also
   active wins.
2. Otherwise the newest active global ad for the slot.
3. Nothing found, or every lookup failed: no ad.  Lookup failures are
   logged by the repository and never reach the page.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from contenthub.logger import StructuredLogger
from contenthub.models.ads import Ad
from contenthub.models.enums import AdSlot
from contenthub.repositories.ad_repository import AdRepository
from contenthub.services.analytics import ImpressionTracker
from contenthub.services.base_service import BaseService

IMPRESSION_PATH: str = "/ads/impression"

# CSS sizing class per slot, used by the fragment template.
SLOT_DIMENSIONS: dict[AdSlot, str] = {
    AdSlot.HOMEPAGE_TOP: "ad-banner",
    AdSlot.HOMEPAGE_BOTTOM: "ad-banner",
    AdSlot.POST_BEFORE: "ad-banner",
    AdSlot.POST_AFTER: "ad-banner",
    AdSlot.POST_INSIDE: "ad-inline",
    AdSlot.HOMEPAGE_MIDDLE: "ad-large",
    AdSlot.VIDEO_BANNER_300X250: "ad-rectangle",
    AdSlot.VIDEO_BANNER_728X90: "ad-leaderboard",
    AdSlot.VIDEO_POPUNDER: "ad-hidden",
    AdSlot.VIDEO_SMARTLINK: "ad-smartlink",
    AdSlot.VIDEO_SOCIAL_BAR: "ad-social-bar",
    AdSlot.VIDEO_NATIVE_BANNER: "ad-native",
}


class AdResolver(BaseService):
    """Resolves ads for placement slots and records impressions."""

    def __init__(
        self,
        repo: AdRepository,
        tracker: ImpressionTracker,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._tracker = tracker

    async def resolve(self, slot: AdSlot, post_id: Optional[str] = None) -> Optional[Ad]:
        """Return the ad to render in *slot*, or ``None``."""
        if post_id:
            placed = await self._repo.get_placement_ad(post_id, slot)
            if placed is not None:
                self._logger.debug(
                    "Placement ad %s resolved for post %s in %s", placed.id, post_id, slot,
                )
                return placed

        ad = await self._repo.get_global_ad(slot)
        if ad is None:
            self._logger.debug("No ad for slot %s (post %s)", slot, post_id or "global")
        return ad

    @staticmethod
    def impression_url(ad: Ad, slot: AdSlot, post_id: Optional[str] = None) -> str:
        """Tracking-pixel URL for one rendered ad."""
        params = {"ad_id": ad.id, "slot": str(slot)}
        if post_id:
            params["post_id"] = post_id
        return f"{IMPRESSION_PATH}?{urlencode(params)}"

    @staticmethod
    def dimensions(slot: AdSlot) -> str:
        return SLOT_DIMENSIONS.get(slot, "ad-banner")

    def record_impression(self, ad_id: str, slot: AdSlot, post_id: Optional[str] = None) -> bool:
        """Emit one ``ad_impression`` event; ``False`` when analytics is off."""
        return self._tracker.record(ad_id, slot, post_id)
