"""Tests for ad resolution and impression tracking."""

from urllib.parse import parse_qs, urlparse

import pytest
from postgrest.exceptions import APIError

from contenthub.logger import StructuredLogger
from contenthub.models.enums import AdSlot
from contenthub.repositories.ad_repository import AdRepository
from contenthub.services.ad_service import AdResolver
from contenthub.services.analytics import EventEmitter, ImpressionTracker
from tests.conftest import RecordingSink
from tests.fakes import FakeSupabase

_OUTAGE = APIError({"code": "503", "message": "service unavailable", "details": None, "hint": None})


async def _resolver(
    backend: FakeSupabase,
    logger: StructuredLogger,
    sink: RecordingSink | None = None,
) -> tuple[AdResolver, EventEmitter]:
    client = await backend.create_client()
    emitter = EventEmitter(logger)
    resolver = AdResolver(
        repo=AdRepository(lambda: client, logger),
        tracker=ImpressionTracker(emitter, sink),
        logger=logger,
    )
    return resolver, emitter


def _ad(backend: FakeSupabase, name: str, slot: AdSlot, is_active: bool = True) -> dict:
    return backend.add_row("ads", name=name, code=f"<i>{name}</i>", position=str(slot), is_active=is_active)


def _placement(backend: FakeSupabase, post_id: str, ad: dict, slot: AdSlot, is_active: bool = True) -> dict:
    return backend.add_row(
        "ad_placements", post_id=post_id, ad_id=ad["id"], position=str(slot), is_active=is_active,
    )


class TestResolve:
    """Tests for AdResolver.resolve."""

    async def test_placement_beats_global(self, backend: FakeSupabase, logger: StructuredLogger) -> None:
        _ad(backend, "global", AdSlot.POST_BEFORE)
        special = _ad(backend, "special", AdSlot.VIDEO_SMARTLINK)
        _placement(backend, "post-1", special, AdSlot.POST_BEFORE)
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.POST_BEFORE, "post-1")
        assert ad is not None
        assert ad.name == "special"

    async def test_placement_only_applies_to_its_post(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_BEFORE)
        special = _ad(backend, "special", AdSlot.VIDEO_SMARTLINK)
        _placement(backend, "post-1", special, AdSlot.POST_BEFORE)
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.POST_BEFORE, "post-2")
        assert ad is not None
        assert ad.name == "global"
        assert (await resolver.resolve(AdSlot.POST_BEFORE)) == ad

    async def test_newest_active_global_ad_wins(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "older", AdSlot.HOMEPAGE_TOP)
        _ad(backend, "newer", AdSlot.HOMEPAGE_TOP)
        _ad(backend, "newest-but-off", AdSlot.HOMEPAGE_TOP, is_active=False)
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.HOMEPAGE_TOP)
        assert ad is not None
        assert ad.name == "newer"

    async def test_inactive_placement_ad_falls_back_to_global(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_AFTER)
        retired = _ad(backend, "retired", AdSlot.POST_AFTER, is_active=False)
        _placement(backend, "post-1", retired, AdSlot.POST_AFTER)
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.POST_AFTER, "post-1")
        assert ad is not None
        assert ad.name == "global"

    async def test_inactive_placement_is_ignored(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        special = _ad(backend, "special", AdSlot.VIDEO_SMARTLINK)
        _placement(backend, "post-1", special, AdSlot.POST_INSIDE, is_active=False)
        resolver, _ = await _resolver(backend, logger)

        assert await resolver.resolve(AdSlot.POST_INSIDE, "post-1") is None

    async def test_inactive_placement_falls_back_to_global(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_INSIDE)
        special = _ad(backend, "special", AdSlot.VIDEO_SMARTLINK)
        _placement(backend, "post-1", special, AdSlot.POST_INSIDE, is_active=False)
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.POST_INSIDE, "post-1")
        assert ad is not None
        assert ad.name == "global"

    async def test_no_ad_configured(self, backend: FakeSupabase, logger: StructuredLogger) -> None:
        resolver, _ = await _resolver(backend, logger)
        assert await resolver.resolve(AdSlot.HOMEPAGE_BOTTOM) is None

    async def test_placement_lookup_failure_falls_back_to_global(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_BEFORE)
        backend.failing_tables["ad_placements"] = _OUTAGE
        resolver, _ = await _resolver(backend, logger)

        ad = await resolver.resolve(AdSlot.POST_BEFORE, "post-1")
        assert ad is not None
        assert ad.name == "global"

    async def test_all_lookups_failing_yields_no_ad(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_BEFORE)
        backend.failing_tables["ad_placements"] = _OUTAGE
        backend.failing_tables["ads"] = _OUTAGE
        resolver, _ = await _resolver(backend, logger)

        assert await resolver.resolve(AdSlot.POST_BEFORE, "post-1") is None

    async def test_malformed_row_is_skipped(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_row("ads", name="broken", code=None, position="homepage_top", is_active=True)
        resolver, _ = await _resolver(backend, logger)
        assert await resolver.resolve(AdSlot.HOMEPAGE_TOP) is None


class TestImpressions:
    """Impression URLs and tracking."""

    async def test_impression_url_carries_ad_slot_and_post(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        _ad(backend, "global", AdSlot.POST_BEFORE)
        resolver, _ = await _resolver(backend, logger)
        ad = await resolver.resolve(AdSlot.POST_BEFORE)
        assert ad is not None

        url = urlparse(resolver.impression_url(ad, AdSlot.POST_BEFORE, "post-1"))
        assert url.path == "/ads/impression"
        assert parse_qs(url.query) == {
            "ad_id": [ad.id], "slot": ["post_before"], "post_id": ["post-1"],
        }

    async def test_record_impression_emits_event(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        sink = RecordingSink()
        resolver, emitter = await _resolver(backend, logger, sink)
        assert resolver.record_impression("ad-1", AdSlot.HOMEPAGE_TOP) is True
        await emitter.drain(timeout=1.0)
        assert sink.events == [
            ("ad_impression", {"ad_id": "ad-1", "ad_position": "homepage_top", "post_id": "global"}),
        ]

    async def test_record_impression_without_sink_is_noop(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        resolver, emitter = await _resolver(backend, logger)
        assert resolver.record_impression("ad-1", AdSlot.HOMEPAGE_TOP, "post-1") is False
        assert emitter.pending == 0

    @pytest.mark.parametrize(
        ("slot", "css"),
        [(AdSlot.VIDEO_BANNER_300X250, "ad-rectangle"), (AdSlot.HOMEPAGE_MIDDLE, "ad-large")],
    )
    def test_dimensions(self, slot: AdSlot, css: str) -> None:
        assert AdResolver.dimensions(slot) == css
