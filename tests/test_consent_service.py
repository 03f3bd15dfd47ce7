"""Tests for the video consent gate."""

import json

import pytest
from postgrest.exceptions import APIError

from contenthub.logger import StructuredLogger
from contenthub.models.consent import CONSENT_WINDOW_MS, ConsentRecord, consent_storage_key
from contenthub.models.content import Post
from contenthub.models.enums import ConsentCategory, PostType
from contenthub.repositories.tracking_repository import ConsentLogRepository
from contenthub.services.consent_service import (
    CONSENT_DECLINED_MESSAGE,
    ConsentService,
    normalize_categories,
)
from contenthub.storage import MemoryStorage
from tests.fakes import FakeClient, FakeSupabase

NOW_MS = 1_718_000_000_000


@pytest.fixture
def service(backend: FakeSupabase, logger: StructuredLogger) -> ConsentService:
    client = FakeClient(backend)
    return ConsentService(repo=ConsentLogRepository(lambda: client, logger), logger=logger)


def _video(requires_consent: bool = True) -> Post:
    return Post(
        id="vid-1",
        title="Launch",
        slug="launch",
        post_type=PostType.VIDEO,
        requires_consent=requires_consent,
    )


def _stored(accepted: bool, timestamp: int) -> MemoryStorage:
    record = ConsentRecord(accepted=accepted, timestamp=timestamp, types=[ConsentCategory.FUNCTIONAL])
    return MemoryStorage({consent_storage_key("vid-1"): record.model_dump_json()})


class TestEvaluate:
    """Tests for ConsentService.evaluate."""

    def test_video_without_consent_requirement_always_plays(self, service: ConsentService) -> None:
        gate = service.evaluate(_video(requires_consent=False), MemoryStorage(), now_ms=NOW_MS)
        assert gate.playback_allowed is True
        assert gate.requires_prompt is False

    def test_no_record_prompts(self, service: ConsentService) -> None:
        gate = service.evaluate(_video(), MemoryStorage(), now_ms=NOW_MS)
        assert gate.playback_allowed is False
        assert gate.requires_prompt is True

    def test_record_just_inside_window_is_honoured(self, service: ConsentService) -> None:
        storage = _stored(True, NOW_MS - CONSENT_WINDOW_MS + 1)
        gate = service.evaluate(_video(), storage, now_ms=NOW_MS)
        assert gate.playback_allowed is True
        assert gate.record is not None

    def test_record_exactly_24_hours_old_is_expired(self, service: ConsentService) -> None:
        """The window is strict: an age of exactly 24h prompts again."""
        storage = _stored(True, NOW_MS - CONSENT_WINDOW_MS)
        gate = service.evaluate(_video(), storage, now_ms=NOW_MS)
        assert gate.requires_prompt is True

    def test_declined_record_is_not_honoured(self, service: ConsentService) -> None:
        gate = service.evaluate(_video(), _stored(False, NOW_MS), now_ms=NOW_MS)
        assert gate.playback_allowed is False

    def test_unreadable_record_counts_as_absent(self, service: ConsentService) -> None:
        storage = MemoryStorage({consent_storage_key("vid-1"): "{not json"})
        gate = service.evaluate(_video(), storage, now_ms=NOW_MS)
        assert gate.requires_prompt is True


class TestAccept:
    """Tests for ConsentService.accept."""

    async def test_stores_record_and_writes_log_row(
        self, service: ConsentService, backend: FakeSupabase,
    ) -> None:
        storage = MemoryStorage()
        outcome = await service.accept(
            "vid-1", [ConsentCategory.MARKETING], storage,
            session_id="sess-1", user_agent="pytest", now_ms=NOW_MS,
        )
        assert outcome.playback_allowed is True
        assert outcome.audit_logged is True

        stored = json.loads(storage.get_item("video_consent_vid-1"))
        assert stored == {"accepted": True, "timestamp": NOW_MS, "types": ["functional", "marketing"]}

        rows = backend.rows("video_consent_logs")
        assert len(rows) == 1
        assert rows[0]["post_id"] == "vid-1"
        assert rows[0]["user_session"] == "sess-1"
        assert rows[0]["consent_given"] is True
        assert rows[0]["consent_type"] == ["functional", "marketing"]
        assert rows[0]["user_agent"] == "pytest"

    async def test_functional_only_when_nothing_else_chosen(self, service: ConsentService) -> None:
        storage = MemoryStorage()
        outcome = await service.accept("vid-1", [], storage, session_id="s", now_ms=NOW_MS)
        assert outcome.record is not None
        assert outcome.record.types == [ConsentCategory.FUNCTIONAL]

    async def test_accepted_record_unlocks_playback(self, service: ConsentService) -> None:
        storage = MemoryStorage()
        await service.accept("vid-1", [], storage, session_id="s", now_ms=NOW_MS)
        gate = service.evaluate(_video(), storage, now_ms=NOW_MS + 1000)
        assert gate.playback_allowed is True

    async def test_log_failure_still_allows_playback(
        self, service: ConsentService, backend: FakeSupabase,
    ) -> None:
        backend.failing_tables["video_consent_logs"] = APIError(
            {"code": "42501", "message": "permission denied", "details": None, "hint": None},
        )
        storage = MemoryStorage()
        outcome = await service.accept("vid-1", [], storage, session_id="s", now_ms=NOW_MS)
        assert outcome.playback_allowed is True
        assert outcome.audit_logged is False
        assert outcome.audit_error
        assert storage.get_item("video_consent_vid-1") is not None


class TestDecline:
    """Tests for ConsentService.decline."""

    def test_decline_stores_nothing(self, service: ConsentService, backend: FakeSupabase) -> None:
        outcome = service.decline("vid-1")
        assert outcome.playback_allowed is False
        assert outcome.message == CONSENT_DECLINED_MESSAGE
        assert backend.rows("video_consent_logs") == []


def test_normalize_categories_orders_and_dedupes() -> None:
    categories = [ConsentCategory.MARKETING, ConsentCategory.FUNCTIONAL, ConsentCategory.ANALYTICS]
    assert normalize_categories(categories) == [
        ConsentCategory.FUNCTIONAL,
        ConsentCategory.ANALYTICS,
        ConsentCategory.MARKETING,
    ]
