"""
Video Consent Service.

Decides whether a video may play without prompting, and records the
viewer's answer to the consent prompt.

Rules:
    - Videos without ``requires_consent`` always play.
    - Otherwise a stored ``ConsentRecord`` is honoured only while
      ``accepted`` and strictly younger than 24 hours.
    - Accepting stores a fresh record (``functional`` always included)
      and writes one row to ``video_consent_logs``.  A failed log write
      is reported in the outcome but does not block playback.
    - Declining stores nothing and blocks playback.
"""

from __future__ import annotations

import time
from typing import Iterable, Optional

from pydantic import ValidationError

from contenthub.logger import StructuredLogger
from contenthub.models.consent import (
    ConsentGate,
    ConsentOutcome,
    ConsentRecord,
    consent_storage_key,
)
from contenthub.models.content import Post
from contenthub.models.enums import ConsentCategory
from contenthub.repositories.base_repository import RepositoryError
from contenthub.repositories.tracking_repository import ConsentLogRepository
from contenthub.services.base_service import BaseService
from contenthub.storage import BrowserStorage
from contenthub.utils.audit import log_audit_event

CONSENT_ACCEPTED_MESSAGE: str = "Consent recorded. You can now watch the video."
CONSENT_DECLINED_MESSAGE: str = "You need to accept the terms to watch this video."

_OPTIONAL_CATEGORIES: tuple[ConsentCategory, ...] = (
    ConsentCategory.ANALYTICS,
    ConsentCategory.MARKETING,
)


def current_time_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def normalize_categories(categories: Iterable[ConsentCategory]) -> list[ConsentCategory]:
    """``functional`` first, then any chosen optional categories, no repeats."""
    chosen = set(categories)
    return [ConsentCategory.FUNCTIONAL] + [c for c in _OPTIONAL_CATEGORIES if c in chosen]


class ConsentService(BaseService):
    """Consent gate and prompt handling for videos.

    Parameters
    ----------
    repo:
        Writer for the durable ``video_consent_logs`` trail.
    logger:
        Structured logger instance.
    """

    def __init__(self, repo: ConsentLogRepository, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._repo = repo

    def load_record(self, storage: BrowserStorage, post_id: str) -> Optional[ConsentRecord]:
        """Read the stored record for *post_id*; unreadable records count as absent."""
        raw = storage.get_item(consent_storage_key(post_id))
        if raw is None:
            return None
        try:
            return ConsentRecord.model_validate_json(raw)
        except ValidationError:
            self._logger.debug("Ignoring unreadable consent record for post %s.", post_id)
            return None

    def evaluate(
        self,
        post: Post,
        storage: BrowserStorage,
        now_ms: Optional[int] = None,
    ) -> ConsentGate:
        """Decide whether *post* may play right away."""
        if not post.requires_consent:
            return ConsentGate(playback_allowed=True, requires_prompt=False)

        record = self.load_record(storage, post.id)
        now = current_time_ms() if now_ms is None else now_ms
        if record is not None and record.is_valid(now):
            return ConsentGate(playback_allowed=True, requires_prompt=False, record=record)
        return ConsentGate(playback_allowed=False, requires_prompt=True)

    async def accept(
        self,
        post_id: str,
        categories: Iterable[ConsentCategory],
        storage: BrowserStorage,
        session_id: str,
        user_agent: Optional[str] = None,
        now_ms: Optional[int] = None,
    ) -> ConsentOutcome:
        """Persist an accepted consent and write the audit row.

        Args:
            post_id: The video being unlocked.
            categories: Optional categories the viewer ticked.
                ``functional`` is added regardless.
            storage: Durable per-browser storage.
            session_id: Anonymous browser-session id.
            user_agent: The viewer's ``User-Agent`` header.
            now_ms: Clock override, epoch milliseconds.
        """
        types = normalize_categories(categories)
        record = ConsentRecord(
            accepted=True,
            timestamp=current_time_ms() if now_ms is None else now_ms,
            types=types,
        )
        storage.set_item(consent_storage_key(post_id), record.model_dump_json())

        audit_error: Optional[str] = None
        try:
            await self._repo.insert(
                post_id=post_id,
                user_session=session_id,
                consent_types=types,
                user_agent=user_agent,
            )
        except RepositoryError as exc:
            audit_error = exc.message
            self._logger.warning(
                "Consent log write failed for post %s; playback still allowed. Error: %s",
                post_id,
                exc.original_error or exc,
                extra={"event": "CONSENT_LOG_FAILED", "post_id": post_id},
            )

        log_audit_event(
            logger=self._logger,
            action="CONSENT_ACCEPT",
            entity_type="Post",
            entity_id=post_id,
            user_id=session_id,
            details={
                "types": ",".join(str(t) for t in types),
                "audit_logged": audit_error is None,
            },
        )
        return ConsentOutcome(
            playback_allowed=True,
            record=record,
            audit_logged=audit_error is None,
            audit_error=audit_error,
            message=CONSENT_ACCEPTED_MESSAGE,
        )

    def decline(self, post_id: str) -> ConsentOutcome:
        """Block playback.  Nothing is stored, so the prompt shows again."""
        self._logger.info(
            "Consent declined for post %s", post_id,
            extra={"event": "CONSENT_DECLINE", "post_id": post_id},
        )
        return ConsentOutcome(playback_allowed=False, message=CONSENT_DECLINED_MESSAGE)
