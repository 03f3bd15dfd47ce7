"""
Tracking Repositories.

Anonymous inserts into ``video_consent_logs`` and ``video_analytics``.
Rows are keyed by the browser-session id, never by user identity.
Every method raises on failure; callers decide whether that matters.
The trail readers serve the admin analytics overview.
"""

from __future__ import annotations

from typing import Any, Optional

from postgrest.types import CountMethod
from pydantic import BaseModel

from contenthub.models.analytics import ConsentLogEntry, VideoAnalyticsEntry
from contenthub.models.enums import ConsentCategory, VideoEventType
from contenthub.repositories.base_repository import BaseRepository, RepositoryError


class ConsentLogRepository(BaseRepository):
    """Durable audit trail of consent decisions."""

    TABLE = "video_consent_logs"

    async def insert(
        self,
        post_id: str,
        user_session: str,
        consent_types: list[ConsentCategory],
        user_agent: Optional[str],
    ) -> None:
        """Record an accepted consent prompt.

        Raises:
            RepositoryError: The insert failed.
        """
        try:
            await self.supabase.table(self.TABLE).insert({
                "post_id": post_id,
                "user_session": user_session,
                "consent_given": True,
                "consent_type": [str(c) for c in consent_types],
                "user_agent": user_agent,
            }).execute()
        except Exception as exc:
            raise RepositoryError(
                f"Consent log insert failed for post {post_id}: {exc}",
                original_error=exc,
            ) from exc


class VideoAnalyticsRepository(BaseRepository):
    """Playback events."""

    TABLE = "video_analytics"

    async def insert(
        self,
        post_id: str,
        user_session: str,
        event_type: VideoEventType,
        timestamp_seconds: int,
        event_data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record one playback event.

        Raises:
            RepositoryError: The insert failed.
        """
        try:
            await self.supabase.table(self.TABLE).insert({
                "post_id": post_id,
                "user_session": user_session,
                "event_type": str(event_type),
                "event_data": event_data or {},
                "timestamp_seconds": timestamp_seconds,
            }).execute()
        except Exception as exc:
            raise RepositoryError(
                f"Video analytics insert failed for post {post_id}: {exc}",
                original_error=exc,
            ) from exc


class TrailReader(BaseRepository):
    """Admin reads over one tracking table: total rows and the latest few.

    Row-level security only opens these tables to administrators, so
    instances are bound to an admin visitor's client.
    """

    TABLE = ""
    MODEL: type[BaseModel] = BaseModel

    async def count(self) -> int:
        """Total rows in the table.

        Raises:
            RepositoryError: The read failed.
        """
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("id", count=CountMethod.exact)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Counting {self.TABLE} failed: {exc}", original_error=exc,
            ) from exc
        return response.count or 0

    async def list_recent(self, limit: int = 10) -> list[Any]:
        """The *limit* newest rows.

        Raises:
            RepositoryError: The read failed.
        """
        try:
            response = await (
                self.supabase.table(self.TABLE)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(
                f"Reading {self.TABLE} failed: {exc}", original_error=exc,
            ) from exc
        return self._parse_rows(self.MODEL, response.data, operation_name="list_recent")


class ConsentTrailReader(TrailReader):
    TABLE = ConsentLogRepository.TABLE
    MODEL = ConsentLogEntry


class VideoEventTrailReader(TrailReader):
    TABLE = VideoAnalyticsRepository.TABLE
    MODEL = VideoAnalyticsEntry
