"""
Analytics Overview Service.

Read-only admin view over post view counts, playback events and the
consent audit trail.  Runs on the admin visitor's client: row-level
security keeps ``video_analytics`` and ``video_consent_logs`` closed to
everyone else.
"""

from __future__ import annotations

import asyncio

from contenthub.auth import SessionManager
from contenthub.guard import AdminAccessError, require_admin
from contenthub.models.analytics import AnalyticsOverview
from contenthub.models.service_models import ServiceResult
from contenthub.repositories.base_repository import RepositoryError
from contenthub.repositories.content_repository import PostRepository
from contenthub.repositories.tracking_repository import (
    ConsentTrailReader,
    VideoEventTrailReader,
)
from contenthub.services.base_service import BaseService

TOP_POSTS: int = 5
RECENT_ROWS: int = 10


class AnalyticsOverviewService(BaseService):
    """Builds the admin analytics page."""

    async def overview(self, session: SessionManager) -> ServiceResult:
        """Totals, the most viewed posts and the latest trail rows.

        ``data`` is an :class:`AnalyticsOverview` on success.
        """

        @require_admin(session)
        async def _build() -> AnalyticsOverview:
            def client_provider():  # type: ignore[no-untyped-def]
                return session.client

            posts = PostRepository(client_provider, self._logger)
            events = VideoEventTrailReader(client_provider, self._logger)
            consents = ConsentTrailReader(client_provider, self._logger)

            stats, event_count, recent_events, consent_count, recent_consents = (
                await asyncio.gather(
                    posts.list_view_stats(),
                    events.count(),
                    events.list_recent(RECENT_ROWS),
                    consents.count(),
                    consents.list_recent(RECENT_ROWS),
                )
            )
            return AnalyticsOverview(
                total_posts=len(stats),
                total_views=sum(post.view_count for post in stats),
                total_video_events=event_count,
                total_consents=consent_count,
                top_posts=stats[:TOP_POSTS],
                recent_video_events=recent_events,
                recent_consents=recent_consents,
            )

        try:
            return ServiceResult(success=True, data=await _build())
        except AdminAccessError as exc:
            self._logger.warning(
                "Analytics overview refused: %s", exc,
                extra={"event": "ANALYTICS_DENIED"},
            )
            return ServiceResult(success=False, error=str(exc), status_code=403)
        except RuntimeError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=503)
        except RepositoryError as exc:
            self._logger.warning(
                "Analytics overview failed: %s", exc.original_error or exc,
                extra={"event": "ANALYTICS_FAILED"},
            )
            return ServiceResult(
                success=False,
                error="Analytics are unavailable right now.",
                status_code=503,
            )
