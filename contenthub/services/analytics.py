"""
Fire-and-Forget Analytics.

``EventEmitter`` runs analytics writes as tracked background tasks: the
request that triggered them never waits and never sees their errors.
Pending tasks are drained on application shutdown.

``ImpressionTracker`` forwards ``ad_impression`` events to an optional
``AnalyticsSink``; with no sink configured, impressions are dropped.
``VideoAnalyticsService`` records playback events in ``video_analytics``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

from contenthub.logger import StructuredLogger
from contenthub.models.enums import AdSlot, VideoEventType
from contenthub.repositories.tracking_repository import VideoAnalyticsRepository
from contenthub.services.base_service import BaseService

GLOBAL_POST_TAG: str = "global"


class EventEmitter(BaseService):
    """Schedules background writes without blocking or raising."""

    def __init__(self, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def emit(self, name: str, factory: Callable[[], Awaitable[Any]]) -> None:
        """Start ``factory()`` in the background.

        Failures to schedule and failures of the write itself are
        logged and dropped.
        """
        try:
            awaitable = factory()
        except Exception as exc:
            self._logger.warning("Analytics event %s could not start: %s", name, exc)
            return

        try:
            task = asyncio.get_running_loop().create_task(self._run(name, awaitable))
        except RuntimeError as exc:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self._logger.warning("Analytics event %s not scheduled: %s", name, exc)
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, name: str, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._logger.warning(
                "Analytics event %s failed: %s",
                name,
                exc,
                extra={"event": "ANALYTICS_FAILED", "analytics_event": name},
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for pending writes; cancel whatever is left after *timeout*."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        _, still_pending = await asyncio.wait(tasks, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            self._logger.warning(
                "Cancelled %d analytics event(s) still pending at shutdown.",
                len(still_pending),
            )


class AnalyticsSink(Protocol):
    """Destination for named analytics events."""

    async def track(self, name: str, params: dict[str, str]) -> None: ...


class LoggingAnalyticsSink:
    """Sink that writes events to the structured log."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger = logger

    async def track(self, name: str, params: dict[str, str]) -> None:
        self._logger.info(
            "Analytics event: %s",
            name,
            extra={"event": "ANALYTICS", "analytics_event": name, **params},
        )


class ImpressionTracker:
    """Emits one ``ad_impression`` event per rendered ad."""

    def __init__(self, emitter: EventEmitter, sink: Optional[AnalyticsSink] = None) -> None:
        self._emitter = emitter
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    def record(self, ad_id: str, slot: AdSlot, post_id: Optional[str] = None) -> bool:
        """Queue an impression.  Returns ``False`` when no sink is configured."""
        sink = self._sink
        if sink is None:
            return False
        params = {
            "ad_id": ad_id,
            "ad_position": str(slot),
            "post_id": post_id or GLOBAL_POST_TAG,
        }
        self._emitter.emit("ad_impression", lambda: sink.track("ad_impression", params))
        return True


class VideoAnalyticsService(BaseService):
    """Records playback events against the anonymous browser-session id."""

    def __init__(
        self,
        repo: VideoAnalyticsRepository,
        emitter: EventEmitter,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._emitter = emitter

    def track(
        self,
        post_id: str,
        session_id: str,
        event_type: VideoEventType,
        timestamp_seconds: int = 0,
        event_data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue one ``video_analytics`` row.  Never blocks, never raises."""
        self._emitter.emit(
            f"video_{event_type}",
            lambda: self._repo.insert(
                post_id=post_id,
                user_session=session_id,
                event_type=event_type,
                timestamp_seconds=timestamp_seconds,
                event_data=event_data,
            ),
        )
