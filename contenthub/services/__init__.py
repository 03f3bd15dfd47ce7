"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on the
visitor's ``SessionManager`` for auth context.

The ``create_services()`` factory wires every repository and service
together, returning a typed dict that the web layer consumes without
knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from supabase import AsyncClient

from contenthub.config import AppConfig
from contenthub.database import DatabaseManager
from contenthub.logger import StructuredLogger, get_logger
from contenthub.repositories.ad_repository import AdRepository
from contenthub.repositories.content_repository import PostRepository, ToolRepository
from contenthub.repositories.tracking_repository import (
    ConsentLogRepository,
    VideoAnalyticsRepository,
)
from contenthub.services.ad_management import AdManagementService
from contenthub.services.ad_service import AdResolver
from contenthub.services.admin_service import AdminService
from contenthub.services.analytics import (
    AnalyticsSink,
    EventEmitter,
    ImpressionTracker,
    VideoAnalyticsService,
)
from contenthub.services.analytics_overview import AnalyticsOverviewService
from contenthub.services.auth_service import AuthService
from contenthub.services.consent_service import ConsentService
from contenthub.services.content_service import ContentService
from contenthub.services.session_registry import SessionRegistry


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Auth ---
    auth_service: AuthService
    admin_service: AdminService
    session_registry: SessionRegistry

    # --- Admin area ---
    ad_management_service: AdManagementService
    analytics_overview_service: AnalyticsOverviewService

    # --- Public site ---
    content_service: ContentService
    ad_resolver: AdResolver
    consent_service: ConsentService
    video_analytics_service: VideoAnalyticsService

    # --- Infrastructure ---
    event_emitter: EventEmitter


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    analytics_sink: Optional[AnalyticsSink] = None,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application factory calls it once at startup.

    Args:
        db: DatabaseManager; its public client backs every public read.
        config: Application configuration.
        analytics_sink: Destination for ad impressions.  ``None``
            disables impression tracking.
        logger: Shared logger; defaults to ``get_logger("contenthub.services")``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("contenthub.services")

    def public_client() -> AsyncClient:
        return db.supabase

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer, public client)
    # ------------------------------------------------------------------
    post_repo = PostRepository(public_client, logger)
    tool_repo = ToolRepository(public_client, logger)
    ad_repo = AdRepository(public_client, logger)
    consent_log_repo = ConsentLogRepository(public_client, logger)
    video_analytics_repo = VideoAnalyticsRepository(public_client, logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    event_emitter = EventEmitter(logger)
    auth_service = AuthService(site_url=config.SITE_URL, logger=logger)
    admin_service = AdminService(
        self_service_enabled=config.SELF_SERVICE_ADMIN_ENABLED,
        logger=logger,
    )
    consent_service = ConsentService(repo=consent_log_repo, logger=logger)
    ad_management_service = AdManagementService(logger=logger)
    analytics_overview_service = AnalyticsOverviewService(logger=logger)

    # ------------------------------------------------------------------
    # 3. Services that share the event emitter
    # ------------------------------------------------------------------
    content_service = ContentService(
        posts=post_repo,
        tools=tool_repo,
        emitter=event_emitter,
        logger=logger,
    )
    ad_resolver = AdResolver(
        repo=ad_repo,
        tracker=ImpressionTracker(event_emitter, analytics_sink),
        logger=logger,
    )
    video_analytics_service = VideoAnalyticsService(
        repo=video_analytics_repo,
        emitter=event_emitter,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 4. Per-visitor sessions
    # ------------------------------------------------------------------
    session_registry = SessionRegistry(
        db=db,
        logger=logger,
        admin_check_timeout_s=config.ADMIN_CHECK_TIMEOUT_S,
        max_sessions=config.SESSION_REGISTRY_MAX,
    )

    return ServiceContainer(
        auth_service=auth_service,
        admin_service=admin_service,
        session_registry=session_registry,
        ad_management_service=ad_management_service,
        analytics_overview_service=analytics_overview_service,
        content_service=content_service,
        ad_resolver=ad_resolver,
        consent_service=consent_service,
        video_analytics_service=video_analytics_service,
        event_emitter=event_emitter,
    )
