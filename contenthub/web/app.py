"""
FastAPI Application Factory.

``create_app`` wires configuration, the database manager and the service
container into a FastAPI app.  Tests pass their own ``DatabaseManager``
(backed by an in-memory client) and analytics sink.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from contenthub import __version__
from contenthub.config import AppConfig, get_config
from contenthub.database import DatabaseManager
from contenthub.guard import SIGN_IN_PATH, GuardDecision
from contenthub.logger import StructuredLogger, get_logger
from contenthub.services import ServiceContainer, create_services
from contenthub.services.analytics import AnalyticsSink
from contenthub.storage import CookieStorage
from contenthub.web.dependencies import AdminGateInterrupt
from contenthub.web.routers import admin, ads, auth, content, health, pages, videos

TEMPLATES_DIR: Path = Path(__file__).parent / "templates"

# Drain budget for background analytics writes at shutdown.
_DRAIN_TIMEOUT_S: float = 5.0


def create_app(
    config: Optional[AppConfig] = None,
    db: Optional[DatabaseManager] = None,
    analytics_sink: Optional[AnalyticsSink] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the Content Hub application."""
    config = config or get_config()
    logger: StructuredLogger = get_logger("contenthub.web")

    if db is None:
        db = DatabaseManager(
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
            logger=get_logger("contenthub.database"),
        )
    if services is None:
        services = create_services(db, config, analytics_sink=analytics_sink)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await db.connect()
        logger.info(
            "Content Hub started (supabase: %s)",
            "connected" if db.is_online else "unavailable",
        )
        try:
            yield
        finally:
            await services["session_registry"].close_all()
            await services["event_emitter"].drain(timeout=_DRAIN_TIMEOUT_S)
            await db.close()
            logger.info("Content Hub stopped.")

    app = FastAPI(
        title=config.SITE_NAME,
        description="Articles, videos and tools backed by Supabase.",
        version=__version__,
        lifespan=lifespan,
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.globals["site_name"] = config.SITE_NAME

    app.state.config = config
    app.state.db = db
    app.state.services = services
    app.state.templates = templates

    @app.middleware("http")
    async def apply_browser_state(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Set the auth cookie and flush queued per-browser storage writes."""
        response = await call_next(request)
        issued: Optional[str] = getattr(request.state, "issued_session_id", None)
        if issued:
            response.set_cookie(
                config.AUTH_COOKIE_NAME,
                issued,
                httponly=True,
                secure=config.COOKIE_SECURE,
                samesite="lax",
                path="/",
            )
        storages: list[CookieStorage] = getattr(request.state, "browser_storages", [])
        for storage in storages:
            storage.apply(response)
        return response

    @app.exception_handler(AdminGateInterrupt)
    async def admin_gate_handler(request: Request, exc: AdminGateInterrupt) -> Response:
        if exc.decision is GuardDecision.REDIRECT_TO_SIGN_IN:
            return RedirectResponse(url=SIGN_IN_PATH, status_code=303)
        if exc.decision is GuardDecision.WAIT:
            return templates.TemplateResponse(
                request,
                "waiting.html",
                {"title": "Verifying credentials"},
                status_code=200,
                headers={"Retry-After": "1"},
            )
        return templates.TemplateResponse(
            request,
            "access_denied.html",
            {"title": "Access Denied", "user": exc.snapshot.user},
            status_code=403,
        )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> Response:
        if exc.status_code == 404:
            logger.info("404: %s", request.url.path, extra={"event": "NOT_FOUND"})
            return templates.TemplateResponse(
                request,
                "not_found.html",
                {"title": "Page not found", "path": request.url.path},
                status_code=404,
            )
        return await default_http_exception_handler(request, exc)

    app.include_router(health.router)
    app.include_router(pages.router)
    app.include_router(content.router)
    app.include_router(videos.router)
    app.include_router(ads.router)
    app.include_router(auth.router)
    app.include_router(admin.router)

    return app
