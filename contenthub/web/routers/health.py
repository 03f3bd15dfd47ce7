"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from contenthub.database import DatabaseManager
from contenthub.services import ServiceContainer

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    supabase: str
    sessions: int
    pending_events: int


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Report application health.

    The app answers even with Supabase unreachable (degraded mode): every
    public page still renders, just without content.
    """
    db: DatabaseManager = request.app.state.db
    services: ServiceContainer = request.app.state.services
    supabase_status = db.describe()["supabase"]
    return HealthResponse(
        status="healthy" if db.is_online else "degraded",
        supabase=supabase_status,
        sessions=len(services["session_registry"]),
        pending_events=services["event_emitter"].pending,
    )
