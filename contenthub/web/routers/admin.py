"""Admin area.  Every route sits behind :func:`require_admin_session`."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from contenthub.auth import SessionManager
from contenthub.models.enums import AdSlot
from contenthub.models.service_models import AdInput, PlacementInput, ServiceResult
from contenthub.services import ServiceContainer
from contenthub.web.dependencies import get_services, get_templates, require_admin_session

router = APIRouter(prefix="/admin", tags=["admin"])


def _render_dashboard(
    request: Request,
    templates: Jinja2Templates,
    session: SessionManager,
    result: ServiceResult | None = None,
) -> Response:
    return templates.TemplateResponse(
        request,
        "admin_dashboard.html",
        {"title": "Admin Dashboard", "auth": session.snapshot, "result": result},
        status_code=result.status_code if result is not None else 200,
    )


def _invalid_input(exc: ValidationError) -> ServiceResult:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return ServiceResult(
        success=False, error=f"Invalid {field}: {first['msg']}", status_code=400,
    )


async def _render_ads(
    request: Request,
    templates: Jinja2Templates,
    services: ServiceContainer,
    session: SessionManager,
    result: ServiceResult | None = None,
) -> Response:
    """The ads page, reloaded after every change so it shows stored state."""
    listing = await services["ad_management_service"].load(session)
    if result is None and not listing.success:
        result = listing
    context: dict[str, Any] = {
        "title": "Manage Ads",
        "auth": session.snapshot,
        "result": result,
        "ads": listing.data["ads"] if listing.success else [],
        "placements": listing.data["placements"] if listing.success else [],
        "slots": list(AdSlot),
    }
    return templates.TemplateResponse(
        request,
        "admin_ads.html",
        context,
        status_code=result.status_code if result is not None else 200,
    )


@router.get("")
async def dashboard(
    request: Request,
    session: SessionManager = Depends(require_admin_session),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return _render_dashboard(request, templates, session)


@router.post("/grant-admin")
async def grant_admin(
    request: Request,
    email: str = Form(""),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Grant admin to another account by email."""
    result = await services["admin_service"].grant_admin(session, email)
    return _render_dashboard(request, templates, session, result)


# ----------------------------------------------------------------------
# Ads and placements
# ----------------------------------------------------------------------


@router.get("/ads")
async def ads_page(
    request: Request,
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    return await _render_ads(request, templates, services, session)


@router.post("/ads")
async def create_ad(
    request: Request,
    name: str = Form(""),
    code: str = Form(""),
    position: str = Form(""),
    is_active: bool = Form(False),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    try:
        ad = AdInput(name=name, code=code, position=position, is_active=is_active)
    except ValidationError as exc:
        result = _invalid_input(exc)
    else:
        result = await services["ad_management_service"].create_ad(session, ad)
    return await _render_ads(request, templates, services, session, result)


@router.post("/ads/{ad_id}")
async def update_ad(
    request: Request,
    ad_id: str,
    name: str = Form(""),
    code: str = Form(""),
    position: str = Form(""),
    is_active: bool = Form(False),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    try:
        ad = AdInput(name=name, code=code, position=position, is_active=is_active)
    except ValidationError as exc:
        result = _invalid_input(exc)
    else:
        result = await services["ad_management_service"].update_ad(session, ad_id, ad)
    return await _render_ads(request, templates, services, session, result)


@router.post("/ads/{ad_id}/status")
async def set_ad_status(
    request: Request,
    ad_id: str,
    is_active: bool = Form(False),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    result = await services["ad_management_service"].set_ad_active(session, ad_id, is_active)
    return await _render_ads(request, templates, services, session, result)


@router.post("/ads/{ad_id}/delete")
async def delete_ad(
    request: Request,
    ad_id: str,
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    result = await services["ad_management_service"].delete_ad(session, ad_id)
    return await _render_ads(request, templates, services, session, result)


@router.post("/placements")
async def create_placement(
    request: Request,
    post_id: str = Form(""),
    ad_id: str = Form(""),
    position: str = Form(""),
    is_active: bool = Form(False),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    try:
        placement = PlacementInput(
            post_id=post_id, ad_id=ad_id, position=position, is_active=is_active,
        )
    except ValidationError as exc:
        result = _invalid_input(exc)
    else:
        result = await services["ad_management_service"].create_placement(session, placement)
    return await _render_ads(request, templates, services, session, result)


@router.post("/placements/{placement_id}/status")
async def set_placement_status(
    request: Request,
    placement_id: str,
    is_active: bool = Form(False),
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    result = await services["ad_management_service"].set_placement_active(
        session, placement_id, is_active,
    )
    return await _render_ads(request, templates, services, session, result)


@router.post("/placements/{placement_id}/delete")
async def delete_placement(
    request: Request,
    placement_id: str,
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    result = await services["ad_management_service"].delete_placement(session, placement_id)
    return await _render_ads(request, templates, services, session, result)


# ----------------------------------------------------------------------
# Analytics
# ----------------------------------------------------------------------


@router.get("/analytics")
async def analytics_page(
    request: Request,
    session: SessionManager = Depends(require_admin_session),
    services: ServiceContainer = Depends(get_services),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Read-only totals, top posts and the latest playback and consent rows."""
    result = await services["analytics_overview_service"].overview(session)
    return templates.TemplateResponse(
        request,
        "admin_analytics.html",
        {
            "title": "Analytics",
            "auth": session.snapshot,
            "result": None if result.success else result,
            "overview": result.data if result.success else None,
        },
        status_code=result.status_code,
    )
