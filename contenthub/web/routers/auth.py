"""Sign-in, sign-up, sign-out and auth-state endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from contenthub.auth import SessionManager
from contenthub.config import AppConfig
from contenthub.models.auth_models import AuthResult, AuthSnapshot
from contenthub.models.enums import AuthState
from contenthub.services import ServiceContainer
from contenthub.web.dependencies import (
    ANONYMOUS_SNAPSHOT,
    get_app_config,
    get_auth_snapshot,
    get_existing_session,
    get_services,
    get_session_manager,
    get_templates,
)

router = APIRouter(prefix="/auth", tags=["auth"])


class AuthStateResponse(BaseModel):
    """Current visitor's auth state."""

    state: AuthState
    loading: bool
    is_admin: bool
    has_session: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None


def _landing_path(session: SessionManager) -> str:
    return "/admin" if session.snapshot.is_admin else "/"


def _render_form(
    request: Request,
    templates: Jinja2Templates,
    auth: AuthSnapshot,
    *,
    tab: str = "sign-in",
    result: Optional[AuthResult] = None,
    email: str = "",
    full_name: str = "",
    status_code: int = 200,
) -> Response:
    return templates.TemplateResponse(
        request,
        "auth.html",
        {
            "title": "Sign In",
            "auth": auth,
            "tab": tab,
            "result": result,
            "email": email,
            "full_name": full_name,
        },
        status_code=status_code,
    )


@router.get("")
async def auth_page(
    request: Request,
    session: Optional[SessionManager] = Depends(get_existing_session),
    config: AppConfig = Depends(get_app_config),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Sign-in / sign-up form.  Signed-in visitors are sent on."""
    if session is None:
        return _render_form(request, templates, ANONYMOUS_SNAPSHOT)
    await session.wait_until_settled(config.GUARD_WAIT_S)
    if session.is_authenticated:
        return RedirectResponse(url=_landing_path(session), status_code=303)
    return _render_form(request, templates, session.snapshot)


@router.post("/sign-in")
async def sign_in(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    services: ServiceContainer = Depends(get_services),
    session: SessionManager = Depends(get_session_manager),
    config: AppConfig = Depends(get_app_config),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """
    Exchange credentials for a session.

    On success waits for the admin check, then redirects admins to the
    admin area and everyone else home.
    """
    result = await services["auth_service"].sign_in(session, email, password)
    if not result.success:
        return _render_form(
            request, templates, session.snapshot, result=result, email=email, status_code=400,
        )
    await session.wait_until_settled(config.GUARD_WAIT_S)
    return RedirectResponse(url=_landing_path(session), status_code=303)


@router.post("/sign-up")
async def sign_up(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    services: ServiceContainer = Depends(get_services),
    session: SessionManager = Depends(get_session_manager),
    templates: Jinja2Templates = Depends(get_templates),
) -> Response:
    """Register an account; the confirmation email links back to the site."""
    result = await services["auth_service"].sign_up(session, email, password, full_name)
    return _render_form(
        request,
        templates,
        session.snapshot,
        tab="sign-in" if result.success else "sign-up",
        result=result,
        email=email,
        full_name="" if result.success else full_name,
        status_code=200 if result.success else 400,
    )


@router.post("/sign-out")
async def sign_out(
    services: ServiceContainer = Depends(get_services),
    session: Optional[SessionManager] = Depends(get_existing_session),
) -> Response:
    """Sign out.  Local state is cleared even if the server call fails."""
    if session is not None:
        await services["auth_service"].sign_out(session)
    return RedirectResponse(url="/", status_code=303)


@router.get("/state", response_model=AuthStateResponse)
async def auth_state(
    snapshot: AuthSnapshot = Depends(get_auth_snapshot),
) -> AuthStateResponse:
    return AuthStateResponse(
        state=snapshot.state,
        loading=snapshot.loading,
        is_admin=snapshot.is_admin,
        has_session=snapshot.has_session,
        user_id=snapshot.user.id if snapshot.user else None,
        email=snapshot.user.email if snapshot.user else None,
        full_name=snapshot.user.full_name if snapshot.user else None,
    )


@router.post("/make-me-admin")
async def make_me_admin(
    services: ServiceContainer = Depends(get_services),
    session: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """
    Self-service admin grant, when enabled.

    The new role applies after the next sign-in.
    """
    result = await services["admin_service"].grant_self(session)
    return JSONResponse(
        status_code=result.status_code,
        content=result.model_dump(exclude={"status_code"}),
    )
