"""FastAPI dependencies for injection."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates

from contenthub.auth import SessionManager
from contenthub.config import AppConfig
from contenthub.guard import GuardDecision, decide_admin_access
from contenthub.models.auth_models import AuthSnapshot
from contenthub.models.enums import AuthState
from contenthub.services import ServiceContainer
from contenthub.storage import CookieStorage

# Page chrome for visitors the registry holds no session for.
ANONYMOUS_SNAPSHOT = AuthSnapshot(state=AuthState.UNAUTHENTICATED, loading=False)


class AdminGateInterrupt(Exception):
    """Raised by :func:`require_admin_session` for every outcome but ``ALLOW``.

    Turned into the waiting page, a sign-in redirect or the access-denied
    page by the handler registered in ``create_app``.
    """

    def __init__(self, decision: GuardDecision, snapshot: AuthSnapshot) -> None:
        self.decision = decision
        self.snapshot = snapshot
        super().__init__(str(decision))


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


async def get_session_manager(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    config: AppConfig = Depends(get_app_config),
) -> SessionManager:
    """
    The visitor's ``SessionManager``, keyed by the auth cookie.

    A visitor without a known cookie gets a new session; the new id is
    left in ``request.state`` for the cookie middleware to set.  Only the
    routes that start a session (sign-in, sign-up, self-service admin)
    depend on this; everything else uses :func:`get_existing_session`.
    """
    cookie_value = request.cookies.get(config.AUTH_COOKIE_NAME)
    session_id, manager = await services["session_registry"].get_or_create(cookie_value)
    if session_id != cookie_value:
        request.state.issued_session_id = session_id
    return manager


def get_existing_session(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    config: AppConfig = Depends(get_app_config),
) -> Optional[SessionManager]:
    """The session named by the auth cookie, or ``None``.  Never creates one."""
    return services["session_registry"].get(request.cookies.get(config.AUTH_COOKIE_NAME))


def get_auth_snapshot(
    session: Optional[SessionManager] = Depends(get_existing_session),
) -> AuthSnapshot:
    """Auth state for page chrome; anonymous without a session."""
    if session is None:
        return ANONYMOUS_SNAPSHOT
    return session.snapshot


def _register_storage(request: Request, storage: CookieStorage) -> CookieStorage:
    storages: list[CookieStorage] = getattr(request.state, "browser_storages", [])
    storages.append(storage)
    request.state.browser_storages = storages
    return storage


def get_durable_storage(
    request: Request,
    config: AppConfig = Depends(get_app_config),
) -> CookieStorage:
    """Per-browser storage that survives restarts (consent records)."""
    return _register_storage(
        request,
        CookieStorage(
            request.cookies,
            max_age=config.CONSENT_COOKIE_MAX_AGE_S,
            secure=config.COOKIE_SECURE,
        ),
    )


def get_transient_storage(
    request: Request,
    config: AppConfig = Depends(get_app_config),
) -> CookieStorage:
    """Per-browser-session storage (anonymous session id)."""
    return _register_storage(
        request,
        CookieStorage(request.cookies, max_age=None, secure=config.COOKIE_SECURE),
    )


async def require_admin_session(
    session: Optional[SessionManager] = Depends(get_existing_session),
    config: AppConfig = Depends(get_app_config),
) -> SessionManager:
    """
    Gate for the admin area.

    Waits up to ``GUARD_WAIT_S`` for the session to settle, then lets
    admins through and raises :class:`AdminGateInterrupt` for everyone
    else.  A visitor without a session is sent to sign in.
    """
    if session is None:
        raise AdminGateInterrupt(GuardDecision.REDIRECT_TO_SIGN_IN, ANONYMOUS_SNAPSHOT)
    await session.wait_until_settled(config.GUARD_WAIT_S)
    snapshot = session.snapshot
    decision = decide_admin_access(snapshot)
    if decision is not GuardDecision.ALLOW:
        raise AdminGateInterrupt(decision, snapshot)
    return session


__all__ = [
    "ANONYMOUS_SNAPSHOT",
    "AdminGateInterrupt",
    "get_app_config",
    "get_auth_snapshot",
    "get_durable_storage",
    "get_existing_session",
    "get_services",
    "get_session_manager",
    "get_templates",
    "get_transient_storage",
    "require_admin_session",
]
