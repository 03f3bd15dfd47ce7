"""
Admin Route Guard.

``decide_admin_access`` maps an ``AuthSnapshot`` to one of four
outcomes; the web layer turns each outcome into a page or a redirect.
``require_admin`` is the service-layer counterpart: a decorator factory
that refuses to run the wrapped coroutine for anyone but an admin.

Usage::

    from contenthub.guard import require_admin

    admin_only = require_admin(session)

    @admin_only
    async def grant(email: str) -> ServiceResult:
        ...
"""

from __future__ import annotations

from enum import StrEnum
from functools import wraps
from typing import Awaitable, Callable, ParamSpec, TypeVar

from contenthub.auth import SessionManager
from contenthub.models.auth_models import AuthSnapshot
from contenthub.models.enums import AuthState

P = ParamSpec("P")
R = TypeVar("R")

SIGN_IN_PATH: str = "/auth"


class GuardDecision(StrEnum):
    """What the admin area should do for the current visitor."""

    WAIT = "wait"
    REDIRECT_TO_SIGN_IN = "redirect_to_sign_in"
    ACCESS_DENIED = "access_denied"
    ALLOW = "allow"


class AdminAccessError(RuntimeError):
    """Raised when a guarded function is called without admin rights."""


def decide_admin_access(snapshot: AuthSnapshot) -> GuardDecision:
    """Decide access to the admin area from *snapshot*.

    - initializing or loading: ``WAIT`` (never redirect on a transient state)
    - no user: ``REDIRECT_TO_SIGN_IN``
    - signed in without admin: ``ACCESS_DENIED``
    - admin: ``ALLOW``
    """
    if snapshot.loading or snapshot.state is AuthState.INITIALIZING:
        return GuardDecision.WAIT
    if snapshot.user is None or snapshot.state is AuthState.UNAUTHENTICATED:
        return GuardDecision.REDIRECT_TO_SIGN_IN
    if snapshot.state is AuthState.AUTHENTICATED_ADMIN and snapshot.is_admin:
        return GuardDecision.ALLOW
    return GuardDecision.ACCESS_DENIED


def require_admin(
    session: SessionManager,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Return a decorator that enforces admin access via *session*.

    The check runs against the snapshot at call time.  Anything other
    than ``ALLOW`` (including a still-loading session) raises
    :class:`AdminAccessError`.

    Args:
        session: The visitor's ``SessionManager``.

    Returns:
        A decorator suitable for wrapping service-layer coroutines.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            decision = decide_admin_access(session.snapshot)
            if decision is not GuardDecision.ALLOW:
                raise AdminAccessError(
                    f"Admin access required ({decision}). "
                    "Sign in with an administrator account."
                )
            return await func(*args, **kwargs)

        return wrapper

    return decorator
