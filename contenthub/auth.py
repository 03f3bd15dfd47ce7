"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds one visitor's
authenticated user, tokens and admin flag, and broadcasts every change.

Each visitor gets their own manager (see ``SessionRegistry``) wrapping
their own Supabase client.  The manager listens to that client's
auth-state-change stream, resolves the admin role through the visitor's
Profile row, and exposes the result as an immutable ``AuthSnapshot``.

Usage::

    manager = SessionManager(client, provisioning, logger)
    await manager.start()
    await manager.wait_until_settled(timeout=5.0)
    snapshot = manager.snapshot
    if snapshot.state is AuthState.AUTHENTICATED_ADMIN:
        ...
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Optional

from supabase import AsyncClient

from contenthub.logger import StructuredLogger
from contenthub.models.auth_models import AuthSession, AuthSnapshot, AuthUser
from contenthub.models.enums import AuthState

if TYPE_CHECKING:
    from contenthub.services.profile_provisioning import ProfileProvisioningService

SnapshotListener = Callable[[AuthSnapshot], None]

# Events that only rotate tokens or metadata.  For the user already held
# they never re-resolve the role: a role change requires a fresh sign-in.
_TOKEN_ONLY_EVENTS: frozenset[str] = frozenset({"TOKEN_REFRESHED", "USER_UPDATED"})


class SessionManager:
    """Injectable holder for one visitor's authentication state.

    Parameters
    ----------
    client:
        The visitor's own Supabase client, or ``None`` when it could not
        be created.  Without a client the visitor is simply signed out.
    provisioning:
        Profile provisioning bound to the same client.
    logger:
        Structured logger instance.
    admin_check_timeout_s:
        Upper bound on one admin-role resolution.  On expiry the user
        is treated as non-admin.

    Concurrency
    -----------
    Every auth event bumps ``_generation``.  An admin check captures the
    generation it started under and drops its result if a newer event
    (another sign-in, a sign-out, ``clear()``) happened meanwhile.
    """

    def __init__(
        self,
        client: Optional[AsyncClient],
        provisioning: Optional[ProfileProvisioningService],
        logger: StructuredLogger,
        admin_check_timeout_s: float = 10.0,
    ) -> None:
        self._client = client
        self._provisioning = provisioning
        self._logger = logger
        self._admin_check_timeout_s = admin_check_timeout_s

        self._state: AuthState = AuthState.INITIALIZING
        self._user: Optional[AuthUser] = None
        self._session: Optional[AuthSession] = None
        self._is_admin: bool = False
        self._loading: bool = True
        self._resolving: bool = False

        self._generation: int = 0
        self._settled: asyncio.Event = asyncio.Event()
        self._listeners: list[SnapshotListener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._subscription: Any = None
        self._started: bool = False
        self._closed: bool = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to auth changes, then load any persisted session.

        Safe to call more than once; only the first call does anything.
        """
        if self._started:
            return
        self._started = True

        if self._client is None:
            self._logger.warning(
                "No Supabase client for this visitor; session starts signed out."
            )
            self._apply_signed_out()
            return

        try:
            self._subscription = self._client.auth.on_auth_state_change(
                self._on_auth_event,
            )
        except Exception as exc:
            self._logger.warning("Auth change subscription failed: %s", exc)

        provider_session: Any = None
        try:
            provider_session = await self._client.auth.get_session()
        except Exception as exc:
            self._logger.warning(
                "Initial session lookup failed; starting signed out. Error: %s", exc,
            )
        await self._handle_auth_change("INITIAL_SESSION", provider_session)

    async def close(self) -> None:
        """Stop listening, cancel in-flight work and release the client.

        The client's local session is dropped, which stops its token
        refresh timer, and its HTTP connections are closed.
        """
        if self._closed:
            return
        self._closed = True
        self._generation += 1

        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as exc:
                self._logger.debug("Auth change unsubscribe failed: %s", exc)
            self._subscription = None

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()
        self._settled.set()

        await self._release_client()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def client(self) -> AsyncClient:
        """Return the visitor's Supabase client.

        Raises:
            RuntimeError: If no client could be created for this visitor.
        """
        if self._client is None:
            raise RuntimeError(
                "Supabase client is not available for this session. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._client

    @property
    def snapshot(self) -> AuthSnapshot:
        return AuthSnapshot(
            state=self._state,
            user=self._user,
            is_admin=self._is_admin,
            loading=self._loading,
            has_session=self._session is not None,
        )

    @property
    def session(self) -> Optional[AuthSession]:
        """Tokens of the current session, or ``None``."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self._state in (
            AuthState.AUTHENTICATED_ADMIN,
            AuthState.AUTHENTICATED_NON_ADMIN,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener* for every snapshot change.

        Returns a zero-argument callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def wait_until_settled(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds for loading to clear.

        Returns ``True`` when settled, ``False`` on timeout.
        """
        if not self._loading:
            return True
        try:
            await asyncio.wait_for(self._settled.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Write side (driven by AuthService)
    # ------------------------------------------------------------------

    def begin_loading(self) -> None:
        """Mark an auth operation as in progress."""
        self._loading = True
        self._settled.clear()
        self._publish()

    def end_loading(self) -> None:
        """Clear loading after a failed auth operation.

        No-op while the initial session or an admin check is still
        pending; those clear loading themselves.
        """
        if self._resolving or self._state is AuthState.INITIALIZING:
            return
        self._set_settled()
        self._publish()

    def clear(self) -> None:
        """Drop user, tokens and admin flag unconditionally.

        Any admin check still in flight is invalidated.
        """
        self._generation += 1
        self._apply_signed_out()

    # ------------------------------------------------------------------
    # Private implementation
    # ------------------------------------------------------------------

    def _on_auth_event(self, event: Any, provider_session: Any) -> None:
        """Synchronous callback invoked by the auth client.

        Anything but a token rotation marks the manager as loading before
        the handler is scheduled, so ``wait_until_settled`` never reports
        the state from before this event.
        """
        if self._closed:
            return
        event_name = str(event)
        if not self._is_token_rotation(event_name, provider_session):
            self._loading = True
            self._settled.clear()
        self._spawn(self._handle_auth_change(event_name, provider_session))

    def _is_token_rotation(self, event: str, provider_session: Any) -> bool:
        provider_user = getattr(provider_session, "user", None)
        return (
            event in _TOKEN_ONLY_EVENTS
            and provider_user is not None
            and self._user is not None
            and self._user.id == str(getattr(provider_user, "id", ""))
        )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_auth_change(self, event: str, provider_session: Any) -> None:
        if self._closed:
            return

        provider_user = getattr(provider_session, "user", None)
        if provider_session is None or provider_user is None:
            self._generation += 1
            self._apply_signed_out()
            self._logger.debug("Auth event %s: signed out.", event)
            return

        user = AuthUser.from_provider(provider_user)
        auth_session = AuthSession.from_provider(provider_session)

        if self._is_token_rotation(event, provider_session):
            self._user = user
            self._session = auth_session
            self._publish()
            return

        self._generation += 1
        generation = self._generation

        self._user = user
        self._session = auth_session
        self._is_admin = False
        self._loading = True
        self._resolving = True
        self._settled.clear()
        self._publish()

        is_admin = await self._check_admin(user)

        if generation != self._generation or self._closed:
            self._logger.debug(
                "Discarding stale admin check for user %s (event %s).",
                user.id,
                event,
            )
            return

        self._is_admin = is_admin
        self._state = (
            AuthState.AUTHENTICATED_ADMIN if is_admin
            else AuthState.AUTHENTICATED_NON_ADMIN
        )
        self._resolving = False
        self._set_settled()
        self._logger.info(
            "Session resolved for %s (admin: %s)",
            user.email,
            is_admin,
            extra={"event": event, "user_id": user.id},
        )
        self._publish()

    async def _check_admin(self, user: AuthUser) -> bool:
        """Resolve the admin flag, bounded by the configured timeout."""
        if self._provisioning is None:
            return False
        try:
            return await asyncio.wait_for(
                self._provisioning.resolve_admin_status(
                    user.id, user.email, user.full_name,
                ),
                timeout=self._admin_check_timeout_s,
            )
        except asyncio.TimeoutError:
            self._logger.warning(
                "Admin check for user %s timed out after %.1fs; "
                "treating as non-admin.",
                user.id,
                self._admin_check_timeout_s,
                extra={"event": "ADMIN_CHECK_TIMEOUT", "user_id": user.id},
            )
            return False
        except Exception as exc:
            self._logger.error(
                "Admin check for user %s failed; treating as non-admin. Error: %s",
                user.id,
                exc,
                exc_info=True,
                extra={"event": "ADMIN_CHECK_FAILED", "user_id": user.id},
            )
            return False

    async def _release_client(self) -> None:
        client = self._client
        if client is None:
            return
        try:
            await asyncio.wait_for(
                client.auth.sign_out({"scope": "local"}),
                timeout=self._admin_check_timeout_s,
            )
        except Exception as exc:
            self._logger.debug("Local sign-out on close failed: %s", exc)

        for release in (client.auth.close, client.postgrest.aclose):
            try:
                await release()
            except Exception as exc:
                self._logger.debug("Closing Supabase transport failed: %s", exc)

    def _apply_signed_out(self) -> None:
        self._user = None
        self._session = None
        self._is_admin = False
        self._resolving = False
        self._state = AuthState.UNAUTHENTICATED
        self._set_settled()
        self._publish()

    def _set_settled(self) -> None:
        self._loading = False
        self._settled.set()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                self._logger.warning("Auth snapshot listener failed: %s", exc)
