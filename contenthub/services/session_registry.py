"""
Visitor Session Registry.

Maps the opaque ``hub_sid`` cookie to that visitor's ``SessionManager``.
Each manager owns its own Supabase client, so one visitor's sign-in
never leaks into another's requests.  The registry is bounded: the
least recently used session is closed when it is full.
"""

from __future__ import annotations

import secrets
from collections import OrderedDict
from typing import Optional

from supabase import AsyncClient

from contenthub.auth import SessionManager
from contenthub.database import DatabaseManager
from contenthub.logger import StructuredLogger
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.profile_provisioning import ProfileProvisioningService


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionRegistry:
    """LRU map of visitor id to ``SessionManager``.

    Parameters
    ----------
    db:
        Mints one Supabase client per visitor.
    logger:
        Structured logger shared by the managers it creates.
    admin_check_timeout_s:
        Passed to every ``SessionManager``.
    max_sessions:
        Upper bound on live sessions.
    """

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        admin_check_timeout_s: float = 10.0,
        max_sessions: int = 1000,
    ) -> None:
        self._db = db
        self._logger = logger
        self._admin_check_timeout_s = admin_check_timeout_s
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, SessionManager] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[SessionManager]:
        """Existing session for *session_id*, without creating one."""
        if not session_id:
            return None
        manager = self._sessions.get(session_id)
        if manager is not None:
            self._sessions.move_to_end(session_id)
        return manager

    async def get_or_create(self, session_id: Optional[str]) -> tuple[str, SessionManager]:
        """Return ``(session_id, manager)``, starting a new session if needed.

        Unknown ids are never adopted: a fresh id is issued instead.
        """
        existing = self.get(session_id)
        if existing is not None and session_id is not None:
            return session_id, existing

        new_id = new_session_id()
        manager = await self._build_manager()
        self._sessions[new_id] = manager
        await self._evict_overflow()
        await manager.start()
        return new_id, manager

    async def discard(self, session_id: str) -> None:
        manager = self._sessions.pop(session_id, None)
        if manager is not None:
            await manager.close()

    async def close_all(self) -> None:
        """Close every session.  Called on application shutdown."""
        while self._sessions:
            _, manager = self._sessions.popitem(last=False)
            await manager.close()

    # ------------------------------------------------------------------
    # Private implementation
    # ------------------------------------------------------------------

    async def _build_manager(self) -> SessionManager:
        client: Optional[AsyncClient] = None
        try:
            client = await self._db.create_session_client()
        except Exception as exc:
            self._logger.warning(
                "Could not create a Supabase client for a new visitor; "
                "session stays signed out. Error: %s",
                exc,
            )

        provisioning: Optional[ProfileProvisioningService] = None
        if client is not None:
            session_client = client
            provisioning = ProfileProvisioningService(
                repo=ProfileRepository(lambda: session_client, self._logger),
                logger=self._logger,
            )
        return SessionManager(
            client=client,
            provisioning=provisioning,
            logger=self._logger,
            admin_check_timeout_s=self._admin_check_timeout_s,
        )

    async def _evict_overflow(self) -> None:
        while len(self._sessions) > self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            self._logger.debug("Evicting visitor session %s...", evicted_id[:8])
            await evicted.close()
