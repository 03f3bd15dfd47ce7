"""
Database Abstraction Layer.

Manages connections to Supabase, the hosted PostgreSQL store that owns
every table, stored procedure and auth session this application uses.

Two kinds of client are handed out:

- **Public client**: one shared ``AsyncClient`` authenticated with the
  anon key only.  Used for reads that row-level security opens to
  everyone (published posts, active tools, active ads) and for the
  anonymous analytics / consent-log inserts.

- **Session clients**: one fresh ``AsyncClient`` per visitor, created by
  :meth:`DatabaseManager.create_session_client`.  Supabase Auth keeps
  its session inside the client, so visitors must never share one.
  After sign-in the client carries the user's JWT and its table calls
  pass the ``profiles`` row-level-security policies.

Data access is performed through the Repository pattern.  This module
only manages the clients; it contains no query logic.

Usage (dependency injection at app startup)::

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="contenthub.database"),
    )
    await db.connect()
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from supabase import AsyncClient, acreate_client

from contenthub.logger import StructuredLogger

ClientFactory = Callable[[], Awaitable[AsyncClient]]


class DatabaseManager:
    """Owns the shared public client and mints per-visitor session clients.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    supabase_key:
        The Supabase anon (public) key.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    client_factory:
        Optional zero-argument coroutine function returning a new client.
        Defaults to ``acreate_client(supabase_url, supabase_key)``.
        Tests inject an in-memory fake here.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._url = supabase_url
        self._key = supabase_key
        self._logger: StructuredLogger = logger
        self._client_factory: ClientFactory = client_factory or self._default_factory
        self._public: Optional[AsyncClient] = None

    async def _default_factory(self) -> AsyncClient:
        return await acreate_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the shared public client.

        A misconfigured project (empty URL or key) is logged and leaves
        the manager offline; :pyattr:`supabase` then raises
        ``RuntimeError``, which every caller already treats as a remote
        failure.
        """
        if self._public is not None:
            return
        try:
            self._public = await self._client_factory()
            self._logger.info("Supabase public client initialized.")
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credential format error: %s. Remote calls will fail.",
                exc,
            )
        except Exception as exc:
            self._logger.error(
                "Unexpected Supabase initialization failure: %s",
                exc,
                exc_info=True,
            )

    async def create_session_client(self) -> AsyncClient:
        """Return a brand-new client for one visitor's auth session.

        Raises
        ------
        Exception
            Whatever the client factory raises; the session registry
            turns this into an unauthenticated session.
        """
        client = await self._client_factory()
        self._logger.debug("Supabase session client created.")
        return client

    async def close(self) -> None:
        """Drop the shared client.  Safe to call multiple times."""
        if self._public is not None:
            self._public = None
            self._logger.info("Supabase public client released.")

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> AsyncClient:
        """Return the shared public client.

        Raises
        ------
        RuntimeError
            If :meth:`connect` has not succeeded.
        """
        if self._public is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._public

    @property
    def is_online(self) -> bool:
        """``True`` when the public client is available."""
        return self._public is not None

    def describe(self) -> dict[str, Any]:
        """Small status mapping for the health endpoint."""
        return {"supabase": "connected" if self.is_online else "unavailable"}
