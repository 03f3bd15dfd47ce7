"""
Base Repository.

Provides shared infrastructure for all repositories:
- Supabase client reference (public or per-visitor)
- Logger reference
- PostgREST error classification (not-found, unique violation)
- The fail-open read helper used by public, non-critical lookups
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError
from supabase import AsyncClient

from contenthub.logger import StructuredLogger

T = TypeVar("T")

# PostgREST: ``.single()`` matched zero rows.
NOT_FOUND_CODE: str = "PGRST116"
# PostgreSQL: unique_violation.
UNIQUE_VIOLATION_CODE: str = "23505"

ClientProvider = Callable[[], AsyncClient]


class RepositoryError(Exception):
    """A remote read or write failed for a reason other than "no row"."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class DuplicateRecordError(RepositoryError):
    """An insert hit a uniqueness constraint: the row already exists."""


def error_code(exc: BaseException) -> Optional[str]:
    """Return the PostgREST / PostgreSQL error code carried by *exc*."""
    code = getattr(exc, "code", None)
    return str(code) if code is not None else None


def is_not_found(exc: BaseException) -> bool:
    return error_code(exc) == NOT_FOUND_CODE


def is_unique_violation(exc: BaseException) -> bool:
    return error_code(exc) == UNIQUE_VIOLATION_CODE


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__.

    Parameters
    ----------
    client_provider:
        Zero-argument callable returning the ``AsyncClient`` to query.
        Public repositories pass ``lambda: db.supabase``; the profile
        repository is bound to one visitor's session client.
    logger:
        Structured logger instance.
    """

    TABLE: str = ""

    def __init__(self, client_provider: ClientProvider, logger: StructuredLogger) -> None:
        self._client_provider = client_provider
        self._logger = logger

    @property
    def supabase(self) -> AsyncClient:
        """Returns the Supabase client for this repository."""
        return self._client_provider()

    async def _read_or_default(
        self,
        operation: Callable[[], Awaitable[Optional[T]]],
        default_factory: Callable[[], T],
        *,
        operation_name: str,
    ) -> T:
        """Run a read with fail-open semantics.

        ``None`` results and PostgREST "no row" errors map to the default
        silently.  Any other failure is logged as a warning and also maps
        to the default, so a broken lookup never breaks page rendering.

        NOT intended for paths where "absent" and "failed" need different
        handling (see ``ProfileRepository``).
        """
        try:
            result = await operation()
        except Exception as exc:
            if is_not_found(exc):
                return default_factory()
            self._logger.warning(
                "Supabase read failed for %s: %s", operation_name, exc,
            )
            return default_factory()
        if result is None:
            return default_factory()
        return result

    def _parse_rows(
        self,
        model: type[T],
        rows: Optional[list[dict[str, object]]],
        *,
        operation_name: str,
    ) -> list[T]:
        """Validate *rows* into *model*, skipping (and logging) bad rows.

        Enumerated columns are closed types; a row carrying a value the
        application does not know is dropped rather than rendered.
        """
        parsed: list[T] = []
        for row in rows or []:
            try:
                parsed.append(model.model_validate(row))  # type: ignore[attr-defined]
            except ValidationError as exc:
                self._logger.warning(
                    "Skipping invalid %s row from %s: %s",
                    self.TABLE,
                    operation_name,
                    exc.errors(include_url=False),
                )
        return parsed
