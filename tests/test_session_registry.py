"""Tests for the visitor session registry."""

from contenthub.database import DatabaseManager
from contenthub.logger import StructuredLogger
from contenthub.models.enums import AuthState
from contenthub.services.session_registry import SessionRegistry
from tests.fakes import FakeSupabase


def _registry(db: DatabaseManager, logger: StructuredLogger, max_sessions: int = 10) -> SessionRegistry:
    return SessionRegistry(db, logger, admin_check_timeout_s=1.0, max_sessions=max_sessions)


async def test_unknown_id_gets_a_fresh_session(db: DatabaseManager, logger: StructuredLogger) -> None:
    """A cookie the registry never issued is not adopted."""
    registry = _registry(db, logger)
    session_id, manager = await registry.get_or_create("forged-id")
    assert session_id != "forged-id"
    assert manager.snapshot.state is AuthState.UNAUTHENTICATED
    assert len(registry) == 1


async def test_known_id_returns_same_manager(db: DatabaseManager, logger: StructuredLogger) -> None:
    registry = _registry(db, logger)
    session_id, manager = await registry.get_or_create(None)
    again_id, again = await registry.get_or_create(session_id)
    assert again_id == session_id
    assert again is manager


async def test_each_visitor_gets_its_own_client(
    db: DatabaseManager, backend: FakeSupabase, logger: StructuredLogger,
) -> None:
    registry = _registry(db, logger)
    _, first = await registry.get_or_create(None)
    _, second = await registry.get_or_create(None)
    assert first.client is not second.client
    assert len(backend.clients) == 2


async def test_least_recently_used_session_is_evicted(
    db: DatabaseManager, backend: FakeSupabase, logger: StructuredLogger,
) -> None:
    registry = _registry(db, logger, max_sessions=2)
    oldest_id, oldest = await registry.get_or_create(None)
    newer_id, _ = await registry.get_or_create(None)
    registry.get(oldest_id)
    await registry.get_or_create(None)

    assert len(registry) == 2
    assert registry.get(oldest_id) is oldest
    assert registry.get(newer_id) is None


async def test_client_creation_failure_yields_signed_out_session(
    db: DatabaseManager, backend: FakeSupabase, logger: StructuredLogger,
) -> None:
    backend.fail_client_creation = True
    registry = _registry(db, logger)
    _, manager = await registry.get_or_create(None)
    assert manager.snapshot.state is AuthState.UNAUTHENTICATED
    assert manager.snapshot.loading is False


async def test_close_all_empties_registry(db: DatabaseManager, logger: StructuredLogger) -> None:
    registry = _registry(db, logger)
    await registry.get_or_create(None)
    await registry.get_or_create(None)
    await registry.close_all()
    assert len(registry) == 0


async def test_evicted_session_releases_its_client(
    db: DatabaseManager, backend: FakeSupabase, logger: StructuredLogger,
) -> None:
    """An evicted visitor's client stops refreshing and closes its connections."""
    registry = _registry(db, logger, max_sessions=1)
    await registry.get_or_create(None)
    evicted_client = backend.clients[0]

    await registry.get_or_create(None)

    assert evicted_client.auth.sign_out_scopes == ["local"]
    assert evicted_client.auth.closed is True
    assert evicted_client.postgrest.closed is True
    assert backend.clients[1].auth.closed is False
