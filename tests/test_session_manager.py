"""Tests for the per-visitor SessionManager."""

import asyncio

import pytest

from contenthub.auth import SessionManager
from contenthub.logger import StructuredLogger
from contenthub.models.auth_models import AuthSnapshot
from contenthub.models.enums import AuthState
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.profile_provisioning import ProfileProvisioningService
from tests.fakes import FakeClient, FakeSupabase


async def _manager(
    backend: FakeSupabase,
    logger: StructuredLogger,
    timeout: float = 1.0,
) -> tuple[SessionManager, FakeClient]:
    client = await backend.create_client()
    provisioning = ProfileProvisioningService(
        repo=ProfileRepository(lambda: client, logger),
        logger=logger,
    )
    manager = SessionManager(client, provisioning, logger, admin_check_timeout_s=timeout)
    await manager.start()
    return manager, client


async def _sign_in(client: FakeClient, email: str, password: str = "secret123") -> None:
    await client.auth.sign_in_with_password({"email": email, "password": password})


class TestStartup:
    """Initial state resolution."""

    def test_snapshot_before_start_is_initializing(self, logger: StructuredLogger) -> None:
        """A fresh manager is initializing and loading."""
        manager = SessionManager(None, None, logger)
        snapshot = manager.snapshot
        assert snapshot.state is AuthState.INITIALIZING
        assert snapshot.loading is True

    async def test_no_stored_session_settles_signed_out(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        manager, _ = await _manager(backend, logger)
        snapshot = manager.snapshot
        assert snapshot.state is AuthState.UNAUTHENTICATED
        assert snapshot.loading is False
        assert snapshot.user is None

    async def test_missing_client_settles_signed_out(self, logger: StructuredLogger) -> None:
        """Without a client the visitor is signed out, not stuck loading."""
        manager = SessionManager(None, None, logger)
        await manager.start()
        assert manager.snapshot.state is AuthState.UNAUTHENTICATED
        assert manager.snapshot.loading is False
        with pytest.raises(RuntimeError):
            _ = manager.client

    async def test_persisted_session_is_resolved_on_start(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A session already held by the client is picked up by start()."""
        user = backend.add_user("root@example.com", is_admin=True)
        client = await backend.create_client()
        client.auth.current = backend.make_session(user)
        provisioning = ProfileProvisioningService(
            repo=ProfileRepository(lambda: client, logger), logger=logger,
        )
        manager = SessionManager(client, provisioning, logger)
        await manager.start()
        assert manager.snapshot.state is AuthState.AUTHENTICATED_ADMIN


class TestSignInResolution:
    """Admin resolution after SIGNED_IN."""

    async def test_admin_user_resolves_admin(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("root@example.com", is_admin=True)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "root@example.com")
        assert await manager.wait_until_settled(1.0) is True
        snapshot = manager.snapshot
        assert snapshot.state is AuthState.AUTHENTICATED_ADMIN
        assert snapshot.is_admin is True
        assert manager.session is not None

    async def test_new_user_gets_profile_and_non_admin_state(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """Sign-up, then first sign-in: the profile is created lazily."""
        manager, client = await _manager(backend, logger)
        await client.auth.sign_up({
            "email": "new@example.com",
            "password": "secret123",
            "options": {"data": {"full_name": "New Person"}},
        })
        assert backend.rows("profiles") == []

        await _sign_in(client, "new@example.com")
        await manager.wait_until_settled(1.0)

        assert manager.snapshot.state is AuthState.AUTHENTICATED_NON_ADMIN
        profiles = backend.rows("profiles")
        assert len(profiles) == 1
        assert profiles[0]["full_name"] == "New Person"
        assert profiles[0]["is_admin"] is False

    async def test_loading_until_admin_check_completes(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """While the check is pending the user is set but not yet admin."""
        backend.add_user("root@example.com", is_admin=True)
        manager, client = await _manager(backend, logger)
        backend.held_tables.add("profiles")

        await _sign_in(client, "root@example.com")
        await asyncio.sleep(0.01)
        pending = manager.snapshot
        assert pending.loading is True
        assert pending.is_admin is False
        assert pending.user is not None

        backend.release.set()
        await manager.wait_until_settled(1.0)
        assert manager.snapshot.state is AuthState.AUTHENTICATED_ADMIN

    async def test_admin_check_timeout_resolves_non_admin(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A hung profile lookup ends as non-admin, never as admin."""
        backend.add_user("root@example.com", is_admin=True)
        manager, client = await _manager(backend, logger, timeout=0.05)
        backend.held_tables.add("profiles")

        await _sign_in(client, "root@example.com")
        assert await manager.wait_until_settled(1.0) is True
        snapshot = manager.snapshot
        assert snapshot.state is AuthState.AUTHENTICATED_NON_ADMIN
        assert snapshot.is_admin is False
        assert snapshot.loading is False

    async def test_sign_out_wins_over_in_flight_check(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A stale admin result never resurrects a signed-out session."""
        backend.add_user("root@example.com", is_admin=True)
        manager, client = await _manager(backend, logger)
        backend.held_tables.add("profiles")

        await _sign_in(client, "root@example.com")
        await asyncio.sleep(0.01)
        manager.clear()
        backend.release.set()
        await asyncio.sleep(0.05)

        snapshot = manager.snapshot
        assert snapshot.state is AuthState.UNAUTHENTICATED
        assert snapshot.user is None
        assert snapshot.is_admin is False

    async def test_signed_out_event_clears_state(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)

        await client.auth.sign_out()
        await asyncio.sleep(0.01)
        assert manager.snapshot.state is AuthState.UNAUTHENTICATED
        assert manager.session is None


class TestRoleChanges:
    """A role change applies only after a fresh sign-in."""

    async def test_token_refresh_does_not_re_resolve_role(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        user = backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)
        lookups_before = backend.query_log.count(("profiles", "select"))

        backend.tables["profiles"][0]["is_admin"] = True
        client.auth.emit("TOKEN_REFRESHED", backend.make_session(user, token="access-2"))
        await asyncio.sleep(0.01)

        assert manager.snapshot.state is AuthState.AUTHENTICATED_NON_ADMIN
        assert manager.session is not None
        assert manager.session.access_token == "access-2"
        assert backend.query_log.count(("profiles", "select")) == lookups_before

    async def test_new_sign_in_picks_up_granted_role(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)

        backend.tables["profiles"][0]["is_admin"] = True
        await client.auth.sign_out()
        await _sign_in(client, "ana@example.com")
        await asyncio.sleep(0.01)
        await manager.wait_until_settled(1.0)

        assert manager.snapshot.state is AuthState.AUTHENTICATED_ADMIN


class TestListenersAndLoading:
    """Snapshot broadcast and the loading flag."""

    async def test_listeners_receive_snapshots_and_failures_are_isolated(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        received: list[AuthSnapshot] = []

        def broken(_: AuthSnapshot) -> None:
            raise ValueError("listener bug")

        manager.subscribe(broken)
        unsubscribe = manager.subscribe(received.append)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)

        assert received[-1].state is AuthState.AUTHENTICATED_NON_ADMIN
        count = len(received)
        unsubscribe()
        manager.clear()
        assert len(received) == count

    async def test_end_loading_after_failed_operation(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        manager, _ = await _manager(backend, logger)
        manager.begin_loading()
        assert manager.snapshot.loading is True
        manager.end_loading()
        assert manager.snapshot.loading is False
        assert manager.snapshot.state is AuthState.UNAUTHENTICATED

    async def test_wait_until_settled_times_out(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        manager, _ = await _manager(backend, logger)
        manager.begin_loading()
        assert await manager.wait_until_settled(0.01) is False

    async def test_close_stops_listening(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await manager.close()
        assert client.auth.listeners == []
        await _sign_in(client, "ana@example.com")
        assert manager.snapshot.user is None

    async def test_auth_event_marks_loading_before_handler_runs(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A delivered sign-in is never reported as settled on the old state."""
        user = backend.add_user("root@example.com", is_admin=True)
        manager, client = await _manager(backend, logger)

        client.auth.emit("SIGNED_IN", backend.make_session(user))

        assert manager.snapshot.loading is True
        assert await manager.wait_until_settled(1.0) is True
        assert manager.snapshot.state is AuthState.AUTHENTICATED_ADMIN

    async def test_token_refresh_does_not_mark_loading(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        user = backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)

        client.auth.emit("TOKEN_REFRESHED", backend.make_session(user, token="access-2"))

        assert manager.snapshot.loading is False

    async def test_close_releases_client(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """Closing drops the local session and closes the transports."""
        backend.add_user("ana@example.com", is_admin=False)
        manager, client = await _manager(backend, logger)
        await _sign_in(client, "ana@example.com")
        await manager.wait_until_settled(1.0)

        await manager.close()

        assert client.auth.sign_out_scopes == ["local"]
        assert client.auth.current is None
        assert client.auth.closed is True
        assert client.postgrest.closed is True

    async def test_close_tolerates_failing_sign_out(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        manager, client = await _manager(backend, logger)
        client.auth.fail_sign_out = ConnectionError("offline")
        await manager.close()
        assert client.auth.closed is True
        assert client.postgrest.closed is True


class _BrokenProvisioning:
    """Provisioning whose lookup fails with an unexpected error."""

    async def resolve_admin_status(self, user_id: str, email: str, full_name: object = None) -> bool:
        raise ValueError("unexpected profile shape")


class TestAdminCheckFailures:
    """Unexpected provisioning errors degrade to non-admin."""

    async def test_persisted_session_with_failing_check_settles_non_admin(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        user = backend.add_user("root@example.com", is_admin=True)
        client = await backend.create_client()
        client.auth.current = backend.make_session(user)
        manager = SessionManager(client, _BrokenProvisioning(), logger)  # type: ignore[arg-type]

        await manager.start()

        snapshot = manager.snapshot
        assert snapshot.state is AuthState.AUTHENTICATED_NON_ADMIN
        assert snapshot.is_admin is False
        assert snapshot.loading is False

    async def test_sign_in_with_failing_check_settles_non_admin(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("root@example.com", is_admin=True)
        client = await backend.create_client()
        manager = SessionManager(client, _BrokenProvisioning(), logger)  # type: ignore[arg-type]
        await manager.start()

        await _sign_in(client, "root@example.com")

        assert await manager.wait_until_settled(1.0) is True
        assert manager.snapshot.state is AuthState.AUTHENTICATED_NON_ADMIN
