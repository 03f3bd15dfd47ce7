"""Tests for admin grants."""

from contenthub.auth import SessionManager
from contenthub.logger import StructuredLogger
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.admin_service import GRANT_SUCCESS_MESSAGE, AdminService
from contenthub.services.profile_provisioning import ProfileProvisioningService
from tests.fakes import FakeSupabase


async def _signed_in(backend: FakeSupabase, logger: StructuredLogger, email: str) -> SessionManager:
    client = await backend.create_client()
    provisioning = ProfileProvisioningService(
        repo=ProfileRepository(lambda: client, logger), logger=logger,
    )
    session = SessionManager(client, provisioning, logger)
    await session.start()
    await client.auth.sign_in_with_password({"email": email, "password": "secret123"})
    await session.wait_until_settled(1.0)
    return session


class TestGrantAdmin:
    """Tests for AdminService.grant_admin."""

    async def test_admin_can_grant(self, backend: FakeSupabase, logger: StructuredLogger) -> None:
        backend.add_user("root@example.com", is_admin=True)
        backend.add_user("ana@example.com", is_admin=False)
        session = await _signed_in(backend, logger, "root@example.com")

        result = await AdminService(False, logger).grant_admin(session, " Ana@Example.com ")

        assert result.success is True
        assert result.message == GRANT_SUCCESS_MESSAGE
        assert result.data == {"email": "ana@example.com"}
        assert backend.find("profiles", email="ana@example.com")["is_admin"] is True
        assert backend.rpc_log == [("make_user_admin", {"user_email": "ana@example.com"})]

    async def test_non_admin_is_refused_before_any_call(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        session = await _signed_in(backend, logger, "ana@example.com")

        result = await AdminService(False, logger).grant_admin(session, "ana@example.com")

        assert result.success is False
        assert result.status_code == 403
        assert backend.rpc_log == []

    async def test_invalid_email_is_rejected(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("root@example.com", is_admin=True)
        session = await _signed_in(backend, logger, "root@example.com")
        result = await AdminService(False, logger).grant_admin(session, "nope")
        assert result.status_code == 400
        assert backend.rpc_log == []

    async def test_procedure_failure_is_reported(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("root@example.com", is_admin=True)
        session = await _signed_in(backend, logger, "root@example.com")
        result = await AdminService(False, logger).grant_admin(session, "ghost@example.com")
        assert result.success is False
        assert result.status_code == 400
        assert result.error == "Failed to grant admin privileges to ghost@example.com."


class TestGrantSelf:
    """Tests for AdminService.grant_self."""

    async def test_disabled_by_default(self, backend: FakeSupabase, logger: StructuredLogger) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        session = await _signed_in(backend, logger, "ana@example.com")
        result = await AdminService(False, logger).grant_self(session)
        assert result.status_code == 404
        assert backend.rpc_log == []

    async def test_requires_sign_in(self, logger: StructuredLogger) -> None:
        session = SessionManager(None, None, logger)
        await session.start()
        result = await AdminService(True, logger).grant_self(session)
        assert result.status_code == 401

    async def test_grants_own_profile_without_changing_current_session(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_user("ana@example.com", is_admin=False)
        session = await _signed_in(backend, logger, "ana@example.com")

        result = await AdminService(True, logger).grant_self(session)

        assert result.success is True
        assert backend.find("profiles", email="ana@example.com")["is_admin"] is True
        assert session.snapshot.is_admin is False
