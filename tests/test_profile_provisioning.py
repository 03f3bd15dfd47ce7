"""Tests for lazy profile provisioning and admin resolution."""

import asyncio

from postgrest.exceptions import APIError

from contenthub.logger import StructuredLogger
from contenthub.repositories.profile_repository import ProfileRepository
from contenthub.services.profile_provisioning import (
    ProfileProvisioningService,
    default_full_name,
)
from tests.fakes import FakeClient, FakeSupabase


def _service(client: FakeClient, logger: StructuredLogger) -> ProfileProvisioningService:
    return ProfileProvisioningService(
        repo=ProfileRepository(lambda: client, logger),
        logger=logger,
    )


class TestGetOrCreateProfile:
    """Tests for ProfileProvisioningService.get_or_create_profile."""

    async def test_creates_non_admin_profile_on_first_call(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A missing profile is inserted with is_admin False."""
        service = _service(await backend.create_client(), logger)
        profile = await service.get_or_create_profile("u-1", "ana@example.com", "Ana")
        assert profile.user_id == "u-1"
        assert profile.full_name == "Ana"
        assert profile.is_admin is False
        assert len(backend.rows("profiles")) == 1

    async def test_is_idempotent(self, backend: FakeSupabase, logger: StructuredLogger) -> None:
        """Repeated calls return the same row without inserting again."""
        service = _service(await backend.create_client(), logger)
        first = await service.get_or_create_profile("u-1", "ana@example.com")
        second = await service.get_or_create_profile("u-1", "ana@example.com")
        assert first.id == second.id
        assert len(backend.rows("profiles")) == 1

    async def test_concurrent_calls_create_exactly_one_row(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """Racing inserts hit the unique constraint and re-fetch."""
        client = await backend.create_client()
        results = await asyncio.gather(
            _service(client, logger).get_or_create_profile("u-1", "ana@example.com"),
            _service(client, logger).get_or_create_profile("u-1", "ana@example.com"),
        )
        assert len(backend.rows("profiles")) == 1
        assert results[0].id == results[1].id
        assert backend.query_log.count(("profiles", "insert")) == 2

    async def test_full_name_defaults_to_email_local_part(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """Without a display name the email local part is used."""
        service = _service(await backend.create_client(), logger)
        profile = await service.get_or_create_profile("u-1", "bob.smith@example.com")
        assert profile.full_name == "bob.smith"
        assert default_full_name("x@y.z") == "x"

    async def test_existing_admin_flag_is_preserved(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """An existing row is returned as stored, admin flag included."""
        backend.add_row("profiles", user_id="u-9", email="root@example.com", is_admin=True)
        service = _service(await backend.create_client(), logger)
        profile = await service.get_or_create_profile("u-9", "root@example.com")
        assert profile.is_admin is True
        assert ("profiles", "insert") not in backend.query_log


class TestResolveAdminStatus:
    """Tests for ProfileProvisioningService.resolve_admin_status."""

    async def test_admin_profile_resolves_true(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        backend.add_row("profiles", user_id="u-9", email="root@example.com", is_admin=True)
        service = _service(await backend.create_client(), logger)
        assert await service.resolve_admin_status("u-9", "root@example.com") is True

    async def test_new_user_resolves_false(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        service = _service(await backend.create_client(), logger)
        assert await service.resolve_admin_status("u-2", "new@example.com") is False
        assert len(backend.rows("profiles")) == 1

    async def test_lookup_failure_resolves_false_without_insert(
        self, backend: FakeSupabase, logger: StructuredLogger,
    ) -> None:
        """A failed lookup is not mistaken for "no profile"."""
        backend.failing_tables["profiles"] = APIError(
            {"code": "500", "message": "upstream timeout", "details": None, "hint": None},
        )
        service = _service(await backend.create_client(), logger)
        assert await service.resolve_admin_status("u-1", "ana@example.com") is False
        assert ("profiles", "insert") not in backend.query_log
        assert backend.rows("profiles") == []
