"""Shared fixtures: configuration, the in-memory Supabase and an app client."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, AsyncIterator

# Keep the rotating log file out of the working tree.
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "contenthub-tests.log"))

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from contenthub.config import AppConfig  # noqa: E402
from contenthub.database import DatabaseManager  # noqa: E402
from contenthub.logger import StructuredLogger, get_logger  # noqa: E402
from contenthub.web import create_app  # noqa: E402
from tests.fakes import FakeSupabase, seed_content  # noqa: E402


def make_config(**overrides: Any) -> AppConfig:
    values: dict[str, Any] = {
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_ANON_KEY": "anon-key",
        "SITE_URL": "https://hub.example.com",
        "ADMIN_CHECK_TIMEOUT_S": 1.0,
        "GUARD_WAIT_S": 1.0,
    }
    values.update(overrides)
    return AppConfig(_env_file=None, **values)


class RecordingSink:
    """Analytics sink that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, str]]] = []

    async def track(self, name: str, params: dict[str, str]) -> None:
        self.events.append((name, params))


@pytest.fixture
def logger() -> StructuredLogger:
    return get_logger("contenthub.tests")


@pytest.fixture
def config() -> AppConfig:
    return make_config()


@pytest.fixture
def backend() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def seeded(backend: FakeSupabase) -> dict[str, dict[str, Any]]:
    return seed_content(backend)


@pytest.fixture
def db(config: AppConfig, backend: FakeSupabase, logger: StructuredLogger) -> DatabaseManager:
    return DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=logger,
        client_factory=backend.create_client,
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def app(config: AppConfig, db: DatabaseManager, sink: RecordingSink) -> FastAPI:
    return create_app(config=config, db=db, analytics_sink=sink)


@pytest.fixture
async def client(app: FastAPI, seeded: dict[str, dict[str, Any]]) -> AsyncIterator[AsyncClient]:
    """HTTP client against the app, with startup and shutdown run around it."""
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


async def drain_events(app: FastAPI) -> None:
    """Wait for background analytics writes started by previous requests."""
    await app.state.services["event_emitter"].drain(timeout=2.0)
