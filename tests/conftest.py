"""Shared pytest fixtures and configuration."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

# Set test environment variables
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("STORE_TIMEOUT_SECONDS", "10")

from vesper.config import Settings  # noqa: E402
from vesper.db.migrate import migrate_up  # noqa: E402
from vesper.db.session import create_engine_from_settings  # noqa: E402
from vesper.features.tasks.repository import TaskStore  # noqa: E402
from vesper.main import create_app  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing at a fresh SQLite file per test.

    A file database (not :memory:) so that concurrent sessions get their
    own connections, as they would in production.
    """
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}",
        sqlite_busy_timeout=30.0,
        store_timeout_seconds=10.0,
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Engine with the schema applied."""
    engine = create_engine_from_settings(settings)
    await migrate_up(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine: AsyncEngine) -> TaskStore:
    """Task store over the test engine; the engine fixture owns disposal."""
    return TaskStore(engine, default_timeout=10.0)


@pytest.fixture
def base_time() -> datetime:
    """09:00 UTC on a fixed day."""
    return datetime(2026, 2, 8, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """HTTP client running the application lifespan (engine + store)."""
    app = create_app(settings)
    with TestClient(app) as client:
        yield client
