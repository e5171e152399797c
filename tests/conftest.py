"""Shared pytest fixtures for API and service tests.

Integration tests run the real routes and SQL against a throwaway SQLite
database (aiosqlite) in place of PostgreSQL.
"""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shortlinks.config import Settings
from shortlinks.database import create_session_factory, init_db
from shortlinks.dependencies import AppResources, get_resources
from shortlinks.main import app


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortlinks.db'}",
        STORE_TIMEOUT_MS=2000,
        LOG_LEVEL="DEBUG",
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(settings.DATABASE_URL, echo=False)
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def resources(settings: Settings, engine: AsyncEngine) -> AppResources:
    test_resources = AppResources(settings)
    test_resources.engine = engine
    test_resources.sessions = create_session_factory(engine)
    return test_resources


@pytest_asyncio.fixture
async def client(resources: AppResources) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_resources() -> AppResources:
        return resources

    app.dependency_overrides[get_resources] = override_get_resources

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
