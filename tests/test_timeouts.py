"""Tests for store deadlines, from the wrapper up to the HTTP routes."""

import asyncio
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlinks.config import Settings
from shortlinks.dependencies import AppResources, get_resources
from shortlinks.exceptions import DeadlineExceededError
from shortlinks.main import app
from shortlinks.timeouts import bounded


@pytest.mark.asyncio
async def test_bounded_returns_result() -> None:
    async def quick() -> str:
        return "done"

    assert await bounded(quick(), 1.0) == "done"


@pytest.mark.asyncio
async def test_bounded_raises_deadline_exceeded() -> None:
    with pytest.raises(DeadlineExceededError) as exc_info:
        await bounded(asyncio.sleep(1), 0.01)

    assert str(exc_info.value) == "deadline has elapsed"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_bounded_propagates_operation_errors() -> None:
    async def failing() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await bounded(failing(), 1.0)


@pytest.mark.asyncio
async def test_bounded_cancels_abandoned_operation() -> None:
    cancelled = asyncio.Event()

    async def slow() -> None:
        try:
            await asyncio.sleep(1)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(DeadlineExceededError):
        await bounded(slow(), 0.01)
    assert cancelled.is_set()


# ============================================================================
# DEADLINES THROUGH THE HTTP ROUTES
# ============================================================================


@pytest_asyncio.fixture
async def slow_client() -> AsyncGenerator[AsyncClient, None]:
    async def slow_execute(*args: object, **kwargs: object) -> None:
        await asyncio.sleep(1)

    session = AsyncMock()
    session.execute = AsyncMock(side_effect=slow_execute)
    sessions = MagicMock()
    sessions.return_value.__aenter__.return_value = session

    resources = AppResources(Settings(STORE_TIMEOUT_MS=50))
    resources.sessions = sessions

    async def override_get_resources() -> AppResources:
        return resources

    app.dependency_overrides[get_resources] = override_get_resources
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_create_timeout_returns_server_error(slow_client: AsyncClient) -> None:
    response = await slow_client.post("/create", json={"targetUrl": "https://example.com"})
    assert response.status_code == 500
    assert response.text == "deadline has elapsed"


@pytest.mark.asyncio
async def test_redirect_timeout_returns_server_error(slow_client: AsyncClient) -> None:
    response = await slow_client.get("/MTIzNA", follow_redirects=False)
    assert response.status_code == 500
    assert response.text == "deadline has elapsed"


@pytest.mark.asyncio
async def test_update_timeout_returns_server_error(slow_client: AsyncClient) -> None:
    response = await slow_client.patch("/MTIzNA", json={"targetUrl": "https://example.com"})
    assert response.status_code == 500
    assert response.text == "deadline has elapsed"
