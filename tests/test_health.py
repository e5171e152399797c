"""Health endpoint tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from shortlinks.main import app


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.text == "Service is healthy"


@pytest.mark.asyncio
async def test_health_check_without_database() -> None:
    # No dependency overrides and no lifespan: the pool is never opened.
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    assert response.text == "Service is healthy"
