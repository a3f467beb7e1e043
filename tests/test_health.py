import pytest
from httpx import AsyncClient, ASGITransport
from photowalk.main import app


@pytest.mark.asyncio
async def test_health_endpoint():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["service"] == "photo-walk-api"
    assert data["version"] == "0.1.0"
