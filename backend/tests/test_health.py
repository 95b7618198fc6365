import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_liveness(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_readiness_checks_database(client: AsyncClient):
    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client: AsyncClient):
    response = await client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {"message": "Not found - /api/nowhere", "code": "HTTP_ERROR"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Response-Time" in response.headers
