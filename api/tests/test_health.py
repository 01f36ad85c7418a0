import pytest
from httpx import ASGITransport, AsyncClient

from bugflow.core.config import settings
from main import app


@pytest.mark.anyio
async def test_healthcheck_endpoint() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_healthcheck_reports_missing_database(monkeypatch) -> None:
    monkeypatch.setattr(settings, "database_url", None)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


@pytest.mark.anyio
async def test_data_routes_fail_with_explicit_error_without_database(monkeypatch) -> None:
    monkeypatch.setattr(settings, "database_url", None)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/projects", headers={"Authorization": "Bearer anything"})

    assert response.status_code == 500
    assert response.json() == {"error": "Database not configured"}


@pytest.mark.anyio
async def test_root_endpoint() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/")

    assert response.json() == {"message": "Bugflow API"}
