"""
Simple test cases to verify test configuration.
"""
import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

@pytest.mark.asyncio
async def test_app_exists(client: AsyncClient):
    """Test that app exists."""
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    assert "/api/v1/profiles/{orcid}/works" in response.json()["paths"]

@pytest.mark.asyncio
async def test_database_session(async_session: AsyncSession):
    """Test that database session works."""
    assert async_session is not None
    # Run a simple query
    from sqlalchemy import text
    result = await async_session.execute(text("SELECT 1"))
    assert result.scalar() == 1

@pytest.mark.asyncio
async def test_trace_id_header(client: AsyncClient):
    """Responses echo the trace id set by the logging middleware."""
    response = await client.get("/api/v1/profiles/0000-0002-1825-0097", headers={"X-Trace-ID": "trace-123"})
    assert response.headers["X-Trace-ID"] == "trace-123"

@pytest.mark.asyncio
async def test_health_reports_backends(client: AsyncClient, monkeypatch):
    """Health endpoint degrades when a backend does not answer."""
    from framework.database.manager import DatabaseManager

    async def fake_health(self):
        return {"sql": True, "redis": False}

    monkeypatch.setattr(DatabaseManager, "health", fake_health)
    data = (await client.get("/health")).json()["data"]
    assert data["status"] == "degraded"
    assert data["backends"] == {"sql": True, "redis": False}
