"""Unit tests for health endpoint behavior."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.tax.loader import load_rate_table_store
from src.tax.store import RateTableStore


def _make_client(store: RateTableStore) -> AsyncClient:
    app.state.rate_tables = store
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    )


@pytest.mark.asyncio
async def test_health_endpoint_returns_ok() -> None:
    """Return ok when rate tables are loaded."""
    client = _make_client(load_rate_table_store())
    try:
        response = await client.get("/api/health")
    finally:
        await client.aclose()

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["tax_years"] == ["2024/25", "2025/26"]


@pytest.mark.asyncio
async def test_health_endpoint_degraded_without_rate_tables() -> None:
    """Return degraded when no tax year can be calculated."""
    client = _make_client(RateTableStore([]))
    try:
        response = await client.get("/api/health")
    finally:
        await client.aclose()

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["tax_years"] == []


@pytest.mark.asyncio
async def test_health_endpoint_schema() -> None:
    """Verify health endpoint response matches expected schema."""
    client = _make_client(load_rate_table_store())
    try:
        response = await client.get("/api/health")
    finally:
        await client.aclose()

    data = response.json()
    assert set(data.keys()) == {"status", "tax_years"}
    assert isinstance(data["status"], str)


def test_health_endpoint_sets_request_id(client) -> None:
    """Echo the caller's X-Request-ID header back on the response."""
    response = client.get("/api/health", headers={"X-Request-ID": "payslip-42"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "payslip-42"


def test_health_endpoint_generates_request_id(client) -> None:
    """Generate a request ID when the caller sends none."""
    response = client.get("/api/health")

    assert response.headers["X-Request-ID"]
