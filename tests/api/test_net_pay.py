"""Tests for net pay API endpoints."""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

import src.orchestration.aggregator as aggregator_module
from src.core.errors import ReconciliationError
from src.main import app
from src.tax.loader import load_rate_table_store


@pytest_asyncio.fixture
async def api_client():
    app.state.rate_tables = load_rate_table_store()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_net_pay_annual(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/net-pay", json={"gross_annual_minor": 3_000_000, "tax_year": "2025/26"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["tax_year"] == "2025/26"
    assert data["pay_frequency"] == "annual"
    assert data["income_tax_minor"] == 348_600
    assert data["ni_minor"] == 139_440
    assert data["net_minor"] == 2_511_960
    assert data["total_deductions_minor"] == 488_040
    assert data["net_pounds"] == "25119.60"
    assert [band["rate_percent"] for band in data["tax_bands"]] == ["20"]


@pytest.mark.asyncio
async def test_net_pay_monthly_with_loans_and_pension(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/net-pay",
        json={
            "gross_annual_minor": 4_000_000,
            "tax_year": "2025-26",
            "pay_frequency": "monthly",
            "student_loan_plan": "plan_2",
            "postgraduate_loan": True,
            "pension_basis": "salary_sacrifice",
            "pension_rate_permille": 50,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["gross_minor"] == 333_333
    assert data["pension_minor"] == 16_666
    assert data["niable_minor"] == 316_667
    assert [loan["plan"] for loan in data["student_loans"]] == ["plan_2", "postgraduate"]
    assert data["net_minor"] == data["gross_minor"] - data["total_deductions_minor"]


@pytest.mark.asyncio
async def test_net_pay_category_b(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/net-pay", json={"gross_annual_minor": 3_000_000, "ni_category": "B"}
    )

    assert response.status_code == 200
    assert response.json()["ni_minor"] == 32_245


@pytest.mark.asyncio
async def test_net_pay_defaults_tax_year(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/net-pay", json={"gross_annual_minor": 3_000_000})

    assert response.status_code == 200
    assert response.json()["tax_year"] == "2025/26"


@pytest.mark.asyncio
async def test_net_pay_cumulative(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/net-pay",
        json={
            "gross_annual_minor": 3_000_000,
            "pay_frequency": "monthly",
            "cumulative": {
                "period_number": 2,
                "prior_cumulative_taxable_minor": 250_000,
                "prior_cumulative_tax_paid_minor": 100_000,
            },
        },
    )

    assert response.status_code == 200
    assert response.json()["income_tax_minor"] == -41_900


@pytest.mark.asyncio
async def test_negative_gross_is_422(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/net-pay", json={"gross_annual_minor": -1})

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "gross_annual_minor"


@pytest.mark.asyncio
async def test_period_number_out_of_range_is_422(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/net-pay",
        json={
            "gross_annual_minor": 3_000_000,
            "pay_frequency": "monthly",
            "cumulative": {"period_number": 13},
        },
    )

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "period_number"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"gross_annual_minor": 3_000_000.5},
        {"gross_annual_minor": "3000000"},
        {"gross_annual_minor": 3_000_000, "pay_frequency": "fortnight"},
        {
            "gross_annual_minor": 3_000_000,
            "pension_basis": "net_pay",
            "pension_rate_permille": 50,
            "pension_annual_amount_minor": 100_000,
        },
    ],
)
async def test_malformed_payload_is_422(api_client: AsyncClient, payload: dict) -> None:
    response = await api_client.post("/api/net-pay", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"gross_annual_minor": 3_000_000, "tax_year": "2030/31"}, "Tax year 2030/31"),
        (
            {"gross_annual_minor": 3_000_000, "tax_year": "2024/25", "student_loan_plan": "plan_5"},
            "plan_5",
        ),
    ],
)
async def test_missing_rate_tables_is_404(
    api_client: AsyncClient, payload: dict, expected: str
) -> None:
    response = await api_client.post("/api/net-pay", json=payload)

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert expected in detail
    assert "not yet supported" in detail


@pytest.mark.asyncio
async def test_list_tax_years(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/tax-years")

    assert response.status_code == 200
    assert response.json() == {"tax_years": ["2024/25", "2025/26"], "default": "2025/26"}


def test_reconciliation_failure_is_500(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_reconcile(stage):
        raise ReconciliationError("does not balance", details={"unbalanced_by_minor": 1})

    monkeypatch.setattr(aggregator_module, "reconcile", broken_reconcile)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post("/api/net-pay", json={"gross_annual_minor": 3_000_000})

    assert response.status_code == 500
