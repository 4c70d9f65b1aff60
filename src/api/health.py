"""Health check endpoint for infrastructure verification."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_store
from src.tax.store import RateTableStore

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    tax_years: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: RateTableStore = Depends(get_store),
) -> HealthResponse:
    """Report whether rate tables are loaded.

    Returns:
        HealthResponse with status "ok" when at least one tax year can be
        calculated, "degraded" otherwise.
    """
    tax_years = [str(year) for year in store.tax_years()]
    return HealthResponse(
        status="ok" if tax_years else "degraded",
        tax_years=tax_years,
    )
