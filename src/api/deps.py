"""FastAPI dependency injection for the rate table store and aggregator."""

from fastapi import Request

from src.orchestration.aggregator import NetPayAggregator
from src.tax.store import RateTableStore


async def get_store(request: Request) -> RateTableStore:
    """Get the rate table store loaded at startup.

    Args:
        request: FastAPI request containing app state.

    Returns:
        The immutable RateTableStore shared by every request.
    """
    return request.app.state.rate_tables


async def get_aggregator(request: Request) -> NetPayAggregator:
    """Build an aggregator over the shared store.

    Args:
        request: FastAPI request containing app state.

    Returns:
        NetPayAggregator; it holds no per-request state.
    """
    return NetPayAggregator(await get_store(request))
