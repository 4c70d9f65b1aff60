"""API module exports."""

from src.api.deps import get_aggregator, get_store
from src.api.health import router as health_router
from src.api.net_pay import router as net_pay_router

__all__ = [
    "get_aggregator",
    "get_store",
    "health_router",
    "net_pay_router",
]
