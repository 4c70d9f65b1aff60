"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.health import router as health_router
from src.api.middleware import RequestContextMiddleware
from src.api.net_pay import router as net_pay_router
from src.core.config import settings
from src.core.logging import configure_logging, get_logger
from src.core.sentry import init_sentry
from src.tax.loader import load_rate_table_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Load and validate every rate table document

    A bad rate table stops startup rather than failing individual requests.
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    app.state.rate_tables = load_rate_table_store(settings.rate_tables_dir)
    logger.info(
        "Rate tables loaded",
        tax_years=[str(year) for year in app.state.rate_tables.tax_years()],
    )

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title="Payslip",
    description="UK take-home pay calculator",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(net_pay_router)
