"""Pytest configuration and shared fixtures for tests."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.orchestration.aggregator import NetPayAggregator
from src.tax.loader import load_rate_table_store
from src.tax.store import RateTableStore


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest.fixture(scope="session")
def store() -> RateTableStore:
    """Load the bundled rate tables once per test session.

    Returns:
        RateTableStore holding every bundled tax year.
    """
    return load_rate_table_store()


@pytest.fixture
def aggregator(store: RateTableStore) -> NetPayAggregator:
    """Create an aggregator over the bundled rate tables.

    Returns:
        NetPayAggregator instance.
    """
    return NetPayAggregator(store)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create a test client for API testing.

    The context manager runs the application lifespan, so rate tables are
    loaded exactly as in production.

    Yields:
        FastAPI TestClient instance.
    """
    with TestClient(app) as test_client:
        yield test_client
