"""Sentry error tracking integration."""

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from src.core.config import settings


def init_sentry() -> None:
    """Initialize Sentry error tracking if DSN is configured.

    Integrates with FastAPI and Starlette for automatic error capture.
    Only captures 5xx errors and samples 10% of traces for performance.
    Salary figures are personal data, so PII is never sent.
    """
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )


def report_exception(exc: BaseException) -> bool:
    """Send an exception to Sentry when running in production.

    Args:
        exc: The exception to report.

    Returns:
        True if the exception was handed to Sentry.
    """
    if not (settings.is_production and settings.sentry_dsn):
        return False
    sentry_sdk.capture_exception(exc)
    return True
