"""Tests for Sentry reporting."""

import pytest

import src.core.sentry as sentry_module
from src.core.config import settings


def test_report_exception_skipped_outside_production(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nothing is sent from development, even with a DSN."""
    captured: list[BaseException] = []
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "sentry_dsn", "https://key@example.invalid/1")
    monkeypatch.setattr(sentry_module.sentry_sdk, "capture_exception", captured.append)

    assert sentry_module.report_exception(RuntimeError("boom")) is False
    assert captured == []


def test_report_exception_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    """Production with a DSN hands the exception to Sentry."""
    captured: list[BaseException] = []
    error = RuntimeError("boom")
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "sentry_dsn", "https://key@example.invalid/1")
    monkeypatch.setattr(sentry_module.sentry_sdk, "capture_exception", captured.append)

    assert sentry_module.report_exception(error) is True
    assert captured == [error]


def test_init_sentry_without_dsn_is_a_no_op(monkeypatch: pytest.MonkeyPatch) -> None:
    """No DSN means the SDK is never initialised."""
    calls: list[dict] = []
    monkeypatch.setattr(settings, "sentry_dsn", None)
    monkeypatch.setattr(sentry_module.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    sentry_module.init_sentry()

    assert calls == []
