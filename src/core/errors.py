"""Error taxonomy for the pay calculation engine.

Three families, handled differently by callers:

- ``InvalidInput``: the caller's data is malformed. Recoverable by asking again.
- ``ConfigurationError``: no (or a broken) rate table for the request.
  Recoverable only by shipping updated tables.
- ``ReconciliationError``: an internal invariant failed. Always a defect.
"""

from __future__ import annotations

from pathlib import Path


def _label(value: object) -> str:
    """Enum members by value ("plan_5"), anything else by str()."""
    return str(getattr(value, "value", value))


class PayEngineError(Exception):
    """Base class for all engine errors."""


class InvalidInput(PayEngineError, ValueError):
    """Caller supplied malformed, negative or out-of-range data."""

    def __init__(self, message: str, field: str | None = None):
        """Initialize InvalidInput.

        Args:
            message: Human-readable error message
            field: Name of the offending input field, if known
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(PayEngineError):
    """Rate table configuration is missing or malformed."""


class UnknownTaxYear(ConfigurationError, LookupError):
    """No rate table set is registered for the requested tax year."""

    def __init__(self, tax_year: object, available: list[str] | None = None):
        self.tax_year = str(tax_year)
        self.available = available or []
        super().__init__(
            f"Tax year {self.tax_year} is not yet supported. "
            f"Available years: {self.available}"
        )


class UnknownJurisdiction(ConfigurationError, LookupError):
    """The tax year has no income tax table for the jurisdiction."""

    def __init__(self, tax_year: object, jurisdiction: object):
        self.tax_year = str(tax_year)
        self.jurisdiction = _label(jurisdiction)
        super().__init__(
            f"Jurisdiction {self.jurisdiction} is not yet supported for {self.tax_year}"
        )


class UnsupportedNICategory(ConfigurationError, LookupError):
    """The tax year has no National Insurance record for the category."""

    def __init__(self, tax_year: object, category: object):
        self.tax_year = str(tax_year)
        self.category = _label(category)
        super().__init__(
            f"NI category {self.category} is not yet supported for {self.tax_year}"
        )


class UnsupportedStudentLoanPlan(ConfigurationError, LookupError):
    """The tax year has no repayment terms for the student loan plan."""

    def __init__(self, tax_year: object, plan: object):
        self.tax_year = str(tax_year)
        self.plan = _label(plan)
        super().__init__(
            f"Student loan plan {self.plan} is not yet supported for {self.tax_year}"
        )


class InvalidBandTable(ConfigurationError):
    """Bands are empty, overlapping, discontiguous or badly bounded."""


class InvalidRateTable(ConfigurationError):
    """A rate table document failed to load or validate."""

    def __init__(
        self, message: str, path: Path | None = None, errors: list[str] | None = None
    ):
        """Initialize InvalidRateTable.

        Args:
            message: Human-readable error message
            path: Path to the document that failed to load
            errors: List of specific validation errors
        """
        self.path = path
        self.errors = errors or []
        super().__init__(message)


class ReconciliationError(PayEngineError):
    """A computed breakdown does not balance. Never expected in normal operation."""

    def __init__(self, message: str, details: dict[str, int] | None = None):
        self.details = details or {}
        super().__init__(message)
