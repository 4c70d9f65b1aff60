"""Versioned rate table lookup.

``RateTableStore`` is the single place calculators get figures from. Lookups
never fall back to another tax year: a missing record is a typed error.

Example:
    >>> from src.tax.loader import load_rate_table_store
    >>> store = load_rate_table_store()
    >>> store.get_student_loan_terms("2025/26", StudentLoanPlan.PLAN_2).threshold_minor
    2847000
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from types import MappingProxyType

from src.core.errors import (
    InvalidInput,
    UnknownJurisdiction,
    UnknownTaxYear,
    UnsupportedNICategory,
    UnsupportedStudentLoanPlan,
)
from src.tax.models import (
    BandTable,
    EmployerNIThresholdTable,
    IncomeTaxTable,
    Jurisdiction,
    NICategory,
    NICategoryRecord,
    NIThresholdTable,
    PayFrequency,
    RateTableSet,
    StudentLoanPlan,
    StudentLoanTerms,
)
from src.tax.year import TaxYear


@lru_cache(maxsize=256)
def _period_ni_thresholds(record: NICategoryRecord, frequency: PayFrequency) -> NIThresholdTable:
    for published_frequency, table in record.period_overrides:
        if published_frequency is frequency:
            return table
    return record.annual.scaled(frequency.periods_per_year)


@lru_cache(maxsize=256)
def _period_employer_thresholds(
    record: NICategoryRecord, frequency: PayFrequency
) -> EmployerNIThresholdTable:
    return record.employer.scaled(frequency.periods_per_year)


class RateTableStore:
    """Immutable registry of rate table sets keyed by tax year.

    Safe to share between concurrent callers: nothing is written after
    construction.
    """

    def __init__(self, table_sets: Iterable[RateTableSet]) -> None:
        tables: dict[TaxYear, RateTableSet] = {}
        for table_set in table_sets:
            if table_set.tax_year in tables:
                raise ValueError(f"Duplicate rate table set for {table_set.tax_year}")
            tables[table_set.tax_year] = table_set
        self._tables = MappingProxyType(tables)

    def __contains__(self, tax_year: object) -> bool:
        try:
            return TaxYear.coerce(tax_year) in self._tables  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._tables)

    def tax_years(self) -> list[TaxYear]:
        """Registered tax years, oldest first."""
        return sorted(self._tables)

    def get_rate_table_set(self, tax_year: TaxYear | str) -> RateTableSet:
        """Get every table published for a tax year.

        Raises:
            InvalidInput: If ``tax_year`` is not a tax year at all.
            UnknownTaxYear: If no table set is registered for it.
        """
        try:
            year = TaxYear.coerce(tax_year)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Invalid tax year {tax_year!r}: {e}", field="tax_year") from e
        try:
            return self._tables[year]
        except KeyError:
            raise UnknownTaxYear(year, [str(y) for y in self.tax_years()]) from None

    def get_income_tax_table(
        self, tax_year: TaxYear | str, jurisdiction: Jurisdiction
    ) -> IncomeTaxTable:
        """Personal allowance and bands for a jurisdiction.

        Raises:
            UnknownTaxYear: If the year is not registered.
            UnknownJurisdiction: If the year has no table for the jurisdiction.
        """
        table_set = self.get_rate_table_set(tax_year)
        try:
            return table_set.income_tax[jurisdiction]
        except KeyError:
            raise UnknownJurisdiction(table_set.tax_year, jurisdiction) from None

    def get_band_table(self, tax_year: TaxYear | str, jurisdiction: Jurisdiction) -> BandTable:
        """Income tax bands for a jurisdiction."""
        return self.get_income_tax_table(tax_year, jurisdiction).bands

    def _ni_record(self, tax_year: TaxYear | str, category: NICategory) -> NICategoryRecord:
        table_set = self.get_rate_table_set(tax_year)
        try:
            return table_set.national_insurance[category]
        except KeyError:
            raise UnsupportedNICategory(table_set.tax_year, category) from None

    def get_ni_thresholds(
        self, tax_year: TaxYear | str, category: NICategory, frequency: PayFrequency
    ) -> NIThresholdTable:
        """Employee NI thresholds for one pay period.

        Published period figures are used when the document has them;
        otherwise annual figures are divided by the frequency's fixed divisor
        and rounded down.

        Raises:
            UnknownTaxYear: If the year is not registered.
            UnsupportedNICategory: If the year has no record for the category.
        """
        return _period_ni_thresholds(self._ni_record(tax_year, category), frequency)

    def get_employer_ni_thresholds(
        self, tax_year: TaxYear | str, category: NICategory, frequency: PayFrequency
    ) -> EmployerNIThresholdTable:
        """Employer NI thresholds for one pay period."""
        return _period_employer_thresholds(self._ni_record(tax_year, category), frequency)

    def get_student_loan_terms(
        self, tax_year: TaxYear | str, plan: StudentLoanPlan
    ) -> StudentLoanTerms:
        """Annual threshold and rate for a student loan plan.

        Raises:
            UnknownTaxYear: If the year is not registered.
            UnsupportedStudentLoanPlan: If the year has no terms for the plan.
        """
        table_set = self.get_rate_table_set(tax_year)
        try:
            return table_set.student_loans[plan]
        except KeyError:
            raise UnsupportedStudentLoanPlan(table_set.tax_year, plan) from None
