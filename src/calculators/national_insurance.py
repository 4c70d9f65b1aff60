"""Class 1 National Insurance for one pay period.

NI is worked out on each period's own NI-able pay against that period's
thresholds. Unlike PAYE income tax it never looks at pay to date.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.calculators.banded import BandedRateCalculator
from src.core.errors import InvalidInput
from src.tax.models import (
    BandCharge,
    EmployerNIThresholdTable,
    NICategory,
    NIThresholdTable,
    PayFrequency,
)
from src.tax.money import Minor
from src.tax.store import RateTableStore
from src.tax.year import TaxYear


@dataclass(frozen=True)
class NIResult:
    """NI due for one period.

    Attributes:
        employee_minor: Primary contributions, deducted from pay.
        employer_minor: Secondary contributions, an employer cost only.
        bands: Employee charge in each band reached.
    """

    employee_minor: Minor
    employer_minor: Minor
    bands: tuple[BandCharge, ...]


class NationalInsuranceCalculator:
    """Employee and employer Class 1 NI for one category and period length."""

    def __init__(
        self,
        employee: NIThresholdTable,
        employer: EmployerNIThresholdTable | None = None,
    ) -> None:
        self.employee = employee
        self.employer = employer
        self._employee_bands = BandedRateCalculator(employee.band_table)
        self._employer_bands = (
            BandedRateCalculator(employer.band_table) if employer is not None else None
        )

    @classmethod
    def for_period(
        cls,
        store: RateTableStore,
        tax_year: TaxYear | str,
        category: NICategory,
        frequency: PayFrequency,
    ) -> NationalInsuranceCalculator:
        """Calculator for one category at one pay frequency.

        Raises:
            UnknownTaxYear: If the year is not registered.
            UnsupportedNICategory: If the category has no record that year.
        """
        return cls(
            store.get_ni_thresholds(tax_year, category, frequency),
            store.get_employer_ni_thresholds(tax_year, category, frequency),
        )

    def calculate(self, niable_minor: Minor) -> NIResult:
        """NI on one period's NI-able pay.

        Raises:
            InvalidInput: If the pay is negative.
        """
        if niable_minor < 0:
            raise InvalidInput(f"NI-able pay cannot be negative, got {niable_minor}", field="niable_pay")
        bands = self._employee_bands.breakdown(niable_minor)
        employer = self._employer_bands.liability(niable_minor) if self._employer_bands else 0
        return NIResult(
            employee_minor=sum(band.charge_minor for band in bands),
            employer_minor=employer,
            bands=bands,
        )
