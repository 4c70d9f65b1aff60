"""Income tax, National Insurance, student loan and pension calculators."""

from src.calculators.banded import BandedRateCalculator
from src.calculators.income_tax import (
    CumulativeTaxResult,
    IncomeTaxCalculator,
    IncomeTaxResult,
    PeriodTaxResult,
)
from src.calculators.national_insurance import NationalInsuranceCalculator, NIResult
from src.calculators.pension import PensionContributionCalculator, PensionResult
from src.calculators.student_loan import StudentLoanCalculator

__all__ = [
    "BandedRateCalculator",
    "CumulativeTaxResult",
    "IncomeTaxCalculator",
    "IncomeTaxResult",
    "NIResult",
    "NationalInsuranceCalculator",
    "PensionContributionCalculator",
    "PensionResult",
    "PeriodTaxResult",
    "StudentLoanCalculator",
]
