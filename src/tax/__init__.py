"""UK tax years, money helpers, data model and rate table store."""

from src.tax.models import (
    Cumulative,
    FixedContribution,
    Inputs,
    Jurisdiction,
    NICategory,
    NonCumulative,
    PayBreakdown,
    PayFrequency,
    PensionBasis,
    PercentageContribution,
    StudentLoanPlan,
)
from src.tax.store import RateTableStore
from src.tax.year import TaxYear

__all__ = [
    "Cumulative",
    "FixedContribution",
    "Inputs",
    "Jurisdiction",
    "NICategory",
    "NonCumulative",
    "PayBreakdown",
    "PayFrequency",
    "PensionBasis",
    "PercentageContribution",
    "RateTableStore",
    "StudentLoanPlan",
    "TaxYear",
]
