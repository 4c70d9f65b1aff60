"""Data model for the pay calculation engine.

Enumerations select a rate table; frozen dataclasses hold the tables, the
calculation inputs and the resulting breakdown. All monetary fields are
integer pence (``*_minor``). Rates are integer permille (``*_permille``) except
National Insurance rates, which are integer basis points (``*_bp``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from functools import cached_property

from src.core.errors import InvalidBandTable
from src.tax.money import BASIS_POINTS, PERMILLE, Minor, rate_to_percent
from src.tax.year import TaxYear


# =============================================================================
# Enumerations
# =============================================================================


class Jurisdiction(str, Enum):
    """Income tax region. Wales and Northern Ireland use rest-of-UK bands today."""

    REST_OF_UK = "rest_of_uk"
    SCOTLAND = "scotland"
    WALES = "wales"
    NORTHERN_IRELAND = "northern_ireland"


class NICategory(str, Enum):
    """Class 1 National Insurance category letters."""

    A = "A"
    B = "B"
    C = "C"
    H = "H"
    J = "J"
    M = "M"
    X = "X"
    Z = "Z"


class PayFrequency(str, Enum):
    """How often the employee is paid."""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    FOUR_WEEKLY = "four_weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @property
    def periods_per_year(self) -> int:
        """Fixed divisor used to derive period figures from annual ones."""
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR: dict[PayFrequency, int] = {
    PayFrequency.WEEKLY: 52,
    PayFrequency.FORTNIGHTLY: 26,
    PayFrequency.FOUR_WEEKLY: 13,
    PayFrequency.MONTHLY: 12,
    PayFrequency.ANNUAL: 1,
}


class StudentLoanPlan(str, Enum):
    """Student loan repayment plans."""

    PLAN_1 = "plan_1"
    PLAN_2 = "plan_2"
    PLAN_4 = "plan_4"
    PLAN_5 = "plan_5"
    POSTGRADUATE = "postgraduate"
    NONE = "none"


class PensionBasis(str, Enum):
    """How an employee pension contribution interacts with tax and NI.

    - RELIEF_AT_SOURCE: taken from net pay; the provider claims basic rate relief.
    - NET_PAY, SALARY_SACRIFICE: pay is reduced before both income tax and NI.
      The two are kept apart only so callers can say which scheme they run.
    - NONE: no contribution.
    """

    RELIEF_AT_SOURCE = "relief_at_source"
    NET_PAY = "net_pay"
    SALARY_SACRIFICE = "salary_sacrifice"
    NONE = "none"

    @property
    def reduces_taxable_pay(self) -> bool:
        return self in (PensionBasis.NET_PAY, PensionBasis.SALARY_SACRIFICE)

    @property
    def reduces_niable_pay(self) -> bool:
        return self in (PensionBasis.NET_PAY, PensionBasis.SALARY_SACRIFICE)


# =============================================================================
# Rate tables
# =============================================================================


@dataclass(frozen=True)
class Band:
    """One marginal-rate band. ``upper_minor`` is exclusive; None means unbounded.

    ``rate`` is in units of the owning table's ``scale``.
    """

    lower_minor: Minor
    upper_minor: Minor | None
    rate: int


@dataclass(frozen=True)
class BandTable:
    """Ordered, contiguous bands starting at zero and ending unbounded.

    The table checks itself once, on construction.

    Raises:
        InvalidBandTable: If bands are empty, discontiguous or overlapping.
    """

    bands: tuple[Band, ...]
    scale: int = PERMILLE

    def __post_init__(self) -> None:
        if self.scale not in (PERMILLE, BASIS_POINTS):
            raise InvalidBandTable(f"Unsupported rate scale {self.scale}")
        if not self.bands:
            raise InvalidBandTable("Band table is empty")
        if self.bands[0].lower_minor != 0:
            raise InvalidBandTable(
                f"First band must start at 0, starts at {self.bands[0].lower_minor}"
            )

        for index, band in enumerate(self.bands):
            if not 0 <= band.rate <= self.scale:
                raise InvalidBandTable(
                    f"Band {index} rate {band.rate} is outside 0..{self.scale}"
                )
            is_last = index == len(self.bands) - 1
            if band.upper_minor is None:
                if not is_last:
                    raise InvalidBandTable(f"Only the last band may be unbounded (band {index})")
                continue
            if band.upper_minor < band.lower_minor:
                raise InvalidBandTable(
                    f"Band {index} upper bound {band.upper_minor} is below "
                    f"its lower bound {band.lower_minor}"
                )
            if is_last:
                raise InvalidBandTable("Last band must be unbounded")
            following = self.bands[index + 1]
            if following.lower_minor > band.upper_minor:
                raise InvalidBandTable(
                    f"Gap between band {index} (ends {band.upper_minor}) "
                    f"and band {index + 1} (starts {following.lower_minor})"
                )
            if following.lower_minor < band.upper_minor:
                raise InvalidBandTable(
                    f"Band {index + 1} (starts {following.lower_minor}) overlaps "
                    f"band {index} (ends {band.upper_minor})"
                )

    @classmethod
    def from_thresholds(
        cls, thresholds: list[tuple[Minor | None, int]], scale: int = PERMILLE
    ) -> BandTable:
        """Build a table from ``(upper_bound, rate)`` pairs.

        Example:
            >>> BandTable.from_thresholds([(3_770_000, 200), (None, 400)])
        """
        bands: list[Band] = []
        lower = 0
        for upper, rate in thresholds:
            bands.append(Band(lower_minor=lower, upper_minor=upper, rate=rate))
            if upper is not None:
                lower = upper
        return cls(bands=tuple(bands), scale=scale)


@dataclass(frozen=True)
class PersonalAllowance:
    """Tax-free allowance, withdrawn above ``taper_start_minor``.

    With ``taper_rate_permille`` of 500 the allowance falls by 1p for every
    2p of income over the taper start, never below ``taper_floor_minor``.
    """

    base_amount_minor: Minor
    taper_start_minor: Minor
    taper_rate_permille: int = 500
    taper_floor_minor: Minor = 0


@dataclass(frozen=True)
class IncomeTaxTable:
    """Allowance and bands for one jurisdiction in one tax year.

    Band bounds are measured on taxable income, after the allowance.
    """

    jurisdiction: Jurisdiction
    personal_allowance: PersonalAllowance
    bands: BandTable


@dataclass(frozen=True)
class NIThresholdTable:
    """Employee (primary) Class 1 thresholds for one pay period length."""

    primary_threshold_minor: Minor
    upper_earnings_limit_minor: Minor
    rate_below_uel_bp: int
    rate_above_uel_bp: int

    @cached_property
    def band_table(self) -> BandTable:
        """Nil band, main band, upper band."""
        return BandTable.from_thresholds(
            [
                (self.primary_threshold_minor, 0),
                (self.upper_earnings_limit_minor, self.rate_below_uel_bp),
                (None, self.rate_above_uel_bp),
            ],
            scale=BASIS_POINTS,
        )

    def scaled(self, divisor: int) -> NIThresholdTable:
        return NIThresholdTable(
            primary_threshold_minor=self.primary_threshold_minor // divisor,
            upper_earnings_limit_minor=self.upper_earnings_limit_minor // divisor,
            rate_below_uel_bp=self.rate_below_uel_bp,
            rate_above_uel_bp=self.rate_above_uel_bp,
        )


@dataclass(frozen=True)
class EmployerNIThresholdTable:
    """Employer (secondary) Class 1 thresholds for one pay period length."""

    secondary_threshold_minor: Minor
    upper_secondary_threshold_minor: Minor
    rate_below_bp: int
    rate_above_bp: int

    @cached_property
    def band_table(self) -> BandTable:
        return BandTable.from_thresholds(
            [
                (self.secondary_threshold_minor, 0),
                (self.upper_secondary_threshold_minor, self.rate_below_bp),
                (None, self.rate_above_bp),
            ],
            scale=BASIS_POINTS,
        )

    def scaled(self, divisor: int) -> EmployerNIThresholdTable:
        return EmployerNIThresholdTable(
            secondary_threshold_minor=self.secondary_threshold_minor // divisor,
            upper_secondary_threshold_minor=self.upper_secondary_threshold_minor // divisor,
            rate_below_bp=self.rate_below_bp,
            rate_above_bp=self.rate_above_bp,
        )


@dataclass(frozen=True)
class NICategoryRecord:
    """Everything published for one NI category in one tax year.

    ``period_overrides`` holds officially published period thresholds, which
    take precedence over figures derived from ``annual``.
    """

    category: NICategory
    annual: NIThresholdTable
    employer: EmployerNIThresholdTable
    period_overrides: tuple[tuple[PayFrequency, NIThresholdTable], ...] = ()


@dataclass(frozen=True)
class StudentLoanTerms:
    """Annual repayment threshold and flat rate for one plan."""

    plan: StudentLoanPlan
    threshold_minor: Minor
    rate_permille: int


@dataclass(frozen=True)
class RateTableSet:
    """All published rates for one tax year. Read-only once loaded."""

    tax_year: TaxYear
    income_tax: Mapping[Jurisdiction, IncomeTaxTable]
    national_insurance: Mapping[NICategory, NICategoryRecord]
    student_loans: Mapping[StudentLoanPlan, StudentLoanTerms]
    relief_at_source_rate_permille: int = 200


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class PercentageContribution:
    """Pension contribution as a share of each period's gross pay."""

    rate_permille: int


@dataclass(frozen=True)
class FixedContribution:
    """Pension contribution as a fixed annual amount, spread across periods."""

    annual_amount_minor: Minor


PensionContribution = PercentageContribution | FixedContribution


@dataclass(frozen=True)
class NonCumulative:
    """Each period taxed on its own (week 1 / month 1 basis)."""


@dataclass(frozen=True)
class Cumulative:
    """Tax on pay to date, less tax already paid this year.

    The caller carries the year-to-date history between payslips.
    """

    period_number: int
    prior_cumulative_taxable_minor: Minor = 0
    prior_cumulative_tax_paid_minor: Minor = 0


PayeMode = NonCumulative | Cumulative


@dataclass(frozen=True)
class Inputs:
    """One net pay calculation request."""

    gross_annual_minor: Minor
    tax_year: TaxYear | str
    jurisdiction: Jurisdiction = Jurisdiction.REST_OF_UK
    ni_category: NICategory = NICategory.A
    pay_frequency: PayFrequency = PayFrequency.ANNUAL
    student_loan_plan: StudentLoanPlan = StudentLoanPlan.NONE
    pension_basis: PensionBasis = PensionBasis.NONE
    pension_contribution: PensionContribution | None = None
    postgraduate_loan: bool = False
    paye_mode: PayeMode = field(default_factory=NonCumulative)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class BandCharge:
    """Amount falling in one band and the charge on it."""

    lower_minor: Minor
    upper_minor: Minor | None
    rate: int
    scale: int
    taxed_minor: Minor
    charge_minor: Minor

    @property
    def rate_percent(self) -> Decimal:
        return rate_to_percent(self.rate, self.scale)


@dataclass(frozen=True)
class StudentLoanRepayment:
    """One plan's repayment for the period."""

    plan: StudentLoanPlan
    threshold_minor: Minor
    rate_permille: int
    amount_minor: Minor


@dataclass(frozen=True)
class PayBreakdown:
    """Reconciled pay for one period of ``pay_frequency``.

    ``net_minor == gross_minor - income_tax_minor - ni_minor
    - student_loan_minor - pension_minor`` holds exactly. Employer NI and
    relief-at-source top-ups are reported but are not part of net pay.
    """

    tax_year: TaxYear
    pay_frequency: PayFrequency
    gross_minor: Minor
    taxable_minor: Minor
    niable_minor: Minor
    personal_allowance_minor: Minor
    income_tax_minor: Minor
    ni_minor: Minor
    student_loan_minor: Minor
    pension_minor: Minor
    net_minor: Minor
    employer_ni_minor: Minor = 0
    pension_relief_at_source_minor: Minor = 0
    tax_bands: tuple[BandCharge, ...] = ()
    student_loans: tuple[StudentLoanRepayment, ...] = ()

    @property
    def total_deductions_minor(self) -> Minor:
        return self.income_tax_minor + self.ni_minor + self.student_loan_minor + self.pension_minor

    @property
    def effective_tax_rate(self) -> Decimal:
        """Income tax as a fraction of gross pay."""
        if self.gross_minor <= 0:
            return Decimal("0")
        return Decimal(self.income_tax_minor) / Decimal(self.gross_minor)

    @property
    def overall_deduction_rate(self) -> Decimal:
        """All deductions as a fraction of gross pay."""
        if self.gross_minor <= 0:
            return Decimal("0")
        return Decimal(self.total_deductions_minor) / Decimal(self.gross_minor)
