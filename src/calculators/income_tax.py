"""Income tax on employment income.

Three steps: work out the personal allowance (withdrawn for high incomes),
take it off taxable pay, and charge what is left across the jurisdiction's
bands. PAYE can run non-cumulatively (each period on its own) or
cumulatively (tax on pay to date, less tax already paid).
"""

from __future__ import annotations

from dataclasses import dataclass

from src.calculators.banded import BandedRateCalculator
from src.core.errors import InvalidInput
from src.core.logging import get_logger
from src.tax.models import BandCharge, IncomeTaxTable, Jurisdiction, PayFrequency
from src.tax.money import Minor, apply_permille
from src.tax.store import RateTableStore
from src.tax.year import TaxYear

logger = get_logger(__name__)


@dataclass(frozen=True)
class IncomeTaxResult:
    """Annual income tax.

    Attributes:
        personal_allowance_minor: Allowance after the high-income taper.
        taxable_income_minor: Taxable pay less the allowance, never negative.
        tax_minor: Sum of the per-band charges.
        bands: Charge in each band reached.
    """

    personal_allowance_minor: Minor
    taxable_income_minor: Minor
    tax_minor: Minor
    bands: tuple[BandCharge, ...]


@dataclass(frozen=True)
class PeriodTaxResult:
    """Non-cumulative tax for one pay period."""

    tax_minor: Minor
    annual: IncomeTaxResult


@dataclass(frozen=True)
class CumulativeTaxResult:
    """Cumulative PAYE for one pay period.

    ``tax_minor`` is negative when earlier periods over-deducted and the
    period gives a refund.
    """

    period_number: int
    cumulative_taxable_minor: Minor
    tax_to_date_minor: Minor
    tax_minor: Minor
    annual: IncomeTaxResult


class IncomeTaxCalculator:
    """Income tax for one jurisdiction in one tax year."""

    def __init__(self, table: IncomeTaxTable) -> None:
        self.table = table
        self._bands = BandedRateCalculator(table.bands)

    @classmethod
    def for_year(
        cls, store: RateTableStore, tax_year: TaxYear | str, jurisdiction: Jurisdiction
    ) -> IncomeTaxCalculator:
        return cls(store.get_income_tax_table(tax_year, jurisdiction))

    def personal_allowance(self, income_minor: Minor) -> Minor:
        """Allowance for an annual income, after the taper.

        Above the taper start the allowance shrinks by ``taper_rate`` of the
        excess (1p per 2p at 50%), rounded down, and stops at the floor.
        """
        allowance = self.table.personal_allowance
        if income_minor <= allowance.taper_start_minor:
            return allowance.base_amount_minor
        reduction = apply_permille(
            income_minor - allowance.taper_start_minor, allowance.taper_rate_permille
        )
        return max(allowance.taper_floor_minor, allowance.base_amount_minor - reduction)

    def calculate(
        self, taxable_pay_minor: Minor, adjusted_net_income_minor: Minor | None = None
    ) -> IncomeTaxResult:
        """Annual income tax.

        Args:
            taxable_pay_minor: Annual pay subject to tax, already net of any
                pension contribution taken before tax.
            adjusted_net_income_minor: Income used for the allowance taper.
                Defaults to ``taxable_pay_minor``.

        Raises:
            InvalidInput: If an amount is negative.
        """
        if taxable_pay_minor < 0:
            raise InvalidInput(
                f"Taxable pay cannot be negative, got {taxable_pay_minor}", field="taxable_pay"
            )
        income = taxable_pay_minor if adjusted_net_income_minor is None else adjusted_net_income_minor
        allowance = self.personal_allowance(max(0, income))
        taxable_income = max(0, taxable_pay_minor - allowance)
        bands = self._bands.breakdown(taxable_income)
        return IncomeTaxResult(
            personal_allowance_minor=allowance,
            taxable_income_minor=taxable_income,
            tax_minor=sum(band.charge_minor for band in bands),
            bands=bands,
        )

    def period_tax(
        self,
        taxable_period_minor: Minor,
        frequency: PayFrequency,
        adjusted_net_income_period_minor: Minor | None = None,
    ) -> PeriodTaxResult:
        """Tax for one period on a non-cumulative basis.

        The period's pay is annualised, taxed, and the annual tax divided back
        down (rounded down).
        """
        divisor = frequency.periods_per_year
        adjusted = (
            None
            if adjusted_net_income_period_minor is None
            else adjusted_net_income_period_minor * divisor
        )
        annual = self.calculate(taxable_period_minor * divisor, adjusted)
        return PeriodTaxResult(tax_minor=annual.tax_minor // divisor, annual=annual)

    def cumulative(
        self,
        taxable_period_minor: Minor,
        frequency: PayFrequency,
        period_number: int,
        prior_cumulative_taxable_minor: Minor = 0,
        prior_cumulative_tax_paid_minor: Minor = 0,
        adjusted_net_income_period_minor: Minor | None = None,
    ) -> CumulativeTaxResult:
        """Tax for period ``period_number`` on a cumulative basis.

        Pay to date is annualised, taxed at annual bands, the tax scaled back
        to the periods elapsed, and tax already paid subtracted. The caller
        supplies the year-to-date figures; nothing is remembered here.

        Raises:
            InvalidInput: If the period number or history is out of range.
        """
        divisor = frequency.periods_per_year
        if not 1 <= period_number <= divisor:
            raise InvalidInput(
                f"Period number must be between 1 and {divisor} for {frequency.value} pay, "
                f"got {period_number}",
                field="period_number",
            )
        if prior_cumulative_taxable_minor < 0 or prior_cumulative_tax_paid_minor < 0:
            raise InvalidInput("Year-to-date figures cannot be negative", field="paye_mode")

        cumulative_taxable = prior_cumulative_taxable_minor + taxable_period_minor
        annualised = cumulative_taxable * divisor // period_number
        adjusted = None
        if adjusted_net_income_period_minor is not None:
            adjusted = annualised - (taxable_period_minor - adjusted_net_income_period_minor) * divisor

        annual = self.calculate(annualised, adjusted)
        tax_to_date = annual.tax_minor * period_number // divisor
        tax_due = tax_to_date - prior_cumulative_tax_paid_minor

        logger.debug(
            "cumulative_tax_computed",
            period_number=period_number,
            cumulative_taxable_minor=cumulative_taxable,
            tax_to_date_minor=tax_to_date,
            tax_due_minor=tax_due,
        )
        return CumulativeTaxResult(
            period_number=period_number,
            cumulative_taxable_minor=cumulative_taxable,
            tax_to_date_minor=tax_to_date,
            tax_minor=tax_due,
            annual=annual,
        )
