"""Employee pension contributions and their effect on taxable and NI-able pay."""

from __future__ import annotations

from dataclasses import dataclass

from src.core.errors import InvalidInput
from src.tax.models import (
    FixedContribution,
    PayFrequency,
    PensionBasis,
    PensionContribution,
    PercentageContribution,
)
from src.tax.money import PERMILLE, Minor, apply_permille


@dataclass(frozen=True)
class PensionResult:
    """Contribution for one period and the pay figures it leaves behind.

    Attributes:
        pension_minor: Amount taken from the employee's pay.
        taxable_pay_minor: Pay subject to income tax.
        niable_pay_minor: Pay subject to NI.
        adjusted_net_income_minor: Income used for the allowance taper.
        relief_at_source_minor: Basic rate relief the provider adds on top of
            a relief-at-source contribution. Not part of net pay.
    """

    basis: PensionBasis
    pension_minor: Minor
    taxable_pay_minor: Minor
    niable_pay_minor: Minor
    adjusted_net_income_minor: Minor
    relief_at_source_minor: Minor = 0


class PensionContributionCalculator:
    """Resolve a contribution and its basis before tax and NI run."""

    def __init__(
        self,
        basis: PensionBasis,
        contribution: PensionContribution | None,
        relief_at_source_rate_permille: int = 200,
    ) -> None:
        self.basis = basis
        self.contribution = contribution
        self.relief_at_source_rate_permille = relief_at_source_rate_permille

    def contribution_for(self, gross_minor: Minor, frequency: PayFrequency) -> Minor:
        """Contribution taken from one period's gross pay.

        Raises:
            InvalidInput: If the contribution is malformed or exceeds pay.
        """
        if self.basis is PensionBasis.NONE or self.contribution is None:
            return 0
        if isinstance(self.contribution, PercentageContribution):
            if not 0 <= self.contribution.rate_permille <= PERMILLE:
                raise InvalidInput(
                    f"Pension rate must be 0..{PERMILLE} permille, "
                    f"got {self.contribution.rate_permille}",
                    field="pension_contribution",
                )
            return apply_permille(gross_minor, self.contribution.rate_permille)
        if isinstance(self.contribution, FixedContribution):
            if self.contribution.annual_amount_minor < 0:
                raise InvalidInput(
                    "Pension contribution cannot be negative", field="pension_contribution"
                )
            amount = self.contribution.annual_amount_minor // frequency.periods_per_year
            if amount > gross_minor:
                raise InvalidInput(
                    f"Pension contribution {amount} exceeds gross pay {gross_minor}",
                    field="pension_contribution",
                )
            return amount
        raise InvalidInput(
            f"Unknown pension contribution {self.contribution!r}", field="pension_contribution"
        )

    def annual_niable_pay(self, gross_annual_minor: Minor) -> Minor:
        """Annual pay left for NI once a full year's contribution is taken.

        Student loan thresholds are annual, so repayments are measured on
        this rather than on a re-annualised (and already floored) period.
        """
        if not self.basis.reduces_niable_pay:
            return gross_annual_minor
        return gross_annual_minor - self.contribution_for(gross_annual_minor, PayFrequency.ANNUAL)

    def calculate(
        self, gross_minor: Minor, frequency: PayFrequency = PayFrequency.ANNUAL
    ) -> PensionResult:
        """Contribution for one period and the taxable / NI-able pay left.

        - RELIEF_AT_SOURCE: pay figures unchanged; relief reported separately.
        - NET_PAY, SALARY_SACRIFICE: taxable and NI-able pay both reduced.
        - NONE: nothing taken.
        """
        pension = self.contribution_for(gross_minor, frequency)
        taxable = gross_minor - pension if self.basis.reduces_taxable_pay else gross_minor
        niable = gross_minor - pension if self.basis.reduces_niable_pay else gross_minor

        relief = 0
        adjusted = taxable
        if self.basis is PensionBasis.RELIEF_AT_SOURCE and pension:
            rate = self.relief_at_source_rate_permille
            relief = pension * rate // (PERMILLE - rate)
            adjusted = max(0, taxable - pension - relief)

        return PensionResult(
            basis=self.basis,
            pension_minor=pension,
            taxable_pay_minor=taxable,
            niable_pay_minor=niable,
            adjusted_net_income_minor=adjusted,
            relief_at_source_minor=relief,
        )
