"""Net pay orchestration.

``NetPayAggregator.compute`` turns an ``Inputs`` into a reconciled
``PayBreakdown`` by running six stages in a fixed order:

    Validate -> ApplyPension -> ComputeTax -> ComputeNI
             -> ComputeStudentLoan -> Reconcile

Each stage is a plain function of the previous stage's record and returns a
new frozen record. Nothing is shared between calls, so one aggregator can
serve any number of concurrent callers.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

import structlog

from src.calculators.income_tax import (
    CumulativeTaxResult,
    IncomeTaxCalculator,
    PeriodTaxResult,
)
from src.calculators.national_insurance import NationalInsuranceCalculator, NIResult
from src.calculators.pension import PensionContributionCalculator, PensionResult
from src.calculators.student_loan import StudentLoanCalculator
from src.core.errors import InvalidInput, PayEngineError, ReconciliationError
from src.core.logging import get_logger
from src.core.sentry import report_exception
from src.orchestration.state_machine import PipelineStateMachine
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
    RateTableSet,
    StudentLoanPlan,
    StudentLoanRepayment,
)
from src.tax.money import PERMILLE, Minor, per_period
from src.tax.store import RateTableStore
from src.tax.year import TaxYear

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)


# =============================================================================
# Stage records
# =============================================================================


@dataclass(frozen=True)
class ValidatedInputs:
    """Inputs with enums normalised, the tax year resolved and period gross set."""

    inputs: Inputs
    tax_year: TaxYear
    rates: RateTableSet
    gross_minor: Minor


@dataclass(frozen=True)
class PensionStage:
    validated: ValidatedInputs
    pension: PensionResult
    annual_niable_pay_minor: Minor


@dataclass(frozen=True)
class TaxStage:
    pension_stage: PensionStage
    tax: PeriodTaxResult | CumulativeTaxResult


@dataclass(frozen=True)
class NIStage:
    tax_stage: TaxStage
    ni: NIResult


@dataclass(frozen=True)
class StudentLoanStage:
    ni_stage: NIStage
    repayments: tuple[StudentLoanRepayment, ...]


# =============================================================================
# Stages
# =============================================================================


def _coerce_enum(enum_cls: type[E], value: object, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            try:
                return enum_cls[value.upper()]
            except KeyError:
                pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise InvalidInput(f"Unknown {field} {value!r}. Expected one of: {allowed}", field=field)


def _require_int(value: object, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(
            f"{field} must be an integer number of pence, got {type(value).__name__}",
            field=field,
        )
    return value


def validate_inputs(inputs: Inputs, store: RateTableStore) -> ValidatedInputs:
    """Check and normalise inputs before any money is calculated.

    Raises:
        InvalidInput: Negative or non-integer amounts, unknown enum values,
            malformed pension or PAYE settings.
        UnknownTaxYear: If no rate tables exist for the tax year.
    """
    gross = _require_int(inputs.gross_annual_minor, "gross_annual_minor")
    if gross < 0:
        raise InvalidInput(f"Gross pay cannot be negative, got {gross}", field="gross_annual_minor")

    frequency = _coerce_enum(PayFrequency, inputs.pay_frequency, "pay_frequency")
    normalised = dataclasses.replace(
        inputs,
        jurisdiction=_coerce_enum(Jurisdiction, inputs.jurisdiction, "jurisdiction"),
        ni_category=_coerce_enum(NICategory, inputs.ni_category, "ni_category"),
        pay_frequency=frequency,
        student_loan_plan=_coerce_enum(
            StudentLoanPlan, inputs.student_loan_plan, "student_loan_plan"
        ),
        pension_basis=_coerce_enum(PensionBasis, inputs.pension_basis, "pension_basis"),
    )

    if not isinstance(inputs.postgraduate_loan, bool):
        raise InvalidInput("postgraduate_loan must be true or false", field="postgraduate_loan")

    contribution = inputs.pension_contribution
    if isinstance(contribution, PercentageContribution):
        rate = _require_int(contribution.rate_permille, "pension_contribution")
        if not 0 <= rate <= PERMILLE:
            raise InvalidInput(
                f"Pension rate must be 0..{PERMILLE} permille, got {rate}",
                field="pension_contribution",
            )
    elif isinstance(contribution, FixedContribution):
        amount = _require_int(contribution.annual_amount_minor, "pension_contribution")
        if not 0 <= amount <= gross:
            raise InvalidInput(
                f"Pension contribution must be between 0 and gross pay, got {amount}",
                field="pension_contribution",
            )
    elif contribution is not None:
        raise InvalidInput(
            f"Unknown pension contribution {contribution!r}", field="pension_contribution"
        )
    if (
        normalised.pension_basis is not PensionBasis.NONE
        and contribution is None
    ):
        raise InvalidInput(
            f"Pension basis {normalised.pension_basis.value} needs a contribution",
            field="pension_contribution",
        )

    mode = inputs.paye_mode
    if isinstance(mode, Cumulative):
        period_number = _require_int(mode.period_number, "period_number")
        if not 1 <= period_number <= frequency.periods_per_year:
            raise InvalidInput(
                f"Period number must be between 1 and {frequency.periods_per_year} "
                f"for {frequency.value} pay, got {period_number}",
                field="period_number",
            )
        for name in ("prior_cumulative_taxable_minor", "prior_cumulative_tax_paid_minor"):
            if _require_int(getattr(mode, name), name) < 0:
                raise InvalidInput(f"{name} cannot be negative", field=name)
    elif not isinstance(mode, NonCumulative):
        raise InvalidInput(f"Unknown PAYE mode {mode!r}", field="paye_mode")

    rates = store.get_rate_table_set(inputs.tax_year)
    return ValidatedInputs(
        inputs=normalised,
        tax_year=rates.tax_year,
        rates=rates,
        gross_minor=per_period(gross, frequency.periods_per_year),
    )


def apply_pension(validated: ValidatedInputs) -> PensionStage:
    """Resolve the pension contribution and the pay it leaves for tax and NI."""
    inputs = validated.inputs
    calculator = PensionContributionCalculator(
        inputs.pension_basis,
        inputs.pension_contribution,
        validated.rates.relief_at_source_rate_permille,
    )
    return PensionStage(
        validated=validated,
        pension=calculator.calculate(validated.gross_minor, inputs.pay_frequency),
        annual_niable_pay_minor=calculator.annual_niable_pay(inputs.gross_annual_minor),
    )


def compute_tax(stage: PensionStage, store: RateTableStore) -> TaxStage:
    """Income tax for the period, cumulative or not as the inputs select.

    Raises:
        UnknownJurisdiction: If the year has no table for the jurisdiction.
    """
    validated = stage.validated
    inputs = validated.inputs
    calculator = IncomeTaxCalculator.for_year(store, validated.tax_year, inputs.jurisdiction)
    pension = stage.pension

    mode = inputs.paye_mode
    tax: PeriodTaxResult | CumulativeTaxResult
    if isinstance(mode, Cumulative):
        tax = calculator.cumulative(
            pension.taxable_pay_minor,
            inputs.pay_frequency,
            mode.period_number,
            mode.prior_cumulative_taxable_minor,
            mode.prior_cumulative_tax_paid_minor,
            adjusted_net_income_period_minor=pension.adjusted_net_income_minor,
        )
    else:
        tax = calculator.period_tax(
            pension.taxable_pay_minor,
            inputs.pay_frequency,
            adjusted_net_income_period_minor=pension.adjusted_net_income_minor,
        )
    return TaxStage(pension_stage=stage, tax=tax)


def compute_ni(stage: TaxStage, store: RateTableStore) -> NIStage:
    """NI on the period's NI-able pay.

    Raises:
        UnsupportedNICategory: If the year has no record for the category.
    """
    validated = stage.pension_stage.validated
    inputs = validated.inputs
    calculator = NationalInsuranceCalculator.for_period(
        store, validated.tax_year, inputs.ni_category, inputs.pay_frequency
    )
    return NIStage(
        tax_stage=stage,
        ni=calculator.calculate(stage.pension_stage.pension.niable_pay_minor),
    )


def compute_student_loan(stage: NIStage, store: RateTableStore) -> StudentLoanStage:
    """Student loan repayments on annual NI-able pay.

    Raises:
        UnsupportedStudentLoanPlan: If the year has no terms for the plan.
    """
    pension_stage = stage.tax_stage.pension_stage
    validated = pension_stage.validated
    inputs = validated.inputs
    calculator = StudentLoanCalculator(store, validated.tax_year)
    repayments = calculator.repayments(
        inputs.student_loan_plan,
        pension_stage.annual_niable_pay_minor,
        inputs.pay_frequency,
        postgraduate_loan=inputs.postgraduate_loan,
    )
    return StudentLoanStage(ni_stage=stage, repayments=repayments)


def reconcile(stage: StudentLoanStage) -> PayBreakdown:
    """Assemble the breakdown and prove it balances.

    Raises:
        ReconciliationError: If any invariant fails. This is a defect.
    """
    ni_stage = stage.ni_stage
    tax_stage = ni_stage.tax_stage
    pension_stage = tax_stage.pension_stage
    validated = pension_stage.validated
    inputs = validated.inputs
    pension = pension_stage.pension
    annual_tax = tax_stage.tax.annual

    gross = validated.gross_minor
    student_loan = sum(repayment.amount_minor for repayment in stage.repayments)
    deductions = tax_stage.tax.tax_minor + ni_stage.ni.employee_minor + student_loan + pension.pension_minor
    net = gross - deductions

    breakdown = PayBreakdown(
        tax_year=validated.tax_year,
        pay_frequency=inputs.pay_frequency,
        gross_minor=gross,
        taxable_minor=pension.taxable_pay_minor,
        niable_minor=pension.niable_pay_minor,
        personal_allowance_minor=annual_tax.personal_allowance_minor,
        income_tax_minor=tax_stage.tax.tax_minor,
        ni_minor=ni_stage.ni.employee_minor,
        student_loan_minor=student_loan,
        pension_minor=pension.pension_minor,
        net_minor=net,
        employer_ni_minor=ni_stage.ni.employer_minor,
        pension_relief_at_source_minor=pension.relief_at_source_minor,
        tax_bands=annual_tax.bands,
        student_loans=stage.repayments,
    )

    failures: dict[str, int] = {}
    balance = (
        breakdown.net_minor
        + breakdown.income_tax_minor
        + breakdown.ni_minor
        + breakdown.student_loan_minor
        + breakdown.pension_minor
    )
    if balance != breakdown.gross_minor:
        failures["unbalanced_by_minor"] = breakdown.gross_minor - balance

    expected_taxable = gross - pension.pension_minor if inputs.pension_basis.reduces_taxable_pay else gross
    if breakdown.taxable_minor != expected_taxable:
        failures["taxable_minor"] = breakdown.taxable_minor - expected_taxable

    expected_niable = gross - pension.pension_minor if inputs.pension_basis.reduces_niable_pay else gross
    if breakdown.niable_minor != expected_niable:
        failures["niable_minor"] = breakdown.niable_minor - expected_niable

    band_total = sum(band.charge_minor for band in breakdown.tax_bands)
    if band_total != annual_tax.tax_minor:
        failures["tax_bands_minor"] = band_total - annual_tax.tax_minor

    for name in ("gross_minor", "ni_minor", "student_loan_minor", "pension_minor", "employer_ni_minor"):
        if getattr(breakdown, name) < 0:
            failures[name] = getattr(breakdown, name)

    if failures:
        raise ReconciliationError(
            f"Pay breakdown for {validated.tax_year} does not reconcile: {failures}",
            details=failures,
        )
    return breakdown


# =============================================================================
# Aggregator
# =============================================================================


class NetPayAggregator:
    """Single entry point for net pay calculations.

    Example:
        >>> from src.tax.loader import load_rate_table_store
        >>> aggregator = NetPayAggregator(load_rate_table_store())
        >>> aggregator.compute(Inputs(gross_annual_minor=3_000_000, tax_year="2025/26")).net_minor
        2511960
    """

    def __init__(self, store: RateTableStore) -> None:
        self.store = store

    def compute(self, inputs: Inputs) -> PayBreakdown:
        """Compute a reconciled pay breakdown for one pay period.

        Either returns a complete breakdown or raises; never a partial one.

        Raises:
            InvalidInput: If the inputs are malformed.
            ConfigurationError: If a rate table needed for the inputs is missing.
            ReconciliationError: If the result does not balance (a defect).
        """
        machine = PipelineStateMachine()
        with structlog.contextvars.bound_contextvars(tax_year=str(inputs.tax_year)):
            try:
                validated = validate_inputs(inputs, self.store)
                machine.run_validation()
                pension_stage = apply_pension(validated)
                machine.run_pension()
                tax_stage = compute_tax(pension_stage, self.store)
                machine.run_tax()
                ni_stage = compute_ni(tax_stage, self.store)
                machine.run_ni()
                student_loan_stage = compute_student_loan(ni_stage, self.store)
                machine.run_student_loan()
                breakdown = reconcile(student_loan_stage)
                machine.run_reconcile()
            except ReconciliationError as exc:
                machine.abort(reason=str(exc))
                logger.error(
                    "net_pay_reconciliation_failed",
                    details=exc.details,
                    reported=report_exception(exc),
                )
                raise
            except PayEngineError as exc:
                machine.abort(reason=str(exc))
                logger.info(
                    "net_pay_rejected",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise

            logger.debug(
                "net_pay_computed",
                pay_frequency=breakdown.pay_frequency.value,
                gross_minor=breakdown.gross_minor,
                net_minor=breakdown.net_minor,
            )
            return breakdown

    def compute_for_years(
        self, inputs: Inputs, tax_years: list[TaxYear | str]
    ) -> dict[TaxYear, PayBreakdown]:
        """Compute the same inputs under several tax years' rates."""
        results: dict[TaxYear, PayBreakdown] = {}
        for tax_year in tax_years:
            breakdown = self.compute(dataclasses.replace(inputs, tax_year=tax_year))
            results[breakdown.tax_year] = breakdown
        return results
