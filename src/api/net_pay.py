"""Net pay calculation endpoints."""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator

from src.api.deps import get_aggregator, get_store
from src.core.config import settings
from src.core.errors import ConfigurationError, InvalidInput
from src.orchestration.aggregator import NetPayAggregator
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
from src.tax.money import minor_to_pounds
from src.tax.store import RateTableStore

router = APIRouter(prefix="/api", tags=["net-pay"])


class CumulativeRequest(BaseModel):
    """Year-to-date position for cumulative PAYE."""

    period_number: int = Field(ge=1)
    prior_cumulative_taxable_minor: int = Field(default=0, ge=0)
    prior_cumulative_tax_paid_minor: int = Field(default=0, ge=0)


class NetPayRequest(BaseModel):
    """Payload for a net pay calculation. All money is in pence."""

    gross_annual_minor: int = Field(strict=True)
    tax_year: str | None = None
    jurisdiction: Jurisdiction = Jurisdiction.REST_OF_UK
    ni_category: NICategory = NICategory.A
    pay_frequency: PayFrequency = PayFrequency.ANNUAL
    student_loan_plan: StudentLoanPlan = StudentLoanPlan.NONE
    postgraduate_loan: bool = False
    pension_basis: PensionBasis = PensionBasis.NONE
    pension_rate_permille: int | None = Field(default=None, strict=True)
    pension_annual_amount_minor: int | None = Field(default=None, strict=True)
    cumulative: CumulativeRequest | None = None

    @model_validator(mode="after")
    def _one_pension_amount(self) -> "NetPayRequest":
        if self.pension_rate_permille is not None and self.pension_annual_amount_minor is not None:
            raise ValueError(
                "Give either pension_rate_permille or pension_annual_amount_minor, not both"
            )
        return self

    def to_inputs(self) -> Inputs:
        """Map the payload onto engine inputs."""
        contribution: PercentageContribution | FixedContribution | None = None
        if self.pension_rate_permille is not None:
            contribution = PercentageContribution(self.pension_rate_permille)
        elif self.pension_annual_amount_minor is not None:
            contribution = FixedContribution(self.pension_annual_amount_minor)

        paye_mode: Cumulative | NonCumulative = NonCumulative()
        if self.cumulative is not None:
            paye_mode = Cumulative(**self.cumulative.model_dump())

        return Inputs(
            gross_annual_minor=self.gross_annual_minor,
            tax_year=self.tax_year or settings.default_tax_year,
            jurisdiction=self.jurisdiction,
            ni_category=self.ni_category,
            pay_frequency=self.pay_frequency,
            student_loan_plan=self.student_loan_plan,
            pension_basis=self.pension_basis,
            pension_contribution=contribution,
            postgraduate_loan=self.postgraduate_loan,
            paye_mode=paye_mode,
        )


class BandChargeResponse(BaseModel):
    """Annual income tax charged in one band."""

    lower_minor: int
    upper_minor: int | None
    rate_percent: Decimal
    taxed_minor: int
    charge_minor: int


class StudentLoanResponse(BaseModel):
    """One student loan plan's repayment for the period."""

    plan: str
    threshold_minor: int
    rate_permille: int
    amount_minor: int


class NetPayResponse(BaseModel):
    """Reconciled pay breakdown for one pay period."""

    tax_year: str
    pay_frequency: str
    gross_minor: int
    taxable_minor: int
    niable_minor: int
    personal_allowance_minor: int
    income_tax_minor: int
    ni_minor: int
    student_loan_minor: int
    pension_minor: int
    net_minor: int
    employer_ni_minor: int
    pension_relief_at_source_minor: int
    total_deductions_minor: int
    effective_tax_rate: Decimal
    gross_pounds: Decimal
    net_pounds: Decimal
    tax_bands: list[BandChargeResponse]
    student_loans: list[StudentLoanResponse]


class TaxYearsResponse(BaseModel):
    """Tax years with loaded rate tables, oldest first."""

    tax_years: list[str]
    default: str


def _to_net_pay_response(breakdown: PayBreakdown) -> NetPayResponse:
    """Map a breakdown onto the response model."""
    return NetPayResponse(
        tax_year=str(breakdown.tax_year),
        pay_frequency=breakdown.pay_frequency.value,
        gross_minor=breakdown.gross_minor,
        taxable_minor=breakdown.taxable_minor,
        niable_minor=breakdown.niable_minor,
        personal_allowance_minor=breakdown.personal_allowance_minor,
        income_tax_minor=breakdown.income_tax_minor,
        ni_minor=breakdown.ni_minor,
        student_loan_minor=breakdown.student_loan_minor,
        pension_minor=breakdown.pension_minor,
        net_minor=breakdown.net_minor,
        employer_ni_minor=breakdown.employer_ni_minor,
        pension_relief_at_source_minor=breakdown.pension_relief_at_source_minor,
        total_deductions_minor=breakdown.total_deductions_minor,
        effective_tax_rate=breakdown.effective_tax_rate,
        gross_pounds=minor_to_pounds(breakdown.gross_minor),
        net_pounds=minor_to_pounds(breakdown.net_minor),
        tax_bands=[
            BandChargeResponse(
                lower_minor=band.lower_minor,
                upper_minor=band.upper_minor,
                rate_percent=band.rate_percent,
                taxed_minor=band.taxed_minor,
                charge_minor=band.charge_minor,
            )
            for band in breakdown.tax_bands
        ],
        student_loans=[
            StudentLoanResponse(
                plan=repayment.plan.value,
                threshold_minor=repayment.threshold_minor,
                rate_permille=repayment.rate_permille,
                amount_minor=repayment.amount_minor,
            )
            for repayment in breakdown.student_loans
        ],
    )


@router.get("/tax-years", response_model=TaxYearsResponse)
async def list_tax_years(
    store: RateTableStore = Depends(get_store),
) -> TaxYearsResponse:
    """List the tax years that can be calculated."""
    return TaxYearsResponse(
        tax_years=[str(year) for year in store.tax_years()],
        default=settings.default_tax_year,
    )


@router.post("/net-pay", response_model=NetPayResponse)
async def calculate_net_pay(
    payload: NetPayRequest,
    aggregator: NetPayAggregator = Depends(get_aggregator),
) -> NetPayResponse:
    """Calculate take-home pay for one pay period.

    Malformed inputs give 422 and a tax year, jurisdiction, NI category or
    student loan plan without rate tables gives 404. A breakdown that fails
    to reconcile is a server fault and is left to surface as 500.
    """
    try:
        breakdown = aggregator.compute(payload.to_inputs())
    except InvalidInput as exc:
        raise HTTPException(
            status_code=422,
            detail={"field": exc.field, "message": str(exc)},
        ) from exc
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=404,
            detail=str(exc),
        ) from exc
    return _to_net_pay_response(breakdown)
