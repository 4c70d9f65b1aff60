"""Pydantic models for rate table documents.

A rate table document is a YAML file holding every figure HMRC, DWP and the
Student Loans Company publish for one tax year. Money is written in pounds
and rates in percent, as published; the loader converts them to pence and
permille.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.tax.models import Jurisdiction, NICategory, StudentLoanPlan
from src.tax.year import TaxYear


class _DocumentModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BandModel(_DocumentModel):
    """One income tax band, bounds on taxable income (after allowance)."""

    lower: Decimal = Field(..., ge=0, description="Inclusive lower bound in pounds")
    upper: Decimal | None = Field(
        None, description="Exclusive upper bound in pounds; omit for the top band"
    )
    rate: Decimal = Field(..., ge=0, le=100, description="Rate in percent")


class IncomeTaxModel(_DocumentModel):
    """Income tax allowance and bands for one jurisdiction."""

    personal_allowance: Decimal = Field(..., ge=0)
    taper_start: Decimal = Field(..., ge=0)
    taper_rate: Decimal = Field(
        Decimal("50"), ge=0, le=100, description="Percent of excess income withdrawn"
    )
    taper_floor: Decimal = Field(Decimal("0"), ge=0)
    bands: list[BandModel] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_taper_floor(self) -> "IncomeTaxModel":
        if self.taper_floor > self.personal_allowance:
            raise ValueError("taper_floor cannot exceed personal_allowance")
        return self


class NIThresholdModel(_DocumentModel):
    """Employee Class 1 thresholds for one pay period length."""

    primary_threshold: Decimal = Field(..., ge=0)
    upper_earnings_limit: Decimal = Field(..., ge=0)
    rate_below_uel: Decimal = Field(..., ge=0, le=100)
    rate_above_uel: Decimal = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def check_threshold_order(self) -> "NIThresholdModel":
        if self.primary_threshold > self.upper_earnings_limit:
            raise ValueError("primary_threshold cannot exceed upper_earnings_limit")
        return self


class EmployerNIModel(_DocumentModel):
    """Employer Class 1 thresholds, annual figures."""

    secondary_threshold: Decimal = Field(..., ge=0)
    upper_secondary_threshold: Decimal = Field(..., ge=0)
    rate_below: Decimal = Field(..., ge=0, le=100)
    rate_above: Decimal = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def check_threshold_order(self) -> "EmployerNIModel":
        if self.secondary_threshold > self.upper_secondary_threshold:
            raise ValueError("secondary_threshold cannot exceed upper_secondary_threshold")
        return self


class NICategoryModel(_DocumentModel):
    """One NI category: annual figures plus any published period figures."""

    annual: NIThresholdModel
    employer: EmployerNIModel
    weekly: NIThresholdModel | None = None
    fortnightly: NIThresholdModel | None = None
    four_weekly: NIThresholdModel | None = None
    monthly: NIThresholdModel | None = None


class StudentLoanModel(_DocumentModel):
    """Repayment terms for one plan."""

    threshold: Decimal = Field(..., ge=0, description="Annual threshold in pounds")
    rate: Decimal = Field(..., ge=0, le=100)


class PensionModel(_DocumentModel):
    """Pension relief figures."""

    relief_at_source_rate: Decimal = Field(Decimal("20"), ge=0, lt=100)


class RateTableDocument(_DocumentModel):
    """A complete rate table document for one tax year."""

    tax_year: str = Field(..., description="Tax year, e.g. '2025/26'")
    source: str | None = Field(None, description="Where the figures were published")
    income_tax: dict[Jurisdiction, IncomeTaxModel] = Field(..., min_length=1)
    national_insurance: dict[NICategory, NICategoryModel] = Field(..., min_length=1)
    student_loan: dict[StudentLoanPlan, StudentLoanModel] = Field(default_factory=dict)
    pension: PensionModel = Field(default_factory=PensionModel)

    @field_validator("tax_year", mode="before")
    @classmethod
    def validate_tax_year(cls, v: object) -> str:
        """Normalise the tax year to '2025/26' form."""
        if not isinstance(v, str):
            raise ValueError("tax_year must be a string such as '2025/26'")
        return str(TaxYear.from_string(v))

    @field_validator("student_loan")
    @classmethod
    def reject_none_plan(
        cls, v: dict[StudentLoanPlan, StudentLoanModel]
    ) -> dict[StudentLoanPlan, StudentLoanModel]:
        if StudentLoanPlan.NONE in v:
            raise ValueError("student_loan cannot define terms for plan 'none'")
        return v
