"""Tests for the rate table store."""

from types import MappingProxyType

import pytest

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
    PersonalAllowance,
    RateTableSet,
    StudentLoanPlan,
)
from src.tax.store import RateTableStore
from src.tax.year import TaxYear


def _small_table_set(
    tax_year: TaxYear = TaxYear(2030, 2031),
    period_overrides: tuple = (),
) -> RateTableSet:
    employee = NIThresholdTable(
        primary_threshold_minor=1_200_000,
        upper_earnings_limit_minor=5_000_000,
        rate_below_uel_bp=1_000,
        rate_above_uel_bp=200,
    )
    employer = EmployerNIThresholdTable(
        secondary_threshold_minor=600_000,
        upper_secondary_threshold_minor=5_000_000,
        rate_below_bp=1_500,
        rate_above_bp=1_500,
    )
    return RateTableSet(
        tax_year=tax_year,
        income_tax=MappingProxyType(
            {
                Jurisdiction.REST_OF_UK: IncomeTaxTable(
                    jurisdiction=Jurisdiction.REST_OF_UK,
                    personal_allowance=PersonalAllowance(1_200_000, 10_000_000),
                    bands=BandTable.from_thresholds([(4_000_000, 200), (None, 400)]),
                )
            }
        ),
        national_insurance=MappingProxyType(
            {
                NICategory.A: NICategoryRecord(
                    category=NICategory.A,
                    annual=employee,
                    employer=employer,
                    period_overrides=period_overrides,
                )
            }
        ),
        student_loans=MappingProxyType({}),
    )


class TestRateTableStore:
    """Tests for lookups against bundled and hand-built tables."""

    def test_tax_years_sorted(self, store: RateTableStore) -> None:
        assert store.tax_years() == [TaxYear(2024, 2025), TaxYear(2025, 2026)]
        assert len(store) == 2

    @pytest.mark.parametrize("tax_year", ["2025/26", "2025-26", TaxYear(2025, 2026)])
    def test_contains(self, store: RateTableStore, tax_year: object) -> None:
        assert tax_year in store

    def test_contains_rejects_garbage(self, store: RateTableStore) -> None:
        assert "not a year" not in store
        assert 2025 not in store

    def test_unknown_tax_year(self, store: RateTableStore) -> None:
        with pytest.raises(UnknownTaxYear) as exc_info:
            store.get_rate_table_set("2030/31")

        assert exc_info.value.available == ["2024/25", "2025/26"]
        assert "not yet supported" in str(exc_info.value)

    def test_unparseable_tax_year(self, store: RateTableStore) -> None:
        with pytest.raises(InvalidInput) as exc_info:
            store.get_rate_table_set("soon")

        assert exc_info.value.field == "tax_year"

    def test_band_table(self, store: RateTableStore) -> None:
        bands = store.get_band_table("2025/26", Jurisdiction.SCOTLAND)

        assert [band.rate for band in bands.bands] == [190, 200, 210, 420, 450, 480]

    def test_wales_shares_rest_of_uk_bands(self, store: RateTableStore) -> None:
        assert store.get_band_table("2025/26", Jurisdiction.WALES) == store.get_band_table(
            "2025/26", Jurisdiction.REST_OF_UK
        )

    def test_unknown_jurisdiction(self) -> None:
        store = RateTableStore([_small_table_set()])

        with pytest.raises(UnknownJurisdiction, match="scotland"):
            store.get_income_tax_table("2030/31", Jurisdiction.SCOTLAND)

    def test_monthly_ni_thresholds_derived_by_floor(self, store: RateTableStore) -> None:
        thresholds = store.get_ni_thresholds("2025/26", NICategory.A, PayFrequency.MONTHLY)

        assert thresholds.primary_threshold_minor == 104_750
        assert thresholds.upper_earnings_limit_minor == 418_916
        assert thresholds.rate_below_uel_bp == 800

    def test_employer_thresholds(self, store: RateTableStore) -> None:
        monthly = store.get_employer_ni_thresholds("2025/26", NICategory.A, PayFrequency.MONTHLY)
        annual = store.get_employer_ni_thresholds("2024/25", NICategory.A, PayFrequency.ANNUAL)

        assert monthly.secondary_threshold_minor == 41_666
        assert annual.secondary_threshold_minor == 910_000
        assert annual.rate_below_bp == 1_380

    def test_published_period_thresholds_win(self) -> None:
        published = NIThresholdTable(
            primary_threshold_minor=23_100,
            upper_earnings_limit_minor=96_700,
            rate_below_uel_bp=1_000,
            rate_above_uel_bp=200,
        )
        store = RateTableStore(
            [_small_table_set(period_overrides=((PayFrequency.WEEKLY, published),))]
        )

        weekly = store.get_ni_thresholds("2030/31", NICategory.A, PayFrequency.WEEKLY)
        monthly = store.get_ni_thresholds("2030/31", NICategory.A, PayFrequency.MONTHLY)

        assert weekly == published
        assert monthly.primary_threshold_minor == 100_000

    def test_unsupported_ni_category(self) -> None:
        store = RateTableStore([_small_table_set()])

        with pytest.raises(UnsupportedNICategory, match="B"):
            store.get_ni_thresholds("2030/31", NICategory.B, PayFrequency.MONTHLY)

    @pytest.mark.parametrize("tax_year", ["2024/25", "2025/26"])
    def test_category_b_reduced_rate(self, store: RateTableStore, tax_year: str) -> None:
        thresholds = store.get_ni_thresholds(tax_year, NICategory.B, PayFrequency.ANNUAL)

        assert thresholds.rate_below_uel_bp == 185
        assert thresholds.rate_above_uel_bp == 200
        assert thresholds.band_table.scale == 10_000

    def test_student_loan_terms(self, store: RateTableStore) -> None:
        terms = store.get_student_loan_terms("2025/26", StudentLoanPlan.POSTGRADUATE)

        assert terms.threshold_minor == 2_100_000
        assert terms.rate_permille == 60

    def test_plan_5_not_in_2024_25(self, store: RateTableStore) -> None:
        with pytest.raises(UnsupportedStudentLoanPlan, match="plan_5"):
            store.get_student_loan_terms("2024/25", StudentLoanPlan.PLAN_5)

    def test_duplicate_tax_years_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            RateTableStore([_small_table_set(), _small_table_set()])
