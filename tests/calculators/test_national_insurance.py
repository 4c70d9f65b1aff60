"""Tests for Class 1 National Insurance."""

from decimal import Decimal

import pytest

from src.calculators.national_insurance import NationalInsuranceCalculator
from src.core.errors import InvalidInput, UnknownTaxYear
from src.tax.models import NICategory, NIThresholdTable, PayFrequency
from src.tax.store import RateTableStore


def _annual(store: RateTableStore, category: NICategory, tax_year: str = "2025/26"):
    return NationalInsuranceCalculator.for_period(store, tax_year, category, PayFrequency.ANNUAL)


class TestEmployeeNI:
    """Tests for employee (primary) contributions."""

    @pytest.mark.parametrize(
        ("niable", "expected"),
        [
            (0, 0),
            (1_257_000, 0),
            (1_257_100, 8),
            (3_000_000, 139_440),
            (5_027_000, 301_600),
            (6_000_000, 301_600 + 19_460),
        ],
    )
    def test_category_a_annual(self, store: RateTableStore, niable: int, expected: int) -> None:
        assert _annual(store, NICategory.A).calculate(niable).employee_minor == expected

    @pytest.mark.parametrize(
        ("category", "expected"),
        [
            (NICategory.A, 321_060),
            # Married women's reduced rate: 1.85% up to the UEL
            (NICategory.B, 69_745 + 19_460),
            (NICategory.H, 321_060),
            (NICategory.M, 321_060),
            (NICategory.J, 94_860),
            (NICategory.Z, 94_860),
            (NICategory.C, 0),
            (NICategory.X, 0),
        ],
    )
    def test_categories_at_60k(
        self, store: RateTableStore, category: NICategory, expected: int
    ) -> None:
        assert _annual(store, category).calculate(6_000_000).employee_minor == expected

    def test_monthly(self, store: RateTableStore) -> None:
        calculator = NationalInsuranceCalculator.for_period(
            store, "2025/26", NICategory.A, PayFrequency.MONTHLY
        )

        result = calculator.calculate(250_000)

        assert result.employee_minor == 11_620
        assert result.employer_minor == 31_250
        assert [band.rate for band in result.bands] == [0, 800]

    def test_period_does_not_look_at_other_periods(self, store: RateTableStore) -> None:
        """A month below the threshold pays nothing, whatever the annual total."""
        calculator = NationalInsuranceCalculator.for_period(
            store, "2025/26", NICategory.A, PayFrequency.MONTHLY
        )

        assert calculator.calculate(104_750).employee_minor == 0

    def test_negative_pay_rejected(self, store: RateTableStore) -> None:
        with pytest.raises(InvalidInput):
            _annual(store, NICategory.A).calculate(-1)

    def test_without_employer_table(self) -> None:
        calculator = NationalInsuranceCalculator(
            NIThresholdTable(
                primary_threshold_minor=1_000,
                upper_earnings_limit_minor=5_000,
                rate_below_uel_bp=1_000,
                rate_above_uel_bp=100,
            )
        )

        result = calculator.calculate(6_000)

        assert result.employee_minor == 400 + 10
        assert result.employer_minor == 0


class TestEmployerNI:
    """Tests for employer (secondary) contributions."""

    @pytest.mark.parametrize(
        ("category", "tax_year", "expected"),
        [
            (NICategory.A, "2025/26", 825_000),
            (NICategory.B, "2025/26", 825_000),
            (NICategory.C, "2025/26", 825_000),
            # Under-21s, apprentices and veterans: relief up to the UST
            (NICategory.M, "2025/26", 145_950),
            (NICategory.H, "2025/26", 145_950),
            (NICategory.X, "2025/26", 0),
            (NICategory.A, "2024/25", 702_420),
        ],
    )
    def test_employer_at_60k(
        self, store: RateTableStore, category: NICategory, tax_year: str, expected: int
    ) -> None:
        result = _annual(store, category, tax_year).calculate(6_000_000)

        assert result.employer_minor == expected

    def test_employer_below_secondary_threshold(self, store: RateTableStore) -> None:
        assert _annual(store, NICategory.A).calculate(500_000).employer_minor == 0


def test_category_b_monthly_floors_in_basis_points(store: RateTableStore) -> None:
    calculator = NationalInsuranceCalculator.for_period(
        store, "2025/26", NICategory.B, PayFrequency.MONTHLY
    )

    result = calculator.calculate(250_000)

    # (250_000 - 104_750) * 1.85% = 2687.125p
    assert result.employee_minor == 2_687
    assert result.bands[-1].rate_percent == Decimal("1.85")


def test_unknown_tax_year(store: RateTableStore) -> None:
    with pytest.raises(UnknownTaxYear):
        _annual(store, NICategory.A, tax_year="2019/20")
