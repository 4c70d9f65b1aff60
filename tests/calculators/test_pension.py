"""Tests for pension contributions and their tax and NI treatment."""

import pytest

from src.calculators.pension import PensionContributionCalculator
from src.core.errors import InvalidInput
from src.tax.models import (
    FixedContribution,
    PayFrequency,
    PensionBasis,
    PercentageContribution,
)

FIVE_PERCENT = PercentageContribution(rate_permille=50)


class TestPensionBases:
    """Tests for what each basis does to taxable and NI-able pay."""

    @pytest.mark.parametrize(
        ("basis", "taxable", "niable"),
        [
            (PensionBasis.NET_PAY, 237_500, 237_500),
            (PensionBasis.SALARY_SACRIFICE, 237_500, 237_500),
            (PensionBasis.RELIEF_AT_SOURCE, 250_000, 250_000),
        ],
    )
    def test_pay_reductions(self, basis: PensionBasis, taxable: int, niable: int) -> None:
        result = PensionContributionCalculator(basis, FIVE_PERCENT).calculate(
            250_000, PayFrequency.MONTHLY
        )

        assert result.pension_minor == 12_500
        assert result.taxable_pay_minor == taxable
        assert result.niable_pay_minor == niable

    def test_relief_at_source_grossed_up(self) -> None:
        result = PensionContributionCalculator(
            PensionBasis.RELIEF_AT_SOURCE, FIVE_PERCENT
        ).calculate(250_000, PayFrequency.MONTHLY)

        # £125 net is £156.25 gross at 20% relief
        assert result.relief_at_source_minor == 3_125
        assert result.adjusted_net_income_minor == 250_000 - 12_500 - 3_125

    def test_relief_at_source_rate_from_tables(self) -> None:
        result = PensionContributionCalculator(
            PensionBasis.RELIEF_AT_SOURCE, FixedContribution(80_000), relief_at_source_rate_permille=400
        ).calculate(3_000_000)

        assert result.relief_at_source_minor == 53_333

    def test_net_pay_has_no_relief_top_up(self) -> None:
        result = PensionContributionCalculator(PensionBasis.NET_PAY, FIVE_PERCENT).calculate(
            3_000_000
        )

        assert result.relief_at_source_minor == 0
        assert result.adjusted_net_income_minor == result.taxable_pay_minor

    def test_none_basis_ignores_contribution(self) -> None:
        result = PensionContributionCalculator(PensionBasis.NONE, FIVE_PERCENT).calculate(
            3_000_000
        )

        assert result.pension_minor == 0
        assert result.taxable_pay_minor == 3_000_000
        assert result.niable_pay_minor == 3_000_000


class TestAnnualNIablePay:
    """Tests for the annual earnings student loans are measured on."""

    @pytest.mark.parametrize(
        ("basis", "expected"),
        [
            (PensionBasis.SALARY_SACRIFICE, 3_800_000),
            (PensionBasis.NET_PAY, 3_800_000),
            (PensionBasis.RELIEF_AT_SOURCE, 4_000_000),
            (PensionBasis.NONE, 4_000_000),
        ],
    )
    def test_percentage(self, basis: PensionBasis, expected: int) -> None:
        calculator = PensionContributionCalculator(basis, FIVE_PERCENT)

        assert calculator.annual_niable_pay(4_000_000) == expected

    def test_fixed_takes_the_whole_year(self) -> None:
        calculator = PensionContributionCalculator(
            PensionBasis.SALARY_SACRIFICE, FixedContribution(annual_amount_minor=120_001)
        )

        assert calculator.annual_niable_pay(3_000_000) == 2_879_999


class TestContributionFor:
    """Tests for resolving the contribution amount."""

    def test_percentage_rounds_down(self) -> None:
        calculator = PensionContributionCalculator(
            PensionBasis.NET_PAY, PercentageContribution(rate_permille=33)
        )

        assert calculator.contribution_for(100_001, PayFrequency.MONTHLY) == 3_300

    def test_fixed_spread_across_periods(self) -> None:
        calculator = PensionContributionCalculator(
            PensionBasis.SALARY_SACRIFICE, FixedContribution(annual_amount_minor=120_000)
        )

        assert calculator.contribution_for(250_000, PayFrequency.MONTHLY) == 10_000

    def test_fixed_exceeding_pay_rejected(self) -> None:
        calculator = PensionContributionCalculator(
            PensionBasis.NET_PAY, FixedContribution(annual_amount_minor=120_000)
        )

        with pytest.raises(InvalidInput, match="exceeds gross pay"):
            calculator.contribution_for(5_000, PayFrequency.MONTHLY)

    @pytest.mark.parametrize(
        "contribution",
        [PercentageContribution(rate_permille=1_001), FixedContribution(annual_amount_minor=-1)],
    )
    def test_malformed_contribution_rejected(self, contribution: object) -> None:
        calculator = PensionContributionCalculator(PensionBasis.NET_PAY, contribution)

        with pytest.raises(InvalidInput) as exc_info:
            calculator.contribution_for(250_000, PayFrequency.MONTHLY)

        assert exc_info.value.field == "pension_contribution"
