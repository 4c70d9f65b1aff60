"""Compare two pay breakdowns, typically the same pay under two tax years."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from src.tax.models import PayBreakdown
from src.tax.money import Minor

COMPARED_FIELDS = (
    "gross_minor",
    "income_tax_minor",
    "ni_minor",
    "student_loan_minor",
    "pension_minor",
    "net_minor",
    "employer_ni_minor",
)


@dataclass(frozen=True)
class VarianceItem:
    """Variance item for a breakdown comparison.

    Attributes:
        field: Name of the breakdown field.
        current_minor: Current value in pence.
        prior_minor: Prior value in pence.
        difference_minor: ``current - prior``.
        variance_pct: Percentage change (absolute value).
        direction: Either "increase" or "decrease".
    """

    field: str
    current_minor: Minor
    prior_minor: Minor
    difference_minor: Minor
    variance_pct: Decimal
    direction: str


def compare_breakdowns(
    current: PayBreakdown,
    prior: PayBreakdown,
    threshold: Decimal = Decimal("0"),
) -> list[VarianceItem]:
    """Compare two breakdowns, flagging fields that moved by more than ``threshold``%.

    Breakdowns for different pay frequencies are not comparable.

    Args:
        current: The newer breakdown.
        prior: The breakdown to compare against.
        threshold: Percentage threshold for flagging (default 0: any change).

    Returns:
        List of VarianceItem for fields exceeding threshold.

    Raises:
        ValueError: If the breakdowns are for different pay frequencies.

    Example:
        >>> # £30,000 a year, no loan or pension: only the employer's NI moved
        >>> [v.field for v in compare_breakdowns(breakdown_2025_26, breakdown_2024_25)]
        ['employer_ni_minor']
    """
    if current.pay_frequency is not prior.pay_frequency:
        raise ValueError(
            f"Cannot compare {current.pay_frequency.value} pay with {prior.pay_frequency.value} pay"
        )

    variances: list[VarianceItem] = []
    for field_name in COMPARED_FIELDS:
        current_value = getattr(current, field_name)
        prior_value = getattr(prior, field_name)
        difference = current_value - prior_value
        if difference == 0:
            continue

        # Handle a new deduction (prior = 0)
        if prior_value == 0:
            variances.append(
                VarianceItem(
                    field=field_name,
                    current_minor=current_value,
                    prior_minor=prior_value,
                    difference_minor=difference,
                    variance_pct=Decimal("100"),
                    direction="increase" if difference > 0 else "decrease",
                )
            )
            continue

        variance_pct = abs(Decimal(difference)) / abs(Decimal(prior_value)) * Decimal("100")

        # Flag if exceeds threshold (must be greater than, not equal to)
        if variance_pct > threshold:
            variances.append(
                VarianceItem(
                    field=field_name,
                    current_minor=current_value,
                    prior_minor=prior_value,
                    difference_minor=difference,
                    variance_pct=variance_pct,
                    direction="increase" if difference > 0 else "decrease",
                )
            )

    return variances
