"""Marginal-rate band walker shared by income tax and National Insurance."""

from __future__ import annotations

from src.tax.models import BandCharge, BandTable
from src.tax.money import Minor, apply_rate


class BandedRateCalculator:
    """Charge an amount across an ordered band table.

    Each band takes ``min(amount, upper) - lower`` at its own rate, rounded
    down to the penny, and the band charges are summed. Upper bounds are
    exclusive, so an amount sitting exactly on a boundary is charged entirely
    in the lower band.

    The table was checked for contiguity when it was built, so a call does
    no validation and runs in O(number of bands).

    Example:
        >>> table = BandTable.from_thresholds([(3_770_000, 200), (None, 400)])
        >>> BandedRateCalculator(table).liability(4_000_000)
        846000
    """

    def __init__(self, table: BandTable) -> None:
        self.table = table

    def breakdown(self, amount_minor: Minor) -> tuple[BandCharge, ...]:
        """Charge in each band the amount reaches.

        Args:
            amount_minor: Amount to charge, in pence. Non-positive amounts
                reach no band.

        Returns:
            One BandCharge per band with a positive slice of the amount.
        """
        charges: list[BandCharge] = []
        if amount_minor <= 0:
            return ()

        for band in self.table.bands:
            if amount_minor <= band.lower_minor:
                break
            top = amount_minor if band.upper_minor is None else min(amount_minor, band.upper_minor)
            taxed = top - band.lower_minor
            if taxed <= 0:
                continue
            charges.append(
                BandCharge(
                    lower_minor=band.lower_minor,
                    upper_minor=band.upper_minor,
                    rate=band.rate,
                    scale=self.table.scale,
                    taxed_minor=taxed,
                    charge_minor=apply_rate(taxed, band.rate, self.table.scale),
                )
            )
        return tuple(charges)

    def liability(self, amount_minor: Minor) -> Minor:
        """Total charge on ``amount_minor``; 0 for non-positive amounts."""
        return sum(charge.charge_minor for charge in self.breakdown(amount_minor))
