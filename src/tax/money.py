"""Integer minor-unit (pence) arithmetic.

Every amount inside the engine is an ``int`` number of pence. Income tax and
student loan rates are ``int`` permille (200 == 20%); National Insurance rates
are ``int`` basis points (185 == 1.85%). The rounding rules live here and
nowhere else:

- applying a rate floors to the whole penny (``apply_rate``);
- splitting an annual figure across pay periods floors (``per_period``);
- converting published figures into pence must be exact, otherwise it fails.

Conversions to and from pounds exist only for the rate table loader and the
HTTP boundary.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNITS_PER_POUND = 100
PERMILLE = 1000
BASIS_POINTS = 10_000

#: Integer pence.
Minor = int


def pounds_to_minor(value: Decimal | int | str) -> Minor:
    """Convert an exact amount in pounds to pence.

    Args:
        value: Pounds as Decimal, int or a plain decimal string ("12570.00").

    Returns:
        The amount in pence.

    Raises:
        ValueError: If the value is not a number or has fractions of a penny.

    Example:
        >>> pounds_to_minor("12570")
        1257000
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Refusing to convert {type(value).__name__} to pence: {value!r}")
    try:
        amount = Decimal(value) * MINOR_UNITS_PER_POUND
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise ValueError(f"Amount {value!r} is not a whole number of pence")
    return int(amount)


def minor_to_pounds(amount: Minor) -> Decimal:
    """Convert pence to a two-decimal-place Decimal of pounds."""
    return (Decimal(amount) / MINOR_UNITS_PER_POUND).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def _scaled_rate(value: Decimal | int | str, scale: int, unit: str) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Refusing to convert {type(value).__name__} rate: {value!r}")
    try:
        rate = Decimal(value) * scale / 100
    except InvalidOperation as exc:
        raise ValueError(f"Not a rate: {value!r}") from exc
    if not rate.is_finite() or rate != rate.to_integral_value():
        raise ValueError(f"Rate {value!r}% is not a whole number of {unit}")
    return int(rate)


def percent_to_permille(value: Decimal | int | str) -> int:
    """Convert a percentage (e.g. ``"13.8"``) to integer permille (138).

    Raises:
        ValueError: If the percentage is not a whole number of permille.
    """
    return _scaled_rate(value, PERMILLE, "permille")


def percent_to_basis_points(value: Decimal | int | str) -> int:
    """Convert a percentage (e.g. ``"1.85"``) to integer basis points (185).

    Raises:
        ValueError: If the percentage is not a whole number of basis points.
    """
    return _scaled_rate(value, BASIS_POINTS, "basis points")


def apply_rate(amount: Minor, rate: int, scale: int) -> Minor:
    """Charge ``rate / scale`` on ``amount``, rounded down to the whole penny.

    Raises:
        ValueError: If the amount or rate is negative.
    """
    if amount < 0 or rate < 0:
        raise ValueError(f"apply_rate needs non-negative values, got {amount}, {rate}")
    return amount * rate // scale


def apply_permille(amount: Minor, permille: int) -> Minor:
    """Charge ``permille`` on ``amount``, rounded down to the whole penny."""
    return apply_rate(amount, permille, PERMILLE)


def per_period(amount: Minor, divisor: int) -> Minor:
    """Split a non-negative annual amount into one period, rounded down."""
    if divisor <= 0:
        raise ValueError(f"Divisor must be positive, got {divisor}")
    if amount < 0:
        raise ValueError(f"per_period needs a non-negative amount, got {amount}")
    return amount // divisor


def rate_to_percent(rate: int, scale: int) -> Decimal:
    """Render a scaled rate as a percentage Decimal (185, 10000 -> Decimal('1.85'))."""
    return Decimal(rate) * 100 / scale
