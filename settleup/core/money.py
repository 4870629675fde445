"""Conversion between display amounts and integer minor units."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Cents, paise, ...
DEFAULT_DIGITS = 2


def _quantum(digits: int) -> Decimal:
    return Decimal(1).scaleb(-digits)


def to_minor(amount: Union[Decimal, str, int], digits: int = DEFAULT_DIGITS) -> int:
    """
    Convert a display amount to minor units.

    Args:
        amount: Amount in major units (e.g. Decimal("12.50"))
        digits: Number of minor-unit digits of the currency

    Returns:
        Amount in minor units, rounded half up
    """
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    return int(value.quantize(_quantum(digits), rounding=ROUND_HALF_UP).scaleb(digits))


def from_minor(minor: int, digits: int = DEFAULT_DIGITS) -> Decimal:
    """Convert minor units back to a display amount."""
    return (Decimal(minor).scaleb(-digits)).quantize(_quantum(digits))
