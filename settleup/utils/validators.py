"""Validators for user input."""

from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from settleup.core.money import DEFAULT_DIGITS, to_minor
from settleup.utils.constants import (
    ERR_AMOUNT_NOT_POSITIVE,
    ERR_AMOUNT_TOO_LARGE,
    ERR_AMOUNT_TOO_PRECISE,
    ERR_INVALID_AMOUNT,
    MAX_AMOUNT,
)


def validate_amount(text: str, digits: int = DEFAULT_DIGITS) -> Tuple[bool, Optional[int], Optional[str]]:
    """
    Validate and parse amount from text.

    Args:
        text: User input text, in major units ("150.50", "1 200,5")
        digits: Minor-unit digits of the group's currency

    Returns:
        Tuple of (is_valid, amount in minor units, error_message)
    """
    # Remove spaces and replace comma with dot
    text = text.strip().replace(" ", "").replace(",", ".")

    # Try to parse as decimal
    try:
        amount = Decimal(text)
    except (InvalidOperation, ValueError):
        return False, None, ERR_INVALID_AMOUNT

    if not amount.is_finite():
        return False, None, ERR_INVALID_AMOUNT

    # Check if positive
    if amount <= 0:
        return False, None, ERR_AMOUNT_NOT_POSITIVE

    # Check if reasonable (not too large)
    if amount > MAX_AMOUNT:
        return False, None, ERR_AMOUNT_TOO_LARGE

    if amount.normalize().as_tuple().exponent < -digits:
        return False, None, ERR_AMOUNT_TOO_PRECISE

    return True, to_minor(amount, digits), None


def validate_description(description: str) -> Tuple[bool, Optional[str]]:
    """
    Validate expense description.

    Returns:
        Tuple of (is_valid, error_message)
    """
    description = description.strip()

    if not description:
        return False, "Description cannot be empty"

    if len(description) > 200:
        return False, "Description is too long (maximum 200 characters)"

    return True, None


def validate_proof_ref(proof_ref: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate a proof-of-payment reference.

    The reference is opaque and never interpreted; only blank and oversized
    values are refused.
    """
    if proof_ref is None:
        return True, None

    proof_ref = proof_ref.strip()
    if not proof_ref:
        return False, "Proof reference cannot be blank"

    if len(proof_ref) > 2048:
        return False, "Proof reference is too long"

    return True, None
