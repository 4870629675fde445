"""Constants used throughout settleup."""

from enum import Enum


class RequestStatus(str, Enum):
    """Settlement request status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class AuditAction(str, Enum):
    """Audit log actions."""
    CREATE = "create"
    CONFIRM = "confirm"
    REJECT = "reject"


class RecordKind(str, Enum):
    """Kinds of records fed into the aggregator."""
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


# Currency symbols for display only
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "C$",
}

# Largest single amount accepted from user input, in major units
MAX_AMOUNT = 1_000_000

# Skip reasons reported by the aggregator
SKIP_NON_POSITIVE_AMOUNT = "amount must be positive"
SKIP_NO_PARTICIPANTS = "expense has no participants"
SKIP_UNKNOWN_PAYER = "payer is not a group member"
SKIP_UNKNOWN_PARTICIPANT = "participant is not a group member"
SKIP_UNKNOWN_SENDER = "sender is not a group member"
SKIP_UNKNOWN_RECIPIENT = "recipient is not a group member"
SKIP_SELF_PAYMENT = "sender and recipient are the same member"

# Error messages
ERR_INVALID_AMOUNT = "Invalid amount"
ERR_AMOUNT_NOT_POSITIVE = "Amount must be greater than zero"
ERR_AMOUNT_TOO_LARGE = f"Amount is too large (maximum {MAX_AMOUNT:,})"
ERR_AMOUNT_TOO_PRECISE = "Amount has more decimal places than the currency allows"
ERR_NO_PARTICIPANTS = "An expense needs at least one participant"
ERR_PAYER_NOT_MEMBER = "The payer is not a member of this group"
ERR_PARTICIPANT_NOT_MEMBER = "Every participant must be a member of this group"
ERR_SELF_PAYMENT = "Cannot send a settlement request to yourself"
ERR_REQUEST_NOT_FOUND = "Settlement request not found"
ERR_REQUEST_NO_LONGER_VALID = "Request no longer valid"
ERR_DUPLICATE_REQUEST = (
    "You already have a pending settlement request to this member. "
    "Wait for them to confirm or reject it first."
)
