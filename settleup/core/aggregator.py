"""Fold expense and settlement history into one net balance per member."""

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

from settleup.core.records import Expense, Member, Settlement
from settleup.utils.constants import (
    RecordKind,
    SKIP_NON_POSITIVE_AMOUNT,
    SKIP_NO_PARTICIPANTS,
    SKIP_SELF_PAYMENT,
    SKIP_UNKNOWN_PARTICIPANT,
    SKIP_UNKNOWN_PAYER,
    SKIP_UNKNOWN_RECIPIENT,
    SKIP_UNKNOWN_SENDER,
)

logger = logging.getLogger(__name__)


class SkippedRecord(NamedTuple):
    """A record the aggregator ignored, and why."""
    kind: RecordKind
    record_id: Optional[int]
    reason: str


class AggregationResult(NamedTuple):
    balances: Dict[Member, int]
    skipped: List[SkippedRecord]


def check_expense(expense: Expense, members: Set[Member]) -> Optional[str]:
    """Return the reason an expense cannot be applied, or None."""
    if expense.amount <= 0:
        return SKIP_NON_POSITIVE_AMOUNT
    if not expense.participants:
        return SKIP_NO_PARTICIPANTS
    if expense.payer not in members:
        return SKIP_UNKNOWN_PAYER
    if not expense.participants <= members:
        return SKIP_UNKNOWN_PARTICIPANT
    return None


def check_settlement(settlement: Settlement, members: Set[Member]) -> Optional[str]:
    """Return the reason a settlement cannot be applied, or None."""
    if settlement.amount <= 0:
        return SKIP_NON_POSITIVE_AMOUNT
    if settlement.from_member == settlement.to_member:
        return SKIP_SELF_PAYMENT
    if settlement.from_member not in members:
        return SKIP_UNKNOWN_SENDER
    if settlement.to_member not in members:
        return SKIP_UNKNOWN_RECIPIENT
    return None


def expense_shares(expense: Expense) -> Dict[Member, int]:
    """
    Split an expense equally among its participants.

    When the amount does not divide evenly, the payer absorbs the leftover
    minor units; if the payer is not a participant, the participant with the
    smallest member id does.
    """
    base, remainder = divmod(expense.amount, len(expense.participants))
    shares = {member: base for member in sorted(expense.participants)}

    holder = expense.payer if expense.payer in shares else next(iter(shares))
    shares[holder] += remainder

    return shares


def aggregate_with_report(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        members: Iterable[Member]
) -> AggregationResult:
    """
    Calculate net balance for each member and report skipped records.

    Balance = total paid - total share + settlements sent - settlements received
    Positive balance = the group owes this member
    Negative balance = this member owes the group

    Args:
        expenses: Expense history of the group
        settlements: Confirmed settlements of the group
        members: Current group members; all of them appear in the result

    Returns:
        AggregationResult with the balances and the records that were ignored
    """
    known = set(members)
    balances: Dict[Member, int] = {member: 0 for member in sorted(known)}
    skipped: List[SkippedRecord] = []

    for expense in expenses:
        reason = check_expense(expense, known)
        if reason:
            skipped.append(SkippedRecord(RecordKind.EXPENSE, expense.id, reason))
            continue

        balances[expense.payer] += expense.amount
        for member, share in expense_shares(expense).items():
            balances[member] -= share

    for settlement in settlements:
        reason = check_settlement(settlement, known)
        if reason:
            skipped.append(SkippedRecord(RecordKind.SETTLEMENT, settlement.id, reason))
            continue

        # Debtor paid -> balance goes up; creditor received -> balance goes down
        balances[settlement.from_member] += settlement.amount
        balances[settlement.to_member] -= settlement.amount

    for record in skipped:
        logger.warning(f"Skipped {record.kind.value} {record.record_id}: {record.reason}")

    return AggregationResult(balances, skipped)


def aggregate(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        members: Iterable[Member]
) -> Dict[Member, int]:
    """Net balance per member, ignoring invalid records."""
    return aggregate_with_report(expenses, settlements, members).balances
