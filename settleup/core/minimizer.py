"""Turn net balances into a short list of payments."""

import logging
from typing import Dict, Iterable, List, Mapping, Tuple

from settleup.core.aggregator import aggregate
from settleup.core.exceptions import ConservationError
from settleup.core.records import Expense, Member, Settlement, Transaction

logger = logging.getLogger(__name__)

# One minor unit: absorbs the leftover of uneven equal splits
DEFAULT_TOLERANCE = 1


def check_conservation(balances: Mapping[Member, int], tolerance: int = DEFAULT_TOLERANCE):
    """Raise ConservationError unless the balances sum to zero within tolerance."""
    imbalance = sum(balances.values())
    if abs(imbalance) > tolerance:
        logger.error(f"Balances are off by {imbalance} minor units")
        raise ConservationError(imbalance)


def partition(
        balances: Mapping[Member, int],
        tolerance: int = DEFAULT_TOLERANCE
) -> Tuple[List[List], List[List]]:
    """
    Split members into debtors and creditors, largest first.

    Returns:
        (debtors, creditors) as lists of [member, remaining] with remaining
        positive; ties are ordered by member id
    """
    debtors = [[member, -bal] for member, bal in balances.items() if bal < -tolerance]
    creditors = [[member, bal] for member, bal in balances.items() if bal > tolerance]

    debtors.sort(key=lambda x: (-x[1], x[0]))
    creditors.sort(key=lambda x: (-x[1], x[0]))

    return debtors, creditors


def minimize(
        balances: Mapping[Member, int],
        tolerance: int = DEFAULT_TOLERANCE
) -> List[Transaction]:
    """
    Minimize number of transactions using greedy algorithm.

    Algorithm:
    1. Separate into debtors (negative balance) and creditors (positive)
    2. Match largest debtor with largest creditor
    3. Settle as much as possible
    4. Advance whichever side is paid off, repeat until a side runs out

    This is the usual practical heuristic. Finding the true minimum number
    of payments is NP-hard, so the plan is short but not always optimal.

    Payments of at most ``tolerance`` are not emitted. A member owing more
    than the tolerance in total can therefore end up with no payment when
    the debt would be spread over creditors who are each owed no more than
    the tolerance, e.g. {a: -2, b: 1, c: 1} with tolerance 1 gives [].
    The plan is always empty when every balance is within tolerance.

    Args:
        balances: Member -> balance in minor units, summing to zero
        tolerance: Balances and payments within this many minor units of
            zero are treated as settled

    Returns:
        Ordered list of payments

    Raises:
        ConservationError: balances do not sum to zero
    """
    check_conservation(balances, tolerance)

    debtors, creditors = partition(balances, tolerance)
    transactions = []

    i, j = 0, 0

    while i < len(debtors) and j < len(creditors):
        debtor, debt = debtors[i]
        creditor, credit = creditors[j]

        amount = min(debt, credit)

        if amount > tolerance:
            transactions.append(Transaction(from_member=debtor, to_member=creditor, amount=amount))

        debtors[i][1] -= amount
        creditors[j][1] -= amount

        # Move to next if settled
        if debtors[i][1] <= tolerance:
            i += 1
        if creditors[j][1] <= tolerance:
            j += 1

    return transactions


def settle_plan(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        members: Iterable[Member],
        tolerance: int = DEFAULT_TOLERANCE
) -> Tuple[Dict[Member, int], List[Transaction]]:
    """Aggregate a group's history and plan the payments that settle it."""
    balances = aggregate(expenses, settlements, members)
    return balances, minimize(balances, tolerance)
