"""Per-member breakdowns and views built on the aggregator and minimizer."""

from typing import Iterable, List, Mapping, NamedTuple, Tuple

from settleup.core.aggregator import check_expense, check_settlement, expense_shares
from settleup.core.records import Expense, Member, Settlement, SettlementRequest, Transaction


class MemberBreakdown(NamedTuple):
    """How a member's net balance was reached."""
    member: Member
    total_paid: int
    total_share: int
    settled_paid: int
    settled_received: int

    @property
    def net(self) -> int:
        return self.total_paid - self.total_share + self.settled_paid - self.settled_received


class MemberView(NamedTuple):
    """What one member should do next."""
    member: Member
    balance: int
    to_pay: List[Transaction]
    to_receive: List[Transaction]
    requests_from_me: List[SettlementRequest]
    requests_to_me: List[SettlementRequest]


def member_breakdown(
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement],
        members: Iterable[Member]
) -> List[MemberBreakdown]:
    """
    Break every member's balance into paid, share and settled amounts.

    Uses the same split and skip rules as the aggregator, so each
    breakdown's ``net`` equals the member's aggregated balance.
    """
    known = set(members)
    paid = dict.fromkeys(known, 0)
    share = dict.fromkeys(known, 0)
    sent = dict.fromkeys(known, 0)
    received = dict.fromkeys(known, 0)

    for expense in expenses:
        if check_expense(expense, known):
            continue
        paid[expense.payer] += expense.amount
        for member, amount in expense_shares(expense).items():
            share[member] += amount

    for settlement in settlements:
        if check_settlement(settlement, known):
            continue
        sent[settlement.from_member] += settlement.amount
        received[settlement.to_member] += settlement.amount

    return [
        MemberBreakdown(member, paid[member], share[member], sent[member], received[member])
        for member in sorted(known)
    ]


def member_view(
        member: Member,
        balances: Mapping[Member, int],
        plan: Iterable[Transaction],
        pending: Iterable[SettlementRequest] = ()
) -> MemberView:
    """Filter a group's plan and pending requests down to one member."""
    plan = list(plan)
    pending = [r for r in pending if r.is_pending]

    return MemberView(
        member=member,
        balance=balances.get(member, 0),
        to_pay=[t for t in plan if t.from_member == member],
        to_receive=[t for t in plan if t.to_member == member],
        requests_from_me=[r for r in pending if r.from_member == member],
        requests_to_me=[r for r in pending if r.to_member == member],
    )


def owe_totals(member: Member, balances_by_group: Mapping[int, Mapping[Member, int]]) -> Tuple[int, int]:
    """
    Sum a member's position over several groups.

    Returns:
        Tuple of (total the member owes, total owed to the member)
    """
    owe = 0
    owed = 0
    for balances in balances_by_group.values():
        balance = balances.get(member, 0)
        if balance < 0:
            owe -= balance
        else:
            owed += balance
    return owe, owed


def total_spent(expenses: Iterable[Expense]) -> int:
    """Sum of all positive expense amounts."""
    return sum(e.amount for e in expenses if e.amount > 0)
