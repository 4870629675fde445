"""Formatters for displaying balances, plans and requests as text."""

from typing import Iterable, List, Mapping, Optional

from settleup.core.money import DEFAULT_DIGITS, from_minor
from settleup.core.records import Member, SettlementRequest, Transaction
from settleup.core.summary import MemberBreakdown
from settleup.utils.constants import CURRENCY_SYMBOLS, RequestStatus


def format_amount(minor: int, currency: str = "INR", digits: int = DEFAULT_DIGITS) -> str:
    """Format minor units with currency symbol, e.g. ``₹12.50``."""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if minor < 0 else ""
    return f"{sign}{symbol}{from_minor(abs(minor), digits)}"


def _name(member: Member, names: Optional[Mapping[Member, str]]) -> str:
    return (names or {}).get(member, member)


def format_balances(
        balances: Mapping[Member, int],
        names: Optional[Mapping[Member, str]] = None,
        currency: str = "INR",
        digits: int = DEFAULT_DIGITS
) -> str:
    """Format net balances, grouped into owes / is owed / settled."""
    debtors = sorted((m for m, b in balances.items() if b < 0), key=lambda m: (balances[m], m))
    creditors = sorted((m for m, b in balances.items() if b > 0), key=lambda m: (-balances[m], m))
    settled = sorted(m for m, b in balances.items() if b == 0)

    lines: List[str] = ["Balances"]

    if debtors:
        lines.append("")
        lines.append("Owes:")
        for member in debtors:
            lines.append(f"  • {_name(member, names)}: {format_amount(-balances[member], currency, digits)}")

    if creditors:
        lines.append("")
        lines.append("Is owed:")
        for member in creditors:
            lines.append(f"  • {_name(member, names)}: {format_amount(balances[member], currency, digits)}")

    if settled:
        lines.append("")
        lines.append("Settled:")
        for member in settled:
            lines.append(f"  • {_name(member, names)}")

    return "\n".join(lines)


def format_plan(
        plan: Iterable[Transaction],
        names: Optional[Mapping[Member, str]] = None,
        currency: str = "INR",
        digits: int = DEFAULT_DIGITS
) -> str:
    """Format a payment plan, one payment per line."""
    plan = list(plan)
    if not plan:
        return "All settled!"

    lines = ["Suggested payments"]
    for i, t in enumerate(plan, 1):
        lines.append(
            f"{i}. {_name(t.from_member, names)} → {_name(t.to_member, names)}: "
            f"{format_amount(t.amount, currency, digits)}"
        )
    return "\n".join(lines)


def format_request(
        request: SettlementRequest,
        names: Optional[Mapping[Member, str]] = None,
        currency: str = "INR",
        digits: int = DEFAULT_DIGITS
) -> str:
    """Format a single settlement request."""
    status_label = {
        RequestStatus.PENDING: "waiting for confirmation",
        RequestStatus.CONFIRMED: "confirmed",
        RequestStatus.REJECTED: "rejected",
    }

    message = (
        f"{_name(request.from_member, names)} → {_name(request.to_member, names)}: "
        f"{format_amount(request.amount, currency, digits)} ({status_label[request.status]})"
    )
    if request.proof_ref:
        message += " [proof attached]"
    return message


def format_breakdown(
        breakdowns: Iterable[MemberBreakdown],
        names: Optional[Mapping[Member, str]] = None,
        currency: str = "INR",
        digits: int = DEFAULT_DIGITS
) -> str:
    """Format the "how we calculated this" table."""
    lines = ["How we calculated this"]
    for b in breakdowns:
        lines.append("")
        lines.append(_name(b.member, names))
        lines.append(f"  Paid: {format_amount(b.total_paid, currency, digits)}")
        lines.append(f"  Share: {format_amount(b.total_share, currency, digits)}")
        if b.settled_paid:
            lines.append(f"  Settled (sent): {format_amount(b.settled_paid, currency, digits)}")
        if b.settled_received:
            lines.append(f"  Settled (received): {format_amount(b.settled_received, currency, digits)}")
        lines.append(f"  Net: {format_amount(b.net, currency, digits)}")
    return "\n".join(lines)
