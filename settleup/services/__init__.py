"""Services package."""

from settleup.services.group_service import GroupService
from settleup.services.expense_service import ExpenseService
from settleup.services.balance_service import BalanceService, GroupBalances, GroupSnapshot
from settleup.services.settlement_service import SettlementService

__all__ = [
    "GroupService",
    "ExpenseService",
    "BalanceService",
    "GroupBalances",
    "GroupSnapshot",
    "SettlementService",
]
