"""Database models for settleup."""

from settleup.database.models.group import Group, GroupMember
from settleup.database.models.expense import Expense, ExpenseParticipant
from settleup.database.models.settlement import Settlement, SettlementRequest
from settleup.database.models.audit import AuditLog

__all__ = [
    "Group",
    "GroupMember",
    "Expense",
    "ExpenseParticipant",
    "Settlement",
    "SettlementRequest",
    "AuditLog",
]
