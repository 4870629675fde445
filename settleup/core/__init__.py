"""Pure balance, plan and settlement request logic."""

from settleup.core.aggregator import AggregationResult, SkippedRecord, aggregate, aggregate_with_report
from settleup.core.exceptions import (
    ConservationError,
    DuplicateRequestError,
    InvalidExpenseError,
    InvalidRequestError,
    InvalidTransitionError,
    RequestNotFoundError,
    SettleUpError,
    StorageTimeoutError,
    WorkflowError,
)
from settleup.core.minimizer import minimize, settle_plan
from settleup.core.records import Expense, Member, Settlement, SettlementRequest, Transaction
from settleup.core.workflow import SettlementBook, confirm_request, open_request, reject_request

__all__ = [
    "AggregationResult",
    "SkippedRecord",
    "aggregate",
    "aggregate_with_report",
    "ConservationError",
    "DuplicateRequestError",
    "InvalidExpenseError",
    "InvalidRequestError",
    "InvalidTransitionError",
    "RequestNotFoundError",
    "SettleUpError",
    "StorageTimeoutError",
    "WorkflowError",
    "minimize",
    "settle_plan",
    "Expense",
    "Member",
    "Settlement",
    "SettlementRequest",
    "Transaction",
    "SettlementBook",
    "confirm_request",
    "open_request",
    "reject_request",
]
