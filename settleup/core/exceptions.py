"""Errors raised by the settleup core and storage layer."""

from settleup.utils.constants import ERR_DUPLICATE_REQUEST, ERR_REQUEST_NOT_FOUND


class SettleUpError(Exception):
    """Base class for settleup errors."""


class ConservationError(SettleUpError):
    """Balances do not sum to zero; the snapshot is inconsistent."""

    def __init__(self, imbalance: int):
        self.imbalance = imbalance
        super().__init__(
            f"Balances do not sum to zero (off by {imbalance} minor units); "
            f"re-fetch the group snapshot before planning payments"
        )


class StorageTimeoutError(SettleUpError):
    """The storage collaborator did not answer in time."""

    retryable = True

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Storage operation '{operation}' timed out after {timeout}s")


class InvalidExpenseError(SettleUpError):
    """An expense cannot be recorded as given."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class WorkflowError(SettleUpError):
    """Base class for settlement request workflow errors."""


class InvalidRequestError(WorkflowError):
    """A settlement request cannot be created with these arguments."""


class DuplicateRequestError(WorkflowError):
    """A pending request already exists for the same ordered pair."""

    def __init__(self, group_id: int, from_member: str, to_member: str, existing_id: int | None = None):
        self.group_id = group_id
        self.from_member = from_member
        self.to_member = to_member
        self.existing_id = existing_id
        super().__init__(f"{ERR_DUPLICATE_REQUEST} ({from_member} -> {to_member}, group {group_id})")


class RequestNotFoundError(WorkflowError):
    """No settlement request with the given id."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"{ERR_REQUEST_NOT_FOUND}: {request_id}")


class InvalidTransitionError(WorkflowError):
    """The request is not pending, or the actor is not allowed to resolve it."""

    def __init__(self, request_id: int | None, reason: str):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Settlement request {request_id} cannot be resolved: {reason}")
