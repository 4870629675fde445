"""Settlement request state machine.

    pending -> confirmed   (by the recipient; creates one Settlement)
    pending -> rejected    (by the recipient; creates nothing)

Transitions are pure functions over records. ``SettlementBook`` applies them
to an in-memory collection under a lock; the storage-backed equivalent is
``settleup.services.settlement_service.SettlementService``.
"""

import itertools
import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from settleup.core.exceptions import (
    DuplicateRequestError,
    InvalidRequestError,
    InvalidTransitionError,
    RequestNotFoundError,
)
from settleup.core.records import Member, Settlement, SettlementRequest, utcnow
from settleup.utils.constants import ERR_AMOUNT_NOT_POSITIVE, ERR_SELF_PAYMENT, RequestStatus

logger = logging.getLogger(__name__)


def find_pending(
        requests: Iterable[SettlementRequest],
        group_id: int,
        from_member: Member,
        to_member: Member
) -> Optional[SettlementRequest]:
    """Return the pending request for an ordered pair, if any."""
    for request in requests:
        if (
                request.is_pending
                and request.group_id == group_id
                and request.from_member == from_member
                and request.to_member == to_member
        ):
            return request
    return None


def open_request(
        existing: Iterable[SettlementRequest],
        group_id: int,
        from_member: Member,
        to_member: Member,
        amount: int,
        proof_ref: Optional[str] = None,
        request_id: Optional[int] = None,
        now: Optional[datetime] = None
) -> SettlementRequest:
    """
    Create a pending settlement request.

    Args:
        existing: Known requests of the group, used for duplicate detection
        group_id: Group ID
        from_member: Member who pays
        to_member: Member who receives and must confirm
        amount: Amount in minor units
        proof_ref: Optional opaque reference to a proof of payment
        request_id: ID to assign, if the caller allocates IDs
        now: Creation time (default: current UTC time)

    Raises:
        InvalidRequestError: amount is not positive or the pair is a self-payment
        DuplicateRequestError: a pending request already exists for this pair
    """
    if amount <= 0:
        raise InvalidRequestError(ERR_AMOUNT_NOT_POSITIVE)
    if from_member == to_member:
        raise InvalidRequestError(ERR_SELF_PAYMENT)

    duplicate = find_pending(existing, group_id, from_member, to_member)
    if duplicate is not None:
        raise DuplicateRequestError(group_id, from_member, to_member, duplicate.id)

    return SettlementRequest(
        id=request_id,
        group_id=group_id,
        from_member=from_member,
        to_member=to_member,
        amount=amount,
        status=RequestStatus.PENDING,
        created_at=now or utcnow(),
        proof_ref=proof_ref
    )


def _check_resolvable(request: SettlementRequest, actor: Member):
    if not request.is_pending:
        raise InvalidTransitionError(request.id, f"request is already {request.status.value}")
    if actor != request.to_member:
        raise InvalidTransitionError(request.id, f"only {request.to_member} can resolve this request")


def confirm_request(
        request: SettlementRequest,
        confirmed_by: Member,
        settlement_id: Optional[int] = None,
        now: Optional[datetime] = None
) -> Tuple[SettlementRequest, Settlement]:
    """
    Confirm a pending request.

    Returns:
        Tuple of (confirmed request, the new settlement)

    Raises:
        InvalidTransitionError: request is not pending or actor is not the recipient
    """
    _check_resolvable(request, confirmed_by)
    now = now or utcnow()

    confirmed = request.model_copy(update={
        "status": RequestStatus.CONFIRMED,
        "resolved_at": now,
        "resolved_by": confirmed_by,
    })
    settlement = Settlement(
        id=settlement_id,
        group_id=request.group_id,
        from_member=request.from_member,
        to_member=request.to_member,
        amount=request.amount,
        request_id=request.id,
        confirmed_by=confirmed_by,
        created_at=now
    )
    return confirmed, settlement


def reject_request(
        request: SettlementRequest,
        rejected_by: Member,
        now: Optional[datetime] = None
) -> SettlementRequest:
    """
    Reject a pending request. No settlement is created and the sender may
    open a new request afterwards.

    Raises:
        InvalidTransitionError: request is not pending or actor is not the recipient
    """
    _check_resolvable(request, rejected_by)
    return request.model_copy(update={
        "status": RequestStatus.REJECTED,
        "resolved_at": now or utcnow(),
        "resolved_by": rejected_by,
    })


class SettlementBook:
    """In-memory settlement requests and settlement history of one group."""

    def __init__(
            self,
            group_id: int,
            settlements: Iterable[Settlement] = (),
            requests: Iterable[SettlementRequest] = ()
    ):
        self.group_id = group_id
        self._lock = threading.Lock()
        self._settlements: List[Settlement] = list(settlements)
        self._requests: Dict[int, SettlementRequest] = {}

        for request in requests:
            if request.id is None:
                raise ValueError("stored requests must have an id")
            self._requests[request.id] = request

        start = max(
            [r.id for r in self._requests.values()]
            + [s.id for s in self._settlements if s.id is not None]
            + [0]
        ) + 1
        self._ids = itertools.count(start)

    @property
    def settlements(self) -> Tuple[Settlement, ...]:
        with self._lock:
            return tuple(self._settlements)

    def get_request(self, request_id: int) -> SettlementRequest:
        with self._lock:
            return self._get(request_id)

    def pending_requests(self, member: Optional[Member] = None) -> List[SettlementRequest]:
        """Pending requests, optionally only those sent by or to a member."""
        with self._lock:
            return [
                r for r in self._requests.values()
                if r.is_pending and (member is None or member in (r.from_member, r.to_member))
            ]

    def create_request(
            self,
            from_member: Member,
            to_member: Member,
            amount: int,
            proof_ref: Optional[str] = None
    ) -> SettlementRequest:
        with self._lock:
            request = open_request(
                self._requests.values(),
                group_id=self.group_id,
                from_member=from_member,
                to_member=to_member,
                amount=amount,
                proof_ref=proof_ref,
                request_id=next(self._ids)
            )
            self._requests[request.id] = request

        logger.info(f"Request {request.id}: {from_member} -> {to_member} {amount} pending")
        return request

    def confirm(self, request_id: int, confirmed_by: Member) -> Tuple[SettlementRequest, Settlement]:
        with self._lock:
            confirmed, settlement = confirm_request(
                self._get(request_id),
                confirmed_by,
                settlement_id=next(self._ids)
            )
            self._requests[request_id] = confirmed
            self._settlements.append(settlement)

        logger.info(f"Request {request_id} confirmed by {confirmed_by}")
        return confirmed, settlement

    def reject(self, request_id: int, rejected_by: Member) -> SettlementRequest:
        with self._lock:
            rejected = reject_request(self._get(request_id), rejected_by)
            self._requests[request_id] = rejected

        logger.info(f"Request {request_id} rejected by {rejected_by}")
        return rejected

    def _get(self, request_id: int) -> SettlementRequest:
        try:
            return self._requests[request_id]
        except KeyError:
            raise RequestNotFoundError(request_id) from None
