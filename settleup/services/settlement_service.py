"""Service for settlement requests and confirmed settlements."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from settleup.core import records
from settleup.core.exceptions import DuplicateRequestError, InvalidTransitionError, RequestNotFoundError
from settleup.core.workflow import confirm_request, open_request, reject_request
from settleup.database.models import AuditLog, Settlement, SettlementRequest
from settleup.database.session import with_storage_timeout
from settleup.utils.constants import AuditAction, ERR_REQUEST_NO_LONGER_VALID, RequestStatus

logger = logging.getLogger(__name__)


class SettlementService:
    """
    Storage-backed settlement request workflow.

    The pending-pair check before insert is advisory; the partial unique
    index on settlement_requests closes the race between two concurrent
    creates. The insert runs in a savepoint, so losing that race leaves the
    rest of the session's work intact. Confirm and reject only succeed through a conditional update
    on ``status = 'pending'``, so a request yields at most one settlement.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_request(
            self,
            group_id: int,
            from_member: str,
            to_member: str,
            amount: int,
            proof_ref: Optional[str] = None
    ) -> records.SettlementRequest:
        """
        Create a pending settlement request.

        Args:
            group_id: Group ID
            from_member: Member who pays
            to_member: Member who must confirm receipt
            amount: Amount in minor units
            proof_ref: Optional opaque reference to a proof of payment

        Returns:
            The pending request

        Raises:
            InvalidRequestError: amount is not positive or from == to
            DuplicateRequestError: a pending request exists for this pair
        """
        existing = await self._get_pending_pair(group_id, from_member, to_member)
        draft = open_request(
            existing,
            group_id=group_id,
            from_member=from_member,
            to_member=to_member,
            amount=amount,
            proof_ref=proof_ref
        )

        request = SettlementRequest(
            group_id=draft.group_id,
            from_member=draft.from_member,
            to_member=draft.to_member,
            amount=draft.amount,
            status=draft.status.value,
            created_at=draft.created_at,
            proof_ref=draft.proof_ref
        )

        # Savepoint: a lost race undoes this insert only, not the caller's transaction
        try:
            async with self.session.begin_nested():
                self.session.add(request)
                await with_storage_timeout(self.session.flush(), "create_request")
        except IntegrityError:
            # Lost the race against a concurrent create for the same pair
            raise DuplicateRequestError(group_id, from_member, to_member) from None

        await self._log_action(group_id, from_member, request.id, AuditAction.CREATE, new_data={
            "from": from_member,
            "to": to_member,
            "amount": amount,
        })

        logger.info(f"Request {request.id}: {from_member} -> {to_member} {amount} pending")
        return request.to_record()

    async def confirm_request(
            self,
            request_id: int,
            confirmed_by: str
    ) -> Tuple[records.SettlementRequest, records.Settlement]:
        """
        Confirm a pending request and record the settlement.

        Returns:
            Tuple of (confirmed request, new settlement)

        Raises:
            RequestNotFoundError: no such request
            InvalidTransitionError: not pending, wrong member, or resolved concurrently
        """
        current = await self.get_request(request_id)
        confirmed, draft = confirm_request(current, confirmed_by)

        await self._resolve(confirmed)

        settlement = Settlement(
            group_id=draft.group_id,
            from_member=draft.from_member,
            to_member=draft.to_member,
            amount=draft.amount,
            request_id=draft.request_id,
            confirmed_by=draft.confirmed_by,
            created_at=draft.created_at
        )
        self.session.add(settlement)
        await with_storage_timeout(self.session.flush(), "record_settlement")

        await self._log_action(confirmed.group_id, confirmed_by, request_id, AuditAction.CONFIRM, new_data={
            "settlement_id": settlement.id,
        })

        logger.info(f"Request {request_id} confirmed by {confirmed_by}; settlement {settlement.id}")
        return confirmed, settlement.to_record()

    async def reject_request(self, request_id: int, rejected_by: str) -> records.SettlementRequest:
        """
        Reject a pending request. No settlement is created.

        Raises:
            RequestNotFoundError: no such request
            InvalidTransitionError: not pending, wrong member, or resolved concurrently
        """
        current = await self.get_request(request_id)
        rejected = reject_request(current, rejected_by)

        await self._resolve(rejected)
        await self._log_action(rejected.group_id, rejected_by, request_id, AuditAction.REJECT)

        logger.info(f"Request {request_id} rejected by {rejected_by}")
        return rejected

    async def get_request(self, request_id: int) -> records.SettlementRequest:
        """Get a request by ID."""
        result = await with_storage_timeout(
            self.session.execute(
                select(SettlementRequest)
                .where(SettlementRequest.id == request_id)
                .execution_options(populate_existing=True)
            ),
            "get_request"
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(request_id)
        return request.to_record()

    async def get_pending_requests(
            self,
            group_id: int,
            member_id: Optional[str] = None
    ) -> List[records.SettlementRequest]:
        """Pending requests of a group, optionally only those sent by or to a member."""
        query = select(SettlementRequest).where(
            SettlementRequest.group_id == group_id,
            SettlementRequest.status == RequestStatus.PENDING.value
        )

        if member_id is not None:
            query = query.where(or_(
                SettlementRequest.from_member == member_id,
                SettlementRequest.to_member == member_id
            ))

        result = await with_storage_timeout(
            self.session.execute(query.order_by(SettlementRequest.id)),
            "get_pending_requests"
        )
        return [r.to_record() for r in result.scalars().all()]

    async def get_settlements(self, group_id: int) -> List[records.Settlement]:
        """Settlement history of a group, newest first."""
        result = await with_storage_timeout(
            self.session.execute(
                select(Settlement)
                .where(Settlement.group_id == group_id)
                .order_by(Settlement.created_at.desc(), Settlement.id.desc())
            ),
            "get_settlements"
        )
        return [s.to_record() for s in result.scalars().all()]

    async def _get_pending_pair(
            self,
            group_id: int,
            from_member: str,
            to_member: str
    ) -> List[records.SettlementRequest]:
        result = await with_storage_timeout(
            self.session.execute(
                select(SettlementRequest).where(
                    SettlementRequest.group_id == group_id,
                    SettlementRequest.from_member == from_member,
                    SettlementRequest.to_member == to_member,
                    SettlementRequest.status == RequestStatus.PENDING.value
                )
            ),
            "get_pending_pair"
        )
        return [r.to_record() for r in result.scalars().all()]

    async def _resolve(self, resolved: records.SettlementRequest):
        """Compare-and-swap the request out of pending."""
        result = await with_storage_timeout(
            self.session.execute(
                update(SettlementRequest)
                .where(
                    SettlementRequest.id == resolved.id,
                    SettlementRequest.status == RequestStatus.PENDING.value
                )
                .values(
                    status=resolved.status.value,
                    resolved_at=resolved.resolved_at,
                    resolved_by=resolved.resolved_by
                )
                .execution_options(synchronize_session=False)
            ),
            "resolve_request"
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(resolved.id, ERR_REQUEST_NO_LONGER_VALID)

    async def _log_action(
            self,
            group_id: int,
            member_id: str,
            request_id: int,
            action: AuditAction,
            new_data: Optional[dict] = None
    ):
        """Log an action to audit log."""
        self.session.add(AuditLog(
            group_id=group_id,
            member_id=member_id,
            entity_type="settlement_request",
            entity_id=request_id,
            action=action.value,
            new_data=new_data
        ))
