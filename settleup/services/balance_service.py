"""Service for calculating balances and payment plans."""

import logging
from typing import Dict, List, NamedTuple, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settleup.config.settings import settings
from settleup.core.aggregator import SkippedRecord, aggregate_with_report
from settleup.core.minimizer import minimize
from settleup.core.records import Expense, Member, Settlement, SettlementRequest, Transaction
from settleup.core.summary import MemberBreakdown, MemberView, member_breakdown, member_view, owe_totals
from settleup.database import models
from settleup.database.session import with_storage_timeout
from settleup.utils.constants import RequestStatus

logger = logging.getLogger(__name__)


class GroupSnapshot(NamedTuple):
    """Read-only view of a group's history at one point in time."""
    group_id: int
    members: List[Member]
    expenses: List[Expense]
    settlements: List[Settlement]
    pending: List[SettlementRequest]


class GroupBalances(NamedTuple):
    group_id: int
    balances: Dict[Member, int]
    plan: List[Transaction]
    skipped: List[SkippedRecord]


class BalanceService:
    """Service for balance calculations."""

    def __init__(self, session: AsyncSession, tolerance: int | None = None):
        self.session = session
        self.tolerance = settings.settle_tolerance if tolerance is None else tolerance

    async def load_snapshot(self, group_id: int) -> GroupSnapshot:
        """Fetch members, expenses, settlements and pending requests of a group."""
        return await with_storage_timeout(self._load_snapshot(group_id), "load_snapshot")

    async def calculate(self, group_id: int) -> GroupBalances:
        """
        Calculate who owes whom and by how much.

        1. Aggregate the group's history into one net balance per member
        2. Check that the balances sum to zero
        3. Match debtors with creditors to minimize transactions

        Args:
            group_id: Group ID

        Returns:
            GroupBalances with balances, the payment plan and skipped records

        Raises:
            ConservationError: the snapshot is inconsistent; re-fetch it
            StorageTimeoutError: the database did not answer in time
        """
        snapshot = await self.load_snapshot(group_id)
        return self._calculate(snapshot)

    async def get_breakdown(self, group_id: int) -> List[MemberBreakdown]:
        """Per-member paid / share / settled amounts."""
        snapshot = await self.load_snapshot(group_id)
        return member_breakdown(snapshot.expenses, snapshot.settlements, snapshot.members)

    async def get_member_view(self, group_id: int, member_id: Member) -> MemberView:
        """Balance, planned payments and pending requests of one member."""
        snapshot = await self.load_snapshot(group_id)
        result = self._calculate(snapshot)
        return member_view(member_id, result.balances, result.plan, snapshot.pending)

    async def get_member_totals(self, member_id: Member) -> Tuple[int, int]:
        """
        Sum a member's position over all their groups.

        Returns:
            Tuple of (total the member owes, total owed to the member)
        """
        result = await with_storage_timeout(
            self.session.execute(
                select(models.GroupMember.group_id)
                .where(models.GroupMember.member_id == member_id)
                .order_by(models.GroupMember.group_id)
            ),
            "get_member_groups"
        )

        balances_by_group = {}
        for group_id in result.scalars().all():
            snapshot = await self.load_snapshot(group_id)
            balances_by_group[group_id] = aggregate_with_report(
                snapshot.expenses, snapshot.settlements, snapshot.members
            ).balances

        return owe_totals(member_id, balances_by_group)

    def _calculate(self, snapshot: GroupSnapshot) -> GroupBalances:
        balances, skipped = aggregate_with_report(
            snapshot.expenses, snapshot.settlements, snapshot.members
        )
        if skipped:
            logger.warning(f"Group {snapshot.group_id}: {len(skipped)} records skipped")

        plan = minimize(balances, self.tolerance)
        logger.info(f"Group {snapshot.group_id}: {len(plan)} payments settle all balances")

        return GroupBalances(snapshot.group_id, balances, plan, skipped)

    async def _load_snapshot(self, group_id: int) -> GroupSnapshot:
        members = await self.session.execute(
            select(models.GroupMember.member_id)
            .where(models.GroupMember.group_id == group_id)
            .order_by(models.GroupMember.member_id)
        )

        expenses = await self.session.execute(
            select(models.Expense)
            .where(models.Expense.group_id == group_id)
            .order_by(models.Expense.id)
            .options(selectinload(models.Expense.participants))
        )

        settlements = await self.session.execute(
            select(models.Settlement)
            .where(models.Settlement.group_id == group_id)
            .order_by(models.Settlement.id)
        )

        pending = await self.session.execute(
            select(models.SettlementRequest)
            .where(
                models.SettlementRequest.group_id == group_id,
                models.SettlementRequest.status == RequestStatus.PENDING.value
            )
            .order_by(models.SettlementRequest.id)
        )

        return GroupSnapshot(
            group_id=group_id,
            members=list(members.scalars().all()),
            expenses=[e.to_record() for e in expenses.scalars().all()],
            settlements=[s.to_record() for s in settlements.scalars().all()],
            pending=[r.to_record() for r in pending.scalars().all()],
        )
