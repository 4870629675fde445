"""Service for recording expenses."""

from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settleup.core.exceptions import InvalidExpenseError
from settleup.database.models import AuditLog, Expense, ExpenseParticipant, GroupMember
from settleup.database.session import with_storage_timeout
from settleup.utils.constants import (
    AuditAction,
    ERR_AMOUNT_NOT_POSITIVE,
    ERR_NO_PARTICIPANTS,
    ERR_PARTICIPANT_NOT_MEMBER,
    ERR_PAYER_NOT_MEMBER,
)


class ExpenseService:
    """Service for expense operations. Expenses are append-only."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_expense(
            self,
            group_id: int,
            payer_id: str,
            amount: int,
            participants: Iterable[str],
            description: str = ""
    ) -> Expense:
        """
        Create a new expense.

        Args:
            group_id: Group ID
            payer_id: Member who paid
            amount: Amount paid, in minor units
            participants: Members sharing the expense equally
            description: Expense description

        Returns:
            Created expense

        Raises:
            InvalidExpenseError: amount is not positive, there are no
                participants, or the payer or a participant is not a member
        """
        participant_ids = sorted(set(participants))
        await self._check_expense(group_id, payer_id, amount, participant_ids)

        expense = Expense(
            group_id=group_id,
            payer_id=payer_id,
            amount=amount,
            description=description,
            participants=[
                ExpenseParticipant(member_id=m) for m in participant_ids
            ]
        )

        self.session.add(expense)
        await with_storage_timeout(self.session.flush(), "create_expense")

        # Log creation
        self.session.add(AuditLog(
            group_id=group_id,
            member_id=payer_id,
            entity_type="expense",
            entity_id=expense.id,
            action=AuditAction.CREATE.value,
            new_data={
                "amount": amount,
                "description": description,
                "participants": participant_ids
            }
        ))

        return expense

    async def get_group_expenses(self, group_id: int) -> List[Expense]:
        """Get all expenses of a group, oldest first, with participants loaded."""
        result = await with_storage_timeout(
            self.session.execute(
                select(Expense)
                .where(Expense.group_id == group_id)
                .order_by(Expense.created_at, Expense.id)
                .options(selectinload(Expense.participants))
            ),
            "get_group_expenses"
        )
        return list(result.scalars().all())

    async def get_expense_summary(self, group_id: int) -> Dict:
        """
        Get expense summary for a group.

        Returns:
            Dict with:
            - total_amount: Total spent, in minor units
            - expense_count: Number of expenses
            - by_payer: Total paid per member
        """
        expenses = await self.get_group_expenses(group_id)

        by_payer: Dict[str, int] = {}
        for expense in expenses:
            by_payer[expense.payer_id] = by_payer.get(expense.payer_id, 0) + expense.amount

        return {
            "total_amount": sum(e.amount for e in expenses),
            "expense_count": len(expenses),
            "by_payer": by_payer
        }

    async def _check_expense(self, group_id: int, payer_id: str, amount: int, participant_ids: List[str]):
        if amount <= 0:
            raise InvalidExpenseError(ERR_AMOUNT_NOT_POSITIVE)
        if not participant_ids:
            raise InvalidExpenseError(ERR_NO_PARTICIPANTS)

        result = await with_storage_timeout(
            self.session.execute(
                select(GroupMember.member_id).where(GroupMember.group_id == group_id)
            ),
            "get_member_ids"
        )
        members = set(result.scalars().all())

        if payer_id not in members:
            raise InvalidExpenseError(ERR_PAYER_NOT_MEMBER)
        if not set(participant_ids) <= members:
            raise InvalidExpenseError(ERR_PARTICIPANT_NOT_MEMBER)
