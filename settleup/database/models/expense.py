from typing import List

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settleup.core import records
from settleup.database.base import Base, BigIntPK, TimestampMixin


class Expense(Base, TimestampMixin):
    """Expense paid by one member and split equally among participants."""

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    payer_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # minor units
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    participants: Mapped[List["ExpenseParticipant"]] = relationship(
        back_populates="expense",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_expense_amount_positive"),
        Index("idx_group_expense", "group_id", "created_at"),
    )

    def to_record(self) -> records.Expense:
        return records.Expense(
            id=self.id,
            group_id=self.group_id,
            payer=self.payer_id,
            amount=self.amount,
            participants=frozenset(p.member_id for p in self.participants),
            description=self.description,
            created_at=self.created_at
        )

    def __repr__(self) -> str:
        return f"<Expense(id={self.id}, amount={self.amount}, description='{self.description}')>"


class ExpenseParticipant(Base):
    """A member sharing an expense."""

    __tablename__ = "expense_participants"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    expense_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    member_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Relationships
    expense: Mapped["Expense"] = relationship(back_populates="participants")

    __table_args__ = (
        UniqueConstraint("expense_id", "member_id", name="uq_expense_participant"),
    )

    def __repr__(self) -> str:
        return f"<ExpenseParticipant(expense_id={self.expense_id}, member_id='{self.member_id}')>"
