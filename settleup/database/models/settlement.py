from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from settleup.core import records
from settleup.database.base import Base, BigIntPK, TimestampMixin
from settleup.utils.constants import RequestStatus


class Settlement(Base, TimestampMixin):
    """Confirmed payment between two members. Insert-only."""

    __tablename__ = "settlements"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    from_member: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    to_member: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # minor units
    # One settlement per confirmed request
    request_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("settlement_requests.id", ondelete="SET NULL"),
        nullable=True,
        unique=True
    )
    confirmed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_settlement_amount_positive"),
    )

    def to_record(self) -> records.Settlement:
        return records.Settlement(
            id=self.id,
            group_id=self.group_id,
            from_member=self.from_member,
            to_member=self.to_member,
            amount=self.amount,
            request_id=self.request_id,
            confirmed_by=self.confirmed_by,
            created_at=self.created_at
        )

    def __repr__(self) -> str:
        return f"<Settlement(from={self.from_member}, to={self.to_member}, amount={self.amount})>"


class SettlementRequest(Base, TimestampMixin):
    """Proposed payment awaiting the recipient's confirmation."""

    __tablename__ = "settlement_requests"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    from_member: Mapped[str] = mapped_column(String(128), nullable=False)
    to_member: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # minor units
    status: Mapped[str] = mapped_column(
        String(20),
        default=RequestStatus.PENDING.value,
        nullable=False,
        index=True
    )  # pending, confirmed, rejected
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    proof_ref: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_request_amount_positive"),
        # At most one in-flight request per ordered pair
        Index(
            "uq_pending_request_pair",
            "group_id",
            "from_member",
            "to_member",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'")
        ),
    )

    def to_record(self) -> records.SettlementRequest:
        return records.SettlementRequest(
            id=self.id,
            group_id=self.group_id,
            from_member=self.from_member,
            to_member=self.to_member,
            amount=self.amount,
            status=RequestStatus(self.status),
            created_at=self.created_at,
            resolved_at=self.resolved_at,
            resolved_by=self.resolved_by,
            proof_ref=self.proof_ref
        )

    def __repr__(self) -> str:
        return (
            f"<SettlementRequest(id={self.id}, from={self.from_member}, "
            f"to={self.to_member}, status='{self.status}')>"
        )
