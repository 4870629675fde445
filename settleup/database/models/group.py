from typing import List

from sqlalchemy import BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settleup.database.base import Base, BigIntPK, TimestampMixin


class Group(Base, TimestampMixin):
    """A set of members sharing expenses."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    # Relationships
    members: Mapped[List["GroupMember"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name='{self.name}')>"


class GroupMember(Base, TimestampMixin):
    """Membership of a member id in a group."""

    __tablename__ = "group_members"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    member_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Relationships
    group: Mapped["Group"] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("group_id", "member_id", name="uq_group_member"),
    )

    def __repr__(self) -> str:
        return f"<GroupMember(group_id={self.group_id}, member_id='{self.member_id}')>"
