from sqlalchemy import BigInteger, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from settleup.database.base import Base, BigIntPK, TimestampMixin


class AuditLog(Base, TimestampMixin):
    """Audit log for tracking writes to expenses and settlement requests."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)
    member_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # create, confirm, reject
    old_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(entity_type='{self.entity_type}', action='{self.action}', entity_id={self.entity_id})>"
