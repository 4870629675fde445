"""Immutable records exchanged between the core and its host application.

Amounts are integer minor units. ``from``/``to`` are reserved words in
Python, so the payment endpoints are ``from_member``/``to_member`` with
``from``/``to`` aliases for documents coming from a store.
"""

from datetime import datetime, timezone
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field

from settleup.utils.constants import RequestStatus

Member = str


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Expense(_Record):
    """Money paid by one member on behalf of a set of participants."""

    id: Optional[int] = None
    group_id: int
    payer: Member
    amount: int
    participants: FrozenSet[Member]
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class Settlement(_Record):
    """A confirmed payment; never changed once created."""

    id: Optional[int] = None
    group_id: int
    from_member: Member = Field(alias="from")
    to_member: Member = Field(alias="to")
    amount: int
    request_id: Optional[int] = None
    confirmed_by: Optional[Member] = None
    created_at: datetime = Field(default_factory=utcnow)


class Transaction(_Record):
    """One suggested payment of a plan."""

    from_member: Member = Field(alias="from")
    to_member: Member = Field(alias="to")
    amount: int


class SettlementRequest(_Record):
    """A proposed payment waiting for the recipient to confirm or reject it."""

    id: Optional[int] = None
    group_id: int
    from_member: Member = Field(alias="from")
    to_member: Member = Field(alias="to")
    amount: int
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[Member] = None
    # Opaque handle to a proof-of-payment attachment (URI, storage key, ...)
    proof_ref: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
