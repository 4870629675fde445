import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from settleup.core.exceptions import (
    DuplicateRequestError,
    InvalidExpenseError,
    InvalidTransitionError,
    RequestNotFoundError,
    StorageTimeoutError,
)
from settleup.core.records import Transaction
from settleup.database import models
from settleup.database.models import AuditLog, SettlementRequest
from settleup.database.session import with_storage_timeout
from settleup.services import BalanceService, ExpenseService, GroupService, SettlementService
from settleup.utils.constants import (
    ERR_AMOUNT_NOT_POSITIVE,
    ERR_NO_PARTICIPANTS,
    ERR_PARTICIPANT_NOT_MEMBER,
    ERR_PAYER_NOT_MEMBER,
    RequestStatus,
    SKIP_UNKNOWN_PARTICIPANT,
)

EVERYONE = ["alice", "bob", "charlie"]


async def create_trip(session):
    group = await GroupService(session).create_group("Trip", "alice", members=["bob", "charlie"])
    expenses = ExpenseService(session)
    await expenses.create_expense(group.id, "alice", 10000, EVERYONE, "Hotel")
    await expenses.create_expense(group.id, "bob", 20000, EVERYONE, "Food")
    await expenses.create_expense(group.id, "charlie", 30000, EVERYONE, "Transport")
    return group


async def test_create_group_adds_creator_once(session):
    service = GroupService(session)
    group = await service.create_group("Flat", "bob", members=["alice", "bob", "alice"])

    assert await service.get_member_ids(group.id) == ["alice", "bob"]
    assert (await service.get_group(group.id)).name == "Flat"
    assert await service.get_group(group.id + 100) is None


async def test_add_member(session):
    service = GroupService(session)
    group = await service.create_group("Flat", "alice")

    assert await service.add_member(group.id, "bob") is True
    assert await service.add_member(group.id, "bob") is False
    assert await service.get_member_ids(group.id) == ["alice", "bob"]
    assert [g.id for g in await service.get_member_groups("bob")] == [group.id]


async def test_expense_summary(session):
    group = await create_trip(session)

    summary = await ExpenseService(session).get_expense_summary(group.id)

    assert summary == {
        "total_amount": 60000,
        "expense_count": 3,
        "by_payer": {"alice": 10000, "bob": 20000, "charlie": 30000},
    }


async def test_expense_creation_is_audited(session):
    group = await create_trip(session)

    logs = (await session.execute(
        select(AuditLog).where(AuditLog.group_id == group.id, AuditLog.entity_type == "expense")
    )).scalars().all()

    assert len(logs) == 3
    assert logs[0].new_data["participants"] == EVERYONE


@pytest.mark.parametrize("payer,amount,participants,reason", [
    ("alice", 0, ["alice", "bob"], ERR_AMOUNT_NOT_POSITIVE),
    ("alice", 1000, [], ERR_NO_PARTICIPANTS),
    ("zoe", 1000, ["alice", "bob"], ERR_PAYER_NOT_MEMBER),
    ("alice", 1000, ["alice", "zoe"], ERR_PARTICIPANT_NOT_MEMBER),
])
async def test_invalid_expense_is_rejected(session, payer, amount, participants, reason):
    group = await GroupService(session).create_group("Flat", "alice", members=["bob"])
    service = ExpenseService(session)

    with pytest.raises(InvalidExpenseError) as exc_info:
        await service.create_expense(group.id, payer, amount, participants)

    assert exc_info.value.reason == reason
    assert await service.get_group_expenses(group.id) == []


async def test_calculate_trip(session):
    group = await create_trip(session)

    result = await BalanceService(session, tolerance=1).calculate(group.id)

    assert result.balances == {"alice": -10000, "bob": -1, "charlie": 10001}
    assert result.plan == [Transaction(from_member="alice", to_member="charlie", amount=10000)]
    assert result.skipped == []


async def test_calculate_skips_stored_expense_with_non_member(session):
    group = await GroupService(session).create_group("Flat", "alice", members=["bob"])
    await ExpenseService(session).create_expense(group.id, "alice", 1000, ["alice", "bob"])

    # Written around the service, e.g. by an older client
    bad = models.Expense(
        group_id=group.id,
        payer_id="alice",
        amount=900,
        participants=[models.ExpenseParticipant(member_id=m) for m in ("alice", "zoe")]
    )
    session.add(bad)
    await session.flush()

    result = await BalanceService(session).calculate(group.id)

    assert result.balances == {"alice": 500, "bob": -500}
    assert [(s.record_id, s.reason) for s in result.skipped] == [(bad.id, SKIP_UNKNOWN_PARTICIPANT)]


async def test_request_lifecycle(session):
    group = await create_trip(session)
    settlements = SettlementService(session)

    request = await settlements.create_request(group.id, "alice", "charlie", 5000)
    assert request.status == RequestStatus.PENDING

    with pytest.raises(DuplicateRequestError):
        await settlements.create_request(group.id, "alice", "charlie", 3000)

    confirmed, settlement = await settlements.confirm_request(request.id, "charlie")
    assert confirmed.status == RequestStatus.CONFIRMED
    assert confirmed.resolved_by == "charlie"
    assert (settlement.from_member, settlement.to_member, settlement.amount) == ("alice", "charlie", 5000)
    assert settlement.request_id == request.id

    assert [s.id for s in await settlements.get_settlements(group.id)] == [settlement.id]
    assert (await settlements.get_request(request.id)).status == RequestStatus.CONFIRMED

    result = await BalanceService(session).calculate(group.id)
    assert result.balances == {"alice": -5000, "bob": -1, "charlie": 5001}
    assert result.plan == [Transaction(from_member="alice", to_member="charlie", amount=5000)]


async def test_confirm_twice_creates_one_settlement(session):
    group = await create_trip(session)
    service = SettlementService(session)
    request = await service.create_request(group.id, "alice", "charlie", 10000)

    await service.confirm_request(request.id, "charlie")
    with pytest.raises(InvalidTransitionError):
        await service.confirm_request(request.id, "charlie")

    assert len(await service.get_settlements(group.id)) == 1


async def test_confirm_from_stale_read_loses_compare_and_swap(session, monkeypatch):
    group = await create_trip(session)
    service = SettlementService(session)
    request = await service.create_request(group.id, "alice", "charlie", 10000)
    stale = await service.get_request(request.id)

    await service.confirm_request(request.id, "charlie")

    async def stale_get_request(request_id):
        return stale

    monkeypatch.setattr(service, "get_request", stale_get_request)

    with pytest.raises(InvalidTransitionError):
        await service.confirm_request(request.id, "charlie")
    with pytest.raises(InvalidTransitionError):
        await service.reject_request(request.id, "charlie")

    assert len(await service.get_settlements(group.id)) == 1


async def test_wrong_member_cannot_confirm(session):
    group = await create_trip(session)
    service = SettlementService(session)
    request = await service.create_request(group.id, "alice", "charlie", 10000)

    with pytest.raises(InvalidTransitionError):
        await service.confirm_request(request.id, "alice")
    with pytest.raises(InvalidTransitionError):
        await service.reject_request(request.id, "bob")

    assert (await service.get_request(request.id)).is_pending


async def test_reject_then_request_again(session):
    group = await create_trip(session)
    service = SettlementService(session)
    first = await service.create_request(group.id, "alice", "charlie", 10000)

    rejected = await service.reject_request(first.id, "charlie")
    assert rejected.status == RequestStatus.REJECTED
    assert await service.get_settlements(group.id) == []

    second = await service.create_request(group.id, "alice", "charlie", 9000, proof_ref="proofs/2.jpg")
    assert [r.id for r in await service.get_pending_requests(group.id)] == [second.id]
    assert (await service.get_request(second.id)).proof_ref == "proofs/2.jpg"


async def test_pending_requests_by_member(session):
    group = await create_trip(session)
    service = SettlementService(session)
    ac = await service.create_request(group.id, "alice", "charlie", 100)
    bc = await service.create_request(group.id, "bob", "charlie", 1)

    assert [r.id for r in await service.get_pending_requests(group.id, "alice")] == [ac.id]
    assert [r.id for r in await service.get_pending_requests(group.id, "charlie")] == [ac.id, bc.id]


async def test_unknown_request(session):
    with pytest.raises(RequestNotFoundError):
        await SettlementService(session).confirm_request(12345, "bob")


async def test_transitions_are_audited(session):
    group = await create_trip(session)
    service = SettlementService(session)
    request = await service.create_request(group.id, "alice", "charlie", 100)
    await service.confirm_request(request.id, "charlie")

    logs = (await session.execute(
        select(AuditLog)
        .where(AuditLog.entity_type == "settlement_request", AuditLog.entity_id == request.id)
        .order_by(AuditLog.id)
    )).scalars().all()

    assert [(log.action, log.member_id) for log in logs] == [("create", "alice"), ("confirm", "charlie")]


async def test_pending_pair_unique_index(session):
    group = await GroupService(session).create_group("Flat", "alice", members=["bob"])
    await session.commit()

    for amount in (100, 200):
        session.add(SettlementRequest(group_id=group.id, from_member="alice", to_member="bob", amount=amount))

    with pytest.raises(IntegrityError):
        await session.flush()
    await session.rollback()


async def test_concurrent_create_caught_by_unique_index(session, monkeypatch):
    group = await GroupService(session).create_group("Flat", "alice", members=["bob"])
    group_id = group.id
    service = SettlementService(session)
    await service.create_request(group_id, "alice", "bob", 100)
    await session.commit()

    # Simulate a second writer whose advisory check ran before the first insert
    async def nothing_pending(*args):
        return []

    monkeypatch.setattr(service, "_get_pending_pair", nothing_pending)

    with pytest.raises(DuplicateRequestError):
        await service.create_request(group_id, "alice", "bob", 200)

    assert len(await service.get_pending_requests(group_id)) == 1


async def test_lost_create_race_keeps_uncommitted_work(session, monkeypatch):
    group = await GroupService(session).create_group("Flat", "alice", members=["bob"])
    group_id = group.id
    await ExpenseService(session).create_expense(group_id, "alice", 1000, ["alice", "bob"], "Groceries")
    service = SettlementService(session)
    first = await service.create_request(group_id, "bob", "alice", 500)

    async def nothing_pending(*args):
        return []

    monkeypatch.setattr(service, "_get_pending_pair", nothing_pending)

    with pytest.raises(DuplicateRequestError):
        await service.create_request(group_id, "bob", "alice", 400)

    assert await GroupService(session).get_group(group_id) is not None
    assert len(await ExpenseService(session).get_group_expenses(group_id)) == 1
    assert [r.id for r in await service.get_pending_requests(group_id)] == [first.id]

    # The session is still usable for further writes
    await service.create_request(group_id, "alice", "bob", 100)
    await session.commit()
    assert len(await service.get_pending_requests(group_id)) == 2


async def test_member_view(session):
    group = await create_trip(session)
    await SettlementService(session).create_request(group.id, "alice", "charlie", 10000)

    view = await BalanceService(session).get_member_view(group.id, "alice")

    assert view.balance == -10000
    assert view.to_pay == [Transaction(from_member="alice", to_member="charlie", amount=10000)]
    assert len(view.requests_from_me) == 1


async def test_breakdown(session):
    group = await create_trip(session)

    rows = await BalanceService(session).get_breakdown(group.id)

    assert [(r.member, r.total_paid, r.total_share) for r in rows] == [
        ("alice", 10000, 20000),
        ("bob", 20000, 20001),
        ("charlie", 30000, 19999),
    ]


async def test_member_totals_across_groups(session):
    await create_trip(session)
    flat = await GroupService(session).create_group("Flat", "alice", members=["dave"])
    await ExpenseService(session).create_expense(flat.id, "alice", 3000, ["alice", "dave"])

    assert await BalanceService(session).get_member_totals("alice") == (10000, 1500)


async def test_storage_timeout_is_retryable():
    with pytest.raises(StorageTimeoutError) as exc_info:
        await with_storage_timeout(asyncio.sleep(1), "slow_query", timeout=0.01)

    assert exc_info.value.retryable is True
    assert exc_info.value.operation == "slow_query"
