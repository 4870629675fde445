import random

import pytest

from settleup.core.aggregator import aggregate
from settleup.core.exceptions import ConservationError
from settleup.core.minimizer import check_conservation, minimize, partition, settle_plan
from settleup.core.records import Expense, Settlement, Transaction

from tests.factories import random_history


def replay(plan, group_id=1):
    return [
        Settlement(group_id=group_id, from_member=t.from_member, to_member=t.to_member, amount=t.amount)
        for t in plan
    ]


def test_trip_plan(trip_expenses, members):
    balances, plan = settle_plan(trip_expenses, [], members)

    assert plan == [Transaction(from_member="alice", to_member="charlie", amount=10000)]
    assert balances["bob"] == -1


def test_already_settled():
    assert minimize({"a": 0, "b": 0}) == []


def test_balances_within_tolerance_are_settled():
    assert minimize({"a": 1, "b": -1}) == []
    assert minimize({"a": 1, "b": -1}, tolerance=0) == [
        Transaction(from_member="b", to_member="a", amount=1)
    ]


def test_balance_beyond_tolerance_is_planned():
    assert minimize({"a": 2, "b": -2}) == [Transaction(from_member="b", to_member="a", amount=2)]


def test_debt_spread_over_small_credits_is_left_unplanned():
    expenses = [
        Expense(group_id=1, payer="b", amount=2, participants=frozenset({"a", "b"})),
        Expense(group_id=1, payer="c", amount=2, participants=frozenset({"a", "c"})),
    ]
    balances, plan = settle_plan(expenses, [], ["a", "b", "c"])

    assert balances == {"a": -2, "b": 1, "c": 1}
    assert plan == []
    assert minimize(balances, tolerance=0) == [
        Transaction(from_member="a", to_member="b", amount=1),
        Transaction(from_member="a", to_member="c", amount=1),
    ]


def test_unbalanced_input_fails_before_planning():
    with pytest.raises(ConservationError) as exc_info:
        minimize({"a": 100, "b": -50})
    assert exc_info.value.imbalance == 50


def test_check_conservation_allows_tolerance():
    check_conservation({"a": 101, "b": -100}, tolerance=1)
    with pytest.raises(ConservationError):
        check_conservation({"a": 101, "b": -100}, tolerance=0)


def test_partition_sorts_largest_first_then_by_id():
    debtors, creditors = partition({"d": -50, "a": -100, "b": -100, "c": 250})

    assert debtors == [["a", 100], ["b", 100], ["d", 50]]
    assert creditors == [["c", 250]]


def test_ties_are_broken_by_member_id():
    plan = minimize({"b": -100, "a": -100, "c": 200})

    assert plan == [
        Transaction(from_member="a", to_member="c", amount=100),
        Transaction(from_member="b", to_member="c", amount=100),
    ]


def test_symmetric_pairs_use_minimum_payments():
    plan = minimize({"a": -50, "b": -50, "c": 50, "d": 50})

    assert plan == [
        Transaction(from_member="a", to_member="c", amount=50),
        Transaction(from_member="b", to_member="d", amount=50),
    ]


def test_same_plan_for_any_key_order():
    balances = {"a": -300, "b": 120, "c": -20, "d": 200, "e": 0}
    expected = minimize(balances)

    keys = list(balances)
    rng = random.Random(3)
    for _ in range(10):
        rng.shuffle(keys)
        assert minimize({k: balances[k] for k in keys}) == expected


def test_replaying_plan_settles_everyone():
    members = ["m1", "m2", "m3", "m4", "m5", "m6", "m7"]
    for seed in range(25):
        expenses, settlements = random_history(seed, members)
        balances = aggregate(expenses, settlements, members)
        plan = minimize(balances, tolerance=0)

        after = aggregate(expenses, settlements + replay(plan), members)
        assert all(b == 0 for b in after.values())


def test_plan_moves_exactly_the_total_debt():
    members = ["m1", "m2", "m3", "m4", "m5"]
    for seed in range(25):
        expenses, settlements = random_history(seed, members)
        balances = aggregate(expenses, settlements, members)
        plan = minimize(balances, tolerance=0)

        assert sum(t.amount for t in plan) == sum(-b for b in balances.values() if b < 0)
        for member, balance in balances.items():
            if balance < 0:
                assert sum(t.amount for t in plan if t.from_member == member) == -balance


def test_plan_is_short():
    members = [f"m{i}" for i in range(10)]
    for seed in range(25):
        expenses, settlements = random_history(seed, members)
        balances = aggregate(expenses, settlements, members)
        plan = minimize(balances, tolerance=0)

        nonzero = sum(1 for b in balances.values() if b != 0)
        assert len(plan) <= max(nonzero - 1, 0)
        assert all(t.amount > 0 for t in plan)
        assert all(t.from_member != t.to_member for t in plan)
