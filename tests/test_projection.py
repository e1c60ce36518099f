from datetime import date
from decimal import Decimal

import pytest

from cashflow.core.errors import InvalidWindow, NoAnchorSnapshot
from cashflow.core.models import (
    BalanceSnapshot,
    MinimumBalance,
    OneTimeTransaction,
    RecurringTransaction,
)
from cashflow.projection import (
    project,
    project_from_estimate,
    roll_forward,
    select_anchor,
)


@pytest.fixture
def scenario(at):
    snapshots = [
        BalanceSnapshot(date=date(2025, 1, 13), balance=Decimal("10000"), created_at=at(0))
    ]
    recurring = [
        RecurringTransaction(
            description="Netflix", amount=Decimal("-15"), day_of_month=14, created_at=at(1)
        ),
        RecurringTransaction(
            description="Salary", amount=Decimal("5000"), day_of_month=1, created_at=at(2)
        ),
    ]
    one_time = [
        OneTimeTransaction(
            description="Transfer", amount=Decimal("2000"), date=date(2025, 1, 28), created_at=at(3)
        )
    ]
    return snapshots, recurring, one_time


def test_netflix_salary_transfer_scenario(scenario):
    snapshots, recurring, one_time = scenario
    result = project(date(2025, 1, 13), 20, snapshots, recurring, one_time)

    # The 20-day window ends before 2 February, so the salary on the 1st is in.
    assert [(r.date, r.description, r.amount, r.balance_after) for r in result.ledger] == [
        (date(2025, 1, 14), "Netflix", Decimal("-15"), Decimal("9985")),
        (date(2025, 1, 28), "Transfer", Decimal("2000"), Decimal("11985")),
        (date(2025, 2, 1), "Salary", Decimal("5000"), Decimal("16985")),
    ]
    assert result.minimum == MinimumBalance(balance=Decimal("9985"), date=date(2025, 1, 14))
    assert result.period_total == Decimal("6985")
    assert result.ledger[1].is_one_time is True
    assert result.ledger[0].is_one_time is False


def test_period_total_matches_running_balance(scenario):
    snapshots, recurring, one_time = scenario
    result = project(date(2025, 1, 13), 90, snapshots, recurring, one_time)
    assert result.ledger[-1].balance_after - result.anchor.balance == result.period_total
    assert result.closing_balance == result.ledger[-1].balance_after


def test_ledger_is_sorted_by_date(scenario):
    snapshots, recurring, one_time = scenario
    result = project(date(2025, 1, 13), 120, snapshots, recurring, one_time)
    dates = [r.date for r in result.ledger]
    assert dates == sorted(dates)


def test_zero_days_gives_empty_ledger(scenario):
    snapshots, recurring, one_time = scenario
    result = project(date(2025, 1, 13), 0, snapshots, recurring, one_time)
    assert result.ledger == []
    assert result.period_total == Decimal("0")
    assert result.minimum == MinimumBalance(balance=Decimal("10000"), date=date(2025, 1, 13))
    assert result.closing_balance == Decimal("10000")


def test_negative_days_is_rejected(scenario):
    snapshots, recurring, one_time = scenario
    with pytest.raises(InvalidWindow):
        project(date(2025, 1, 13), -1, snapshots, recurring, one_time)


def test_missing_anchor_is_rejected(scenario):
    snapshots, recurring, one_time = scenario
    with pytest.raises(NoAnchorSnapshot):
        project(date(2025, 1, 12), 30, snapshots, recurring, one_time)
    with pytest.raises(NoAnchorSnapshot):
        project(date(2025, 1, 12), 30, [], recurring, one_time)


def test_anchor_is_latest_snapshot_not_after_start(at):
    older = BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("1"), created_at=at(5))
    newer = BalanceSnapshot(date=date(2025, 1, 10), balance=Decimal("2"), created_at=at(0))
    future = BalanceSnapshot(date=date(2025, 2, 1), balance=Decimal("3"), created_at=at(0))
    assert select_anchor([future, newer, older], date(2025, 1, 15)) is newer
    assert select_anchor([future, newer, older], date(2025, 1, 9)) is older


def test_same_date_snapshots_resolve_to_latest_created(at):
    first = BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("100"), created_at=at(1))
    second = BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("200"), created_at=at(2))
    result = project(date(2025, 1, 1), 0, [second, first], [], [])
    assert result.anchor is second
    assert result.minimum.balance == Decimal("200")


def test_identical_snapshot_keys_resolve_by_id_in_any_order(at):
    a = BalanceSnapshot(id="a", date=date(2025, 1, 1), balance=Decimal("100"), created_at=at(0))
    b = BalanceSnapshot(id="b", date=date(2025, 1, 1), balance=Decimal("200"), created_at=at(0))
    one_time = [OneTimeTransaction(description="Rent", amount=Decimal("-50"), date=date(2025, 1, 2))]

    first = project(date(2025, 1, 1), 10, [a, b], [], one_time)
    second = project(date(2025, 1, 1), 10, [b, a], [], one_time)

    assert first == second
    assert first.anchor is b
    assert first.ledger[0].balance_after == Decimal("150")


def test_same_day_rows_follow_creation_then_id(at):
    snapshots = [BalanceSnapshot(date=date(2025, 3, 1), balance=Decimal("0"), created_at=at(0))]
    late_recurring = RecurringTransaction(
        id="c", description="Gym", amount=Decimal("-1"), day_of_month=5, created_at=at(9)
    )
    early_one_time = OneTimeTransaction(
        id="z", description="Gift", amount=Decimal("2"), date=date(2025, 3, 5), created_at=at(1)
    )
    tie_b = RecurringTransaction(
        id="b", description="Phone", amount=Decimal("-3"), day_of_month=5, created_at=at(4)
    )
    tie_a = OneTimeTransaction(
        id="a", description="Refund", amount=Decimal("4"), date=date(2025, 3, 5), created_at=at(4)
    )

    result = project(
        date(2025, 3, 1), 10, snapshots, [late_recurring, tie_b], [tie_a, early_one_time]
    )
    assert [r.description for r in result.ledger] == ["Gift", "Refund", "Phone", "Gym"]
    assert [r.balance_after for r in result.ledger] == [
        Decimal("2"), Decimal("6"), Decimal("3"), Decimal("2")
    ]


def test_projection_ignores_input_order(scenario):
    snapshots, recurring, one_time = scenario
    extra = OneTimeTransaction(
        description="Bonus", amount=Decimal("10"), date=date(2025, 1, 14)
    )
    forward = project(date(2025, 1, 13), 60, snapshots, recurring, one_time + [extra])
    backward = project(
        date(2025, 1, 13), 60, list(reversed(snapshots)), list(reversed(recurring)),
        [extra] + one_time,
    )
    assert forward == backward
    assert project(date(2025, 1, 13), 60, snapshots, recurring, one_time + [extra]) == forward


def test_inactive_templates_and_out_of_window_one_time_are_skipped(at):
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("50"), created_at=at(0))]
    recurring = [
        RecurringTransaction(
            description="Old plan", amount=Decimal("-5"), day_of_month=3, active=False
        )
    ]
    one_time = [
        OneTimeTransaction(description="Before", amount=Decimal("1"), date=date(2024, 12, 31)),
        OneTimeTransaction(description="Inside", amount=Decimal("2"), date=date(2025, 1, 1)),
        OneTimeTransaction(description="At end", amount=Decimal("3"), date=date(2025, 1, 11)),
    ]
    result = project(date(2025, 1, 1), 10, snapshots, recurring, one_time)
    assert [r.description for r in result.ledger] == ["Inside"]


def test_rows_keep_configured_day_of_month():
    snapshots = [BalanceSnapshot(date=date(2025, 2, 1), balance=Decimal("0"))]
    recurring = [RecurringTransaction(description="Rent", amount=Decimal("-700"), day_of_month=31)]
    one_time = [OneTimeTransaction(description="Gift", amount=Decimal("20"), date=date(2025, 2, 3))]
    result = project(date(2025, 2, 1), 28, snapshots, recurring, one_time)

    gift, rent = result.ledger
    assert rent.date == date(2025, 2, 28)
    assert rent.day_of_month == 31
    assert rent.source_id == recurring[0].id
    assert gift.day_of_month is None


def test_decimal_arithmetic_is_exact():
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("0.10"))]
    one_time = [
        OneTimeTransaction(description=f"Coin {i}", amount=Decimal("0.10"), date=date(2025, 1, 2))
        for i in range(3)
    ]
    result = project(date(2025, 1, 1), 5, snapshots, [], one_time)
    assert result.closing_balance == Decimal("0.40")
    assert result.period_total == Decimal("0.30")


def test_minimum_is_lowest_row_even_when_above_anchor():
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("100"))]
    one_time = [
        OneTimeTransaction(description="In", amount=Decimal("50"), date=date(2025, 1, 2)),
        OneTimeTransaction(description="Out", amount=Decimal("-20"), date=date(2025, 1, 3)),
    ]
    result = project(date(2025, 1, 1), 5, snapshots, [], one_time)
    assert result.minimum == MinimumBalance(balance=Decimal("130"), date=date(2025, 1, 3))


def test_roll_forward_counts_movements_since_snapshot(at):
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("1000"), created_at=at(0))]
    recurring = [
        RecurringTransaction(description="Rent", amount=Decimal("-100"), day_of_month=1),
        RecurringTransaction(description="Gym", amount=Decimal("-30"), day_of_month=15),
    ]
    one_time = [
        OneTimeTransaction(description="Refund", amount=Decimal("50"), date=date(2025, 1, 10))
    ]
    history = roll_forward(date(2025, 1, 15), snapshots, recurring, one_time)

    assert [r.description for r in history.ledger] == ["Rent", "Refund"]
    assert history.closing_balance == Decimal("950")
    assert history.anchor is snapshots[0]


def test_project_from_estimate_anchors_on_rolled_balance():
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("1000"))]
    recurring = [RecurringTransaction(description="Rent", amount=Decimal("-100"), day_of_month=5)]

    history, result = project_from_estimate(date(2025, 1, 10), 30, snapshots, recurring, [])

    assert history.closing_balance == Decimal("900")
    assert result.anchor.date == date(2025, 1, 10)
    assert result.anchor.balance == Decimal("900")
    assert [(r.date, r.balance_after) for r in result.ledger] == [
        (date(2025, 2, 5), Decimal("800"))
    ]


def test_project_from_estimate_rejects_negative_days():
    snapshots = [BalanceSnapshot(date=date(2025, 1, 1), balance=Decimal("1"))]
    with pytest.raises(InvalidWindow):
        project_from_estimate(date(2025, 1, 10), -5, snapshots, [], [])
