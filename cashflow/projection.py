# cashflow/projection.py
"""Running-balance projection over recurring and one-time transactions.

Everything here is a pure function of its inputs: no I/O, no logging and
no clock reads. The caller supplies the start date.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from cashflow.core.errors import InvalidWindow, NoAnchorSnapshot
from cashflow.core.models import (
    BalanceSnapshot,
    MinimumBalance,
    OneTimeTransaction,
    ProjectedTransaction,
    Projection,
    RecurringTransaction,
)
from cashflow.recurring import expand_recurring_transactions


def select_anchor(
    snapshots: Iterable[BalanceSnapshot], start_date: date
) -> BalanceSnapshot:
    """Latest snapshot dated on or before *start_date*.

    Snapshots sharing that date are resolved by the latest ``created_at``,
    then by the greatest identifier.
    """
    candidates = [s for s in snapshots if s.date <= start_date]
    if not candidates:
        raise NoAnchorSnapshot(start_date)
    return max(candidates, key=lambda s: (s.date, s.created_at, s.id))


class _Row(NamedTuple):
    date: date
    created_at: datetime
    source_id: str
    description: str
    amount: Decimal
    is_one_time: bool
    day_of_month: Optional[int]

    @property
    def sort_key(self) -> Tuple[date, datetime, str]:
        return self.date, self.created_at, self.source_id


def _collect_rows(
    window_start: date,
    window_end: date,
    recurring: Iterable[RecurringTransaction],
    one_time: Iterable[OneTimeTransaction],
) -> List[_Row]:
    rows = []
    for occurrence, template in expand_recurring_transactions(
        recurring, window_start, window_end
    ):
        rows.append(
            _Row(
                date=occurrence,
                created_at=template.created_at,
                source_id=template.id,
                description=template.description,
                amount=template.amount,
                is_one_time=False,
                day_of_month=template.day_of_month,
            )
        )
    for txn in one_time:
        if window_start <= txn.date < window_end:
            rows.append(
                _Row(
                    date=txn.date,
                    created_at=txn.created_at,
                    source_id=txn.id,
                    description=txn.description,
                    amount=txn.amount,
                    is_one_time=True,
                    day_of_month=None,
                )
            )
    # Same-day rows follow creation order, identifier breaks remaining ties.
    rows.sort(key=lambda row: row.sort_key)
    return rows


def project(
    start_date: date,
    days: int,
    snapshots: Sequence[BalanceSnapshot],
    recurring_templates: Iterable[RecurringTransaction],
    one_time_transactions: Iterable[OneTimeTransaction],
) -> Projection:
    """Project the running balance over ``[start_date, start_date + days)``.

    The running balance starts from the anchor snapshot's balance. Raises
    :class:`InvalidWindow` for a negative *days* and
    :class:`NoAnchorSnapshot` when no snapshot precedes *start_date*.
    """
    if days < 0:
        raise InvalidWindow(days)
    anchor = select_anchor(snapshots, start_date)
    window_end = start_date + timedelta(days=days)

    balance = anchor.balance
    period_total = Decimal(0)
    minimum = None
    ledger: List[ProjectedTransaction] = []
    for source in _collect_rows(
        start_date, window_end, recurring_templates, one_time_transactions
    ):
        balance += source.amount
        period_total += source.amount
        row = ProjectedTransaction(
            date=source.date,
            description=source.description,
            amount=source.amount,
            is_one_time=source.is_one_time,
            balance_after=balance,
            day_of_month=source.day_of_month,
            source_id=source.source_id,
        )
        ledger.append(row)
        if minimum is None or row.balance_after < minimum.balance:
            minimum = MinimumBalance(balance=row.balance_after, date=row.date)

    if minimum is None:
        minimum = MinimumBalance(balance=anchor.balance, date=start_date)

    return Projection(
        anchor=anchor,
        start_date=start_date,
        days=days,
        ledger=ledger,
        period_total=period_total,
        minimum=minimum,
    )


def roll_forward(
    as_of: date,
    snapshots: Sequence[BalanceSnapshot],
    recurring_templates: Iterable[RecurringTransaction],
    one_time_transactions: Iterable[OneTimeTransaction],
) -> Projection:
    """Movements between the anchor snapshot for *as_of* and *as_of* itself.

    The result's ``closing_balance`` is the estimated balance at the start
    of *as_of*. The window begins on the snapshot's own date, so a
    transaction dated on the snapshot day is counted.
    """
    anchor = select_anchor(snapshots, as_of)
    return project(
        anchor.date,
        (as_of - anchor.date).days,
        [anchor],
        recurring_templates,
        one_time_transactions,
    )


def project_from_estimate(
    start_date: date,
    days: int,
    snapshots: Sequence[BalanceSnapshot],
    recurring_templates: Sequence[RecurringTransaction],
    one_time_transactions: Sequence[OneTimeTransaction],
) -> Tuple[Projection, Projection]:
    """Roll the anchor forward to *start_date*, then project from there.

    Returns ``(history, projection)``: the movements between the anchor
    snapshot and *start_date*, and the projection anchored on the
    estimated balance at the start of *start_date*.
    """
    if days < 0:
        raise InvalidWindow(days)
    history = roll_forward(
        start_date, snapshots, recurring_templates, one_time_transactions
    )
    estimate = replace(
        history.anchor, date=start_date, balance=history.closing_balance
    )
    projection = project(
        start_date, days, [estimate], recurring_templates, one_time_transactions
    )
    return history, projection
