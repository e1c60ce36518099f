# cashflow/core/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RecurringTransaction:
    """Monthly template; positive amounts are income, negative are expenses."""
    description: str
    amount: Decimal
    day_of_month: int
    active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class OneTimeTransaction:
    description: str
    amount: Decimal
    date: date
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class BalanceSnapshot:
    """The balance was exactly ``balance`` on ``date``."""
    date: date
    balance: Decimal
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class CashflowData:
    recurring: List[RecurringTransaction] = field(default_factory=list)
    one_time: List[OneTimeTransaction] = field(default_factory=list)
    balance_snapshots: List[BalanceSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectedTransaction:
    date: date
    description: str
    amount: Decimal
    is_one_time: bool
    balance_after: Decimal
    # Configured template day, not the clamped one; None for one-time rows.
    day_of_month: Optional[int] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class MinimumBalance:
    balance: Decimal
    date: date


@dataclass(frozen=True)
class Projection:
    anchor: BalanceSnapshot
    start_date: date
    days: int
    ledger: List[ProjectedTransaction]
    period_total: Decimal
    minimum: MinimumBalance

    @property
    def closing_balance(self) -> Decimal:
        if not self.ledger:
            return self.anchor.balance
        return self.ledger[-1].balance_after
