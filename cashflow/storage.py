from __future__ import annotations

import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Sequence

import yaml

from cashflow.core.errors import AmbiguousIdentifier, EntityNotFound, StorageError
from cashflow.core.models import (
    BalanceSnapshot,
    CashflowData,
    OneTimeTransaction,
    RecurringTransaction,
)
from cashflow.recurring import validate_day_of_month

logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 8


def _parse_date(value, field_name, entry):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise StorageError(f"Unrecognized {field_name} in stored entry: {entry}")


def _parse_instant(value, entry):
    # Instants without an offset are taken as UTC, the zone everything is written in.
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise StorageError(f"Unrecognized created_at in stored entry: {entry}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_decimal(value, field_name, entry):
    # Floats would already have lost precision, so only exact types are accepted.
    if isinstance(value, float) or isinstance(value, bool):
        raise StorageError(f"{field_name} must be stored as a decimal string: {entry}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise StorageError(f"Invalid {field_name} in stored entry: {entry}")


def _recurring_from_dict(entry) -> RecurringTransaction:
    return RecurringTransaction(
        id=str(entry["id"]),
        description=entry.get("description", ""),
        amount=_parse_decimal(entry.get("amount"), "amount", entry),
        day_of_month=int(entry["day_of_month"]),
        active=bool(entry.get("active", True)),
        created_at=_parse_instant(entry.get("created_at"), entry),
    )


def _one_time_from_dict(entry) -> OneTimeTransaction:
    return OneTimeTransaction(
        id=str(entry["id"]),
        description=entry.get("description", ""),
        amount=_parse_decimal(entry.get("amount"), "amount", entry),
        date=_parse_date(entry.get("date"), "date", entry),
        created_at=_parse_instant(entry.get("created_at"), entry),
    )


def _snapshot_from_dict(entry) -> BalanceSnapshot:
    return BalanceSnapshot(
        id=str(entry["id"]),
        date=_parse_date(entry.get("date"), "date", entry),
        balance=_parse_decimal(entry.get("balance"), "balance", entry),
        created_at=_parse_instant(entry.get("created_at"), entry),
    )


def data_to_dict(data: CashflowData) -> Dict[str, List[Dict[str, object]]]:
    """Plain, YAML/JSON friendly representation of *data*."""
    return {
        "recurring": [
            {
                "id": r.id,
                "description": r.description,
                "amount": str(r.amount),
                "day_of_month": r.day_of_month,
                "active": r.active,
                "created_at": r.created_at.isoformat(),
            }
            for r in data.recurring
        ],
        "one_time": [
            {
                "id": t.id,
                "description": t.description,
                "amount": str(t.amount),
                "date": t.date.isoformat(),
                "created_at": t.created_at.isoformat(),
            }
            for t in data.one_time
        ],
        "balance_snapshots": [
            {
                "id": s.id,
                "date": s.date.isoformat(),
                "balance": str(s.balance),
                "created_at": s.created_at.isoformat(),
            }
            for s in data.balance_snapshots
        ],
    }


def load_data(data_path) -> CashflowData:
    """Load all entities from *data_path*; a missing file means no data yet."""
    path = Path(data_path)
    if not path.exists():
        logger.debug("Data file %s does not exist yet", path)
        return CashflowData()

    with path.open("r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise StorageError(f"Failed to parse data file {path}: {exc}")
    if not isinstance(raw, dict):
        raise StorageError(f"Data file {path} must contain a mapping.")

    try:
        data = CashflowData(
            recurring=[_recurring_from_dict(e) for e in raw.get("recurring") or []],
            one_time=[_one_time_from_dict(e) for e in raw.get("one_time") or []],
            balance_snapshots=[
                _snapshot_from_dict(e) for e in raw.get("balance_snapshots") or []
            ],
        )
    except StorageError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Corrupt entry in data file {path}: {exc}")
    logger.debug(
        "Loaded %d recurring, %d one-time, %d snapshot(s) from %s",
        len(data.recurring),
        len(data.one_time),
        len(data.balance_snapshots),
        path,
    )
    return data


def save_data(data: CashflowData, data_path) -> None:
    """Persist *data* atomically: write a temporary file, then rename it."""
    path = Path(data_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data_to_dict(data), f, sort_keys=False, allow_unicode=True)
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug("Saved data to %s", path)


def resolve_id(identifier: str, entities: Sequence, kind: str = "transaction"):
    """Find an entity by full id or by an id prefix of at least 8 characters."""
    needle = identifier.strip().lower()
    for entity in entities:
        if entity.id.lower() == needle:
            return entity
    if len(needle) < SHORT_ID_LENGTH:
        raise EntityNotFound(
            f"Invalid id '{identifier}'. Use the full id or its first "
            f"{SHORT_ID_LENGTH} characters."
        )
    matches = [e for e in entities if e.id.lower().startswith(needle)]
    if not matches:
        raise EntityNotFound(f"No {kind} found with id starting with '{identifier}'.")
    if len(matches) > 1:
        raise AmbiguousIdentifier(
            f"Multiple {kind}s match '{identifier}'. Use a longer id."
        )
    return matches[0]


def add_recurring(data_path, description: str, amount: Decimal, day_of_month: int) -> RecurringTransaction:
    validate_day_of_month(day_of_month)
    data = load_data(data_path)
    txn = RecurringTransaction(
        description=description, amount=amount, day_of_month=day_of_month
    )
    data.recurring.append(txn)
    save_data(data, data_path)
    logger.info("Added recurring transaction %s (%s)", txn.id, description)
    return txn


def edit_recurring(
    data_path,
    identifier: str,
    amount: Decimal | None = None,
    day_of_month: int | None = None,
    description: str | None = None,
) -> RecurringTransaction:
    if day_of_month is not None:
        validate_day_of_month(day_of_month)
    data = load_data(data_path)
    txn = resolve_id(identifier, data.recurring, "recurring transaction")
    if amount is not None:
        txn.amount = amount
    if day_of_month is not None:
        txn.day_of_month = day_of_month
    if description is not None:
        txn.description = description
    save_data(data, data_path)
    logger.info("Edited recurring transaction %s", txn.id)
    return txn


def set_recurring_active(data_path, identifier: str, active: bool) -> RecurringTransaction:
    data = load_data(data_path)
    txn = resolve_id(identifier, data.recurring, "recurring transaction")
    txn.active = active
    save_data(data, data_path)
    logger.info(
        "%s recurring transaction %s", "Enabled" if active else "Disabled", txn.id
    )
    return txn


def delete_recurring(data_path, identifier: str) -> RecurringTransaction:
    data = load_data(data_path)
    txn = resolve_id(identifier, data.recurring, "recurring transaction")
    data.recurring.remove(txn)
    save_data(data, data_path)
    logger.info("Deleted recurring transaction %s", txn.id)
    return txn


def add_one_time(data_path, description: str, amount: Decimal, on: date) -> OneTimeTransaction:
    data = load_data(data_path)
    txn = OneTimeTransaction(description=description, amount=amount, date=on)
    data.one_time.append(txn)
    save_data(data, data_path)
    logger.info("Added one-time transaction %s (%s)", txn.id, description)
    return txn


def edit_one_time(
    data_path,
    identifier: str,
    amount: Decimal | None = None,
    on: date | None = None,
    description: str | None = None,
) -> OneTimeTransaction:
    data = load_data(data_path)
    txn = resolve_id(identifier, data.one_time, "one-time transaction")
    if amount is not None:
        txn.amount = amount
    if on is not None:
        txn.date = on
    if description is not None:
        txn.description = description
    save_data(data, data_path)
    logger.info("Edited one-time transaction %s", txn.id)
    return txn


def delete_one_time(data_path, identifier: str) -> OneTimeTransaction:
    data = load_data(data_path)
    txn = resolve_id(identifier, data.one_time, "one-time transaction")
    data.one_time.remove(txn)
    save_data(data, data_path)
    logger.info("Deleted one-time transaction %s", txn.id)
    return txn


def prune_one_time(data_path, before: date) -> int:
    """Remove one-time transactions dated strictly before *before*."""
    data = load_data(data_path)
    kept = [t for t in data.one_time if t.date >= before]
    removed = len(data.one_time) - len(kept)
    if removed:
        data.one_time = kept
        save_data(data, data_path)
        logger.info("Pruned %d one-time transaction(s) before %s", removed, before)
    return removed


def set_balance(data_path, balance: Decimal, on: date) -> tuple[BalanceSnapshot, bool]:
    """Record the balance for a date; returns the snapshot and whether it was new.

    An existing snapshot for the same date is updated in place.
    """
    data = load_data(data_path)
    existing = next((s for s in data.balance_snapshots if s.date == on), None)
    if existing is not None:
        existing.balance = balance
        snapshot, created = existing, False
    else:
        snapshot, created = BalanceSnapshot(date=on, balance=balance), True
        data.balance_snapshots.append(snapshot)
    save_data(data, data_path)
    logger.info("%s balance for %s", "Set" if created else "Updated", on.isoformat())
    return snapshot, created
