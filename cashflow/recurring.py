# cashflow/recurring.py
from __future__ import annotations

from calendar import monthrange
from datetime import date, timedelta
from typing import Iterable, Iterator, List, Tuple

from cashflow.core.errors import InvalidRecurrenceDay
from cashflow.core.models import RecurringTransaction

MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31


def validate_day_of_month(day_of_month: int) -> int:
    if not MIN_DAY_OF_MONTH <= day_of_month <= MAX_DAY_OF_MONTH:
        raise InvalidRecurrenceDay(day_of_month)
    return day_of_month


def occurrence_in_month(year: int, month: int, day_of_month: int) -> date:
    """Return the template's date in the given month.

    Days past the end of a short month fall on its last day, so a
    template for the 31st fires on 30 April and on 28 or 29 February.
    """
    validate_day_of_month(day_of_month)
    day = min(day_of_month, monthrange(year, month)[1])
    return date(year, month, day)


def _months_between(first: date, last: date) -> Iterator[Tuple[int, int]]:
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        yield year, month
        if month == 12:
            year, month = year + 1, 1
        else:
            month += 1


def materialize(
    template: RecurringTransaction,
    window_start: date,
    window_end: date,
) -> List[date]:
    """Occurrence dates of *template* inside ``[window_start, window_end)``.

    The caller decides whether the template is active; an empty or
    inverted window yields no dates.
    """
    validate_day_of_month(template.day_of_month)
    if window_end <= window_start:
        return []

    last_day = window_end - timedelta(days=1)
    occurrences = []
    for year, month in _months_between(window_start, last_day):
        current = occurrence_in_month(year, month, template.day_of_month)
        if window_start <= current < window_end:
            occurrences.append(current)
    return occurrences


def expand_recurring_transactions(
    templates: Iterable[RecurringTransaction] | None,
    window_start: date,
    window_end: date,
) -> List[Tuple[date, RecurringTransaction]]:
    """Materialize every active template, pairing each date with its source."""
    if not templates:
        return []
    expanded = []
    for template in templates:
        if not template.active:
            continue
        for occurrence in materialize(template, window_start, window_end):
            expanded.append((occurrence, template))
    return expanded
