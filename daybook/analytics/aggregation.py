"""
Aggregation Engine

Pure functions over store snapshots. Nothing here touches the store or
the remote client; every function takes plain sequences of models and
returns new values.

DESIGN DECISION: Date filtering compares calendar days, not instants.
A range is [start, end): the start day is included, the end day is not,
and both bounds are truncated to the day first. This matches what the
"today / week / month" filters mean to a user.

Money is summed as Decimal. Ratios never divide by zero: empty input
gives zero.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence, TypeVar, Union

import structlog
from dateutil.relativedelta import relativedelta

from daybook.models.analytics import DailyTotals, DateRange, Period, TaskFilter
from daybook.models.entities import LedgerEntry, LedgerEntryType, Task


logger = structlog.get_logger(__name__)

T = TypeVar("T")
DayLike = Union[date, datetime]

ZERO = Decimal("0")


def _as_day(value: DayLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


# =============================================================================
# FILTERING
# =============================================================================

def filter_by_date_range(
    entries: Iterable[T],
    start: DayLike,
    end: DayLike,
    attribute: str = "timestamp",
) -> list[T]:
    """
    Keep the entries whose `attribute` falls on a day in [start, end).

    Entries without a usable date are logged and left out.
    """
    start_day = _as_day(start)
    end_day = _as_day(end)

    kept = []
    for entry in entries:
        value = getattr(entry, attribute, None)
        if not isinstance(value, (date, datetime)):
            logger.warning(
                "entry_without_date_skipped",
                attribute=attribute,
                entry_id=getattr(entry, "id", None),
            )
            continue
        if start_day <= _as_day(value) < end_day:
            kept.append(entry)
    return kept


def entries_for_profile(
    entries: Iterable[LedgerEntry],
    profile_id: Optional[str],
) -> list[LedgerEntry]:
    """Ledger entries owned by `profile_id` (none when no profile is active)."""
    if profile_id is None:
        return []
    return [e for e in entries if e.profile_id == profile_id]


def period_range(period: Union[Period, str], today: Optional[date] = None) -> DateRange:
    """
    Calendar range of a period ending today (inclusive).

    today    -> [today, today + 1)
    week     -> [today - 6 days, today + 1), the seven days the chart shows
    month    -> [today - 1 month, today + 1)
    3months  -> [today - 3 months, today + 1)
    6months  -> [today - 6 months, today + 1)

    Month arithmetic clamps to the end of shorter months
    (May 31 - 3 months = Feb 28/29).
    """
    period = Period(period)
    today = today or date.today()
    end = today + timedelta(days=1)

    if period == Period.TODAY:
        start = today
    elif period == Period.WEEK:
        start = today - timedelta(days=6)
    elif period == Period.MONTH:
        start = today - relativedelta(months=1)
    elif period == Period.THREE_MONTHS:
        start = today - relativedelta(months=3)
    else:
        start = today - relativedelta(months=6)

    return DateRange(start=start, end=end)


def filter_tasks(
    tasks: Iterable[Task],
    status: Union[TaskFilter, str] = TaskFilter.ALL,
    category: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Task]:
    """
    Apply the task list's status and category filters.

    status "today" keeps tasks created today. A category of None or
    "all" keeps every category.
    """
    status = TaskFilter(status)
    today = today or date.today()

    result = []
    for task in tasks:
        if status == TaskFilter.COMPLETED and not task.completed:
            continue
        if status == TaskFilter.PENDING and task.completed:
            continue
        if status == TaskFilter.TODAY and task.created_at.date() != today:
            continue
        if category not in (None, "all") and task.category.value != category:
            continue
        result.append(task)
    return result


# =============================================================================
# SUMS
# =============================================================================

def sum_by_type(
    entries: Iterable[LedgerEntry],
    entry_type: Union[LedgerEntryType, str],
) -> Decimal:
    entry_type = LedgerEntryType(entry_type)
    return sum((e.amount for e in entries if e.type == entry_type), ZERO)


def balance(entries: Sequence[LedgerEntry]) -> Decimal:
    """Income minus expense."""
    return sum_by_type(entries, LedgerEntryType.INCOME) - sum_by_type(
        entries, LedgerEntryType.EXPENSE
    )


def category_breakdown(entries: Iterable[LedgerEntry]) -> dict[str, Decimal]:
    """Summed expense per category. Income entries are ignored."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        if entry.type == LedgerEntryType.EXPENSE:
            totals[entry.category] += entry.amount
    return dict(totals)


def average_per_day(total: Decimal, num_days: int) -> Decimal:
    if num_days <= 0:
        return ZERO
    return total / Decimal(num_days)


# =============================================================================
# SERIES
# =============================================================================

def daily_series(
    entries: Iterable[LedgerEntry],
    num_days: int,
    today: Optional[date] = None,
) -> list[DailyTotals]:
    """
    Income and expense for each of the trailing `num_days` days.

    The last element is today. Days without activity are zero-filled,
    so the result always has exactly `num_days` elements.
    """
    if num_days <= 0:
        return []

    today = today or date.today()
    first = today - timedelta(days=num_days - 1)

    income: dict[date, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        day = entry.timestamp.date()
        if not first <= day <= today:
            continue
        if entry.type == LedgerEntryType.INCOME:
            income[day] += entry.amount
        else:
            expense[day] += entry.amount

    series = []
    for offset in range(num_days):
        day = first + timedelta(days=offset)
        series.append(
            DailyTotals(
                day=day,
                label=str(day.day),
                income=income[day],
                expense=expense[day],
            )
        )
    return series


# =============================================================================
# TASKS
# =============================================================================

def completion_rate(tasks: Sequence[Task]) -> float:
    """Percentage of completed tasks; 0.0 when there are none."""
    if not tasks:
        return 0.0
    done = sum(1 for t in tasks if t.completed)
    return done / len(tasks) * 100


def completed_today(tasks: Iterable[Task], today: Optional[date] = None) -> bool:
    """True when at least one task created today is completed."""
    today = today or date.today()
    return any(t.completed and t.created_at.date() == today for t in tasks)
