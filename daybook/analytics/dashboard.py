"""
Dashboard Builder

Combines the aggregation functions into the summary the dashboard
screen renders for one period.
"""

from datetime import date
from typing import Iterable, Optional, Sequence, Union

from daybook.analytics.aggregation import (
    average_per_day,
    category_breakdown,
    completion_rate,
    daily_series,
    entries_for_profile,
    filter_by_date_range,
    period_range,
    sum_by_type,
)
from daybook.models.analytics import DashboardSummary, Period
from daybook.models.entities import LedgerEntry, LedgerEntryType, Task


# Chart length per period; longer periods chart the last 30 days
CHART_DAYS: dict[Period, int] = {
    Period.TODAY: 1,
    Period.WEEK: 7,
}
DEFAULT_CHART_DAYS = 30


def chart_days(period: Union[Period, str]) -> int:
    return CHART_DAYS.get(Period(period), DEFAULT_CHART_DAYS)


def build_dashboard(
    period: Union[Period, str],
    ledger: Iterable[LedgerEntry],
    tasks: Sequence[Task],
    profile_id: Optional[str],
    today: Optional[date] = None,
) -> DashboardSummary:
    """
    Summarize the active profile's money and the task list for a period.

    Args:
        period: Dashboard period (week, month, 3months, 6months, today)
        ledger: Ledger snapshot (all profiles)
        tasks: Task snapshot
        profile_id: Active profile; None yields an empty money summary
        today: Override for the current day (tests)
    """
    period = Period(period)
    today = today or date.today()
    window = period_range(period, today)

    entries = filter_by_date_range(
        entries_for_profile(ledger, profile_id),
        window.start,
        window.end,
    )

    income = sum_by_type(entries, LedgerEntryType.INCOME)
    expense = sum_by_type(entries, LedgerEntryType.EXPENSE)
    completed = sum(1 for t in tasks if t.completed)

    return DashboardSummary(
        period=period,
        date_range=window,
        total_income=income,
        total_expense=expense,
        balance=income - expense,
        average_daily_income=average_per_day(income, window.num_days),
        average_daily_expense=average_per_day(expense, window.num_days),
        daily_series=daily_series(entries, chart_days(period), today),
        category_breakdown=category_breakdown(entries),
        completion_rate=completion_rate(tasks),
        task_count=len(tasks),
        completed_task_count=completed,
    )
