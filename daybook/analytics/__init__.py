"""
Aggregation Engine Package

Pure, read-only computations over store snapshots.
"""

from daybook.analytics.aggregation import (
    average_per_day,
    balance,
    category_breakdown,
    completed_today,
    completion_rate,
    daily_series,
    entries_for_profile,
    filter_by_date_range,
    filter_tasks,
    period_range,
    sum_by_type,
)
from daybook.analytics.dashboard import build_dashboard, chart_days

__all__ = [
    "average_per_day",
    "balance",
    "build_dashboard",
    "category_breakdown",
    "chart_days",
    "completed_today",
    "completion_rate",
    "daily_series",
    "entries_for_profile",
    "filter_by_date_range",
    "filter_tasks",
    "period_range",
    "sum_by_type",
]
