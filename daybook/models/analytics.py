"""
Dashboard Models

Value objects returned by the aggregation engine. They carry no
behaviour; presentation decides how to chart them.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Period(str, Enum):
    """
    Date windows offered by the dashboard and list filters.

    Every window ends today (inclusive).
    """
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"


class TaskFilter(str, Enum):
    """Status filters on the task list."""
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"
    TODAY = "today"


class DateRange(BaseModel):
    """Half-open calendar-day range: start inclusive, end exclusive."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @property
    def num_days(self) -> int:
        return (self.end - self.start).days


class DailyTotals(BaseModel):
    """Income and expense of a single calendar day."""
    model_config = ConfigDict(frozen=True)

    day: date
    label: str = Field(..., description="Day of month, as shown on the chart axis")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class DashboardSummary(BaseModel):
    """Everything the dashboard screen shows for one period."""
    model_config = ConfigDict(frozen=True)

    period: Period
    date_range: DateRange
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    average_daily_income: Decimal
    average_daily_expense: Decimal
    daily_series: list[DailyTotals] = Field(default_factory=list)
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    completion_rate: float = Field(ge=0.0, le=100.0)
    task_count: int = Field(ge=0)
    completed_task_count: int = Field(ge=0)
