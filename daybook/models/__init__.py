"""
Data Models Package

This package contains all Pydantic models used in Daybook.
All data flowing through the system must conform to these schemas.
"""

from daybook.models.entities import (
    LEDGER_CATEGORIES,
    DaybookModel,
    ExpenseCategory,
    IncomeCategory,
    LedgerEntry,
    LedgerEntryFields,
    LedgerEntryType,
    Profile,
    ProfileFields,
    Recurrence,
    Reminder,
    ReminderFields,
    Task,
    TaskCategory,
    TaskFields,
    TaskPriority,
)
from daybook.models.analytics import (
    DailyTotals,
    DashboardSummary,
    DateRange,
    Period,
    TaskFilter,
)
from daybook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "LEDGER_CATEGORIES",
    "DaybookModel",
    "ExpenseCategory",
    "IncomeCategory",
    "LedgerEntry",
    "LedgerEntryFields",
    "LedgerEntryType",
    "Profile",
    "ProfileFields",
    "Recurrence",
    "Reminder",
    "ReminderFields",
    "Task",
    "TaskCategory",
    "TaskFields",
    "TaskPriority",
    # Dashboard models
    "DailyTotals",
    "DashboardSummary",
    "DateRange",
    "Period",
    "TaskFilter",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
