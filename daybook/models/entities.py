"""
Core Data Models for Daybook

These models define the schemas of the four synchronized collections:
profiles, tasks, ledger entries and reminders.

They are designed to:
1. Enforce type safety at runtime (remote documents are untrusted)
2. Be immutable, so every snapshot handed out is a safe point-in-time copy
3. Round-trip with the remote documents, which use camelCase field names

DESIGN DECISION: Every entity has a *Fields model (what the caller supplies
on create) and the entity model itself, which adds the store-generated id.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TaskCategory(str, Enum):
    """Task categories offered by the task screen."""
    PERSONAL = "personal"
    WORK = "work"
    HEALTH = "health"
    SHOPPING = "shopping"
    OTHER = "other"


class TaskPriority(str, Enum):
    """Task priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LedgerEntryType(str, Enum):
    """
    Direction of money movement.

    The sign of an amount is implied by the type; amounts are never
    stored negative.
    """
    INCOME = "income"
    EXPENSE = "expense"


class IncomeCategory(str, Enum):
    """Categories valid for income entries."""
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENT = "investment"
    GIFT = "gift"
    OTHER = "other"


class ExpenseCategory(str, Enum):
    """Categories valid for expense entries."""
    FOOD = "food"
    TRANSPORT = "transport"
    SAVINGS = "savings"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    SHOPPING = "shopping"
    BILLS = "bills"
    OTHER = "other"


LEDGER_CATEGORIES: dict[LedgerEntryType, frozenset[str]] = {
    LedgerEntryType.INCOME: frozenset(c.value for c in IncomeCategory),
    LedgerEntryType.EXPENSE: frozenset(c.value for c in ExpenseCategory),
}


class Recurrence(str, Enum):
    """How a reminder's next fire time advances after each occurrence."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# BASE MODEL
# =============================================================================

class DaybookModel(BaseModel):
    """
    Base for every persisted model.

    Python attributes are snake_case; remote documents are camelCase.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    def to_document(self, include: Optional[set[str]] = None) -> dict[str, Any]:
        """
        Convert to a remote document (JSON-safe, camelCase, no id).

        Args:
            include: Restrict the document to these attribute names
        """
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"id"},
            include=include,
        )


def _as_local_naive(value: datetime) -> datetime:
    """Normalize aware datetimes to naive local wall-clock time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# =============================================================================
# PROFILE
# =============================================================================

class ProfileFields(DaybookModel):
    """A switchable user profile."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Display name"
    )
    avatar: str = Field(
        default="",
        max_length=16,
        description="Avatar glyph (usually a single emoji)"
    )
    is_active: bool = Field(
        default=False,
        description="True for the one profile currently in use"
    )


class Profile(ProfileFields):
    id: str = Field(..., min_length=1)


# =============================================================================
# TASK
# =============================================================================

class TaskFields(DaybookModel):
    """
    A to-do item.

    Tasks are not scoped to a profile: the app has one shared workspace.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Task title"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    category: TaskCategory = Field(default=TaskCategory.PERSONAL)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    completed: bool = False
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the task was added (local time)"
    )
    due_date: Optional[datetime] = None

    @field_validator('created_at', 'due_date')
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_local_naive(v) if v is not None else v


class Task(TaskFields):
    id: str = Field(..., min_length=1)


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntryFields(DaybookModel):
    """
    A single income or expense record.

    Ledger entries are immutable once created; they can only be deleted.
    """

    type: LedgerEntryType
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount; the sign is implied by type"
    )
    category: str = Field(
        ...,
        description="Category, valid for the entry's type"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        alias="date",
        description="When the money moved (local time)"
    )
    profile_id: str = Field(
        ...,
        min_length=1,
        description="Owning profile"
    )

    @field_validator('timestamp')
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return _as_local_naive(v)

    @model_validator(mode='after')
    def validate_category(self) -> 'LedgerEntryFields':
        """The category must belong to the entry's type."""
        allowed = LEDGER_CATEGORIES[self.type]
        if self.category not in allowed:
            raise ValueError(
                f"Category '{self.category}' is not valid for {self.type.value} "
                f"entries. Allowed: {sorted(allowed)}"
            )
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Amount with income positive and expense negative."""
        if self.type == LedgerEntryType.EXPENSE:
            return -self.amount
        return self.amount


class LedgerEntry(LedgerEntryFields):
    id: str = Field(..., min_length=1)


# =============================================================================
# REMINDER
# =============================================================================

class ReminderFields(DaybookModel):
    """
    A scheduled reminder.

    `time` is the anchor occurrence. It fixes the time of day for every
    rule, the weekday for weekly reminders and the day of month for
    monthly reminders.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    body: Optional[str] = Field(
        default=None,
        alias="content",
        max_length=1000,
    )
    time: datetime = Field(
        ...,
        description="Anchor occurrence (local time)"
    )
    recurrence: Recurrence = Field(
        default=Recurrence.NONE,
        alias="repeat",
    )
    is_active: bool = True
    profile_id: str = Field(
        ...,
        min_length=1,
        description="Owning profile"
    )

    @field_validator('time')
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return _as_local_naive(v)


class Reminder(ReminderFields):
    id: str = Field(..., min_length=1)
