"""
Ledger Data Models for finwise

These models define the schemas for everything a user owns:
transactions, monthly budgets, assets and debts, plus the shared
category reference data they point at.

DESIGN DECISION: Money is Decimal quantized to two places.
Budget and overspend checks compare sums with a strict `>`; binary
floats would make those comparisons depend on summation order.

Related entities are referenced by id only. Callers that want the
category name for display look it up themselves.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convert a number (or numeric string) to a 2-dp Decimal."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an aware datetime to naive UTC; naive values pass through.

    Period bounds are naive UTC, and naive and aware datetimes cannot
    be compared.
    """
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


Money = Annotated[Decimal, Field(decimal_places=2)]


# =============================================================================
# ENUMS
# =============================================================================

class CategoryType(str, Enum):
    """What kind of record a category classifies."""
    INCOME = "income"
    EXPENSE = "expense"
    ASSET = "asset"
    DEBT = "debt"


class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# CATEGORY
# =============================================================================

class Category(BaseModel):
    """
    Category reference data.

    Categories are seeded, not created by end users.
    Names are unique across all types.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name (unique)"
    )
    type: CategoryType
    group: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Display grouping, e.g. 'Housing'"
    )
    is_editable: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


# (name, type, group) triples seeded into a fresh store
DEFAULT_CATEGORIES: list[tuple[str, CategoryType, str]] = [
    ("Salary", CategoryType.INCOME, "Work"),
    ("Freelance", CategoryType.INCOME, "Work"),
    ("Investment Returns", CategoryType.INCOME, "Investments"),
    ("Bonus", CategoryType.INCOME, "Work"),
    ("Other Income", CategoryType.INCOME, "Other"),
    ("Groceries", CategoryType.EXPENSE, "Food & Dining"),
    ("Restaurant", CategoryType.EXPENSE, "Food & Dining"),
    ("Utilities", CategoryType.EXPENSE, "Housing"),
    ("Rent", CategoryType.EXPENSE, "Housing"),
    ("Gas", CategoryType.EXPENSE, "Transportation"),
    ("Car Payment", CategoryType.EXPENSE, "Transportation"),
    ("Insurance", CategoryType.EXPENSE, "Protection"),
    ("Entertainment", CategoryType.EXPENSE, "Entertainment"),
    ("Shopping", CategoryType.EXPENSE, "Shopping"),
    ("Healthcare", CategoryType.EXPENSE, "Healthcare"),
    ("Subscription", CategoryType.EXPENSE, "Entertainment"),
    ("Other Expense", CategoryType.EXPENSE, "Other"),
    ("Savings Account", CategoryType.ASSET, "Banking"),
    ("Checking Account", CategoryType.ASSET, "Banking"),
    ("Investment Account", CategoryType.ASSET, "Investments"),
    ("Real Estate", CategoryType.ASSET, "Real Estate"),
    ("Vehicle", CategoryType.ASSET, "Vehicle"),
    ("Retirement Account", CategoryType.ASSET, "Retirement"),
    ("Cryptocurrency", CategoryType.ASSET, "Investments"),
    ("Other Asset", CategoryType.ASSET, "Other"),
    ("Credit Card", CategoryType.DEBT, "Credit"),
    ("Student Loan", CategoryType.DEBT, "Loans"),
    ("Mortgage", CategoryType.DEBT, "Housing"),
    ("Car Loan", CategoryType.DEBT, "Loans"),
    ("Personal Loan", CategoryType.DEBT, "Loans"),
    ("Other Debt", CategoryType.DEBT, "Other"),
]


def default_categories() -> list[Category]:
    """Build fresh Category records for seeding."""
    return [
        Category(name=name, type=cat_type, group=group)
        for name, cat_type, group in DEFAULT_CATEGORIES
    ]


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense.

    The date is an arbitrary instant; it is NOT normalized to a period.
    Timezone-aware dates are stored as naive UTC.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category_id: UUID
    type: TransactionType
    amount: Money = Field(
        ...,
        ge=CENT,
        description="Amount, always positive; the type gives the direction"
    )
    date: datetime
    description: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('amount', mode='before')
    @classmethod
    def quantize_amount(cls, v):
        return to_money(v)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


# =============================================================================
# BUDGET
# =============================================================================

class Budget(BaseModel):
    """
    A monthly spending limit for one expense category.

    At most one budget exists per (owner_id, category_id, period_start).
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category_id: UUID
    period_start: datetime = Field(
        ...,
        description="First instant of the budget's calendar month"
    )
    limit_amount: Money = Field(..., ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('limit_amount', mode='before')
    @classmethod
    def quantize_limit(cls, v):
        return to_money(v)

    @field_validator('period_start')
    @classmethod
    def validate_period_start(cls, v: datetime) -> datetime:
        """period_start must be midnight on the 1st."""
        v = to_naive_utc(v)
        if v.day != 1 or (v.hour, v.minute, v.second, v.microsecond) != (0, 0, 0, 0):
            raise ValueError("period_start must be the first instant of a month")
        return v


# =============================================================================
# ASSETS & DEBTS
# =============================================================================

class ValueSnapshot(BaseModel):
    """One point in an asset's value history."""

    date: datetime = Field(default_factory=datetime.utcnow)
    value: Money

    @field_validator('value', mode='before')
    @classmethod
    def quantize_value(cls, v):
        return to_money(v)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class Asset(BaseModel):
    """
    Something the user owns, with an append-only value history.

    The history always has at least one snapshot. A new snapshot is
    appended whenever current_value changes; existing snapshots are
    never edited.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    current_value: Money = Field(..., ge=0)
    value_history: list[ValueSnapshot] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('current_value', mode='before')
    @classmethod
    def quantize_current_value(cls, v):
        return to_money(v)

    @model_validator(mode='after')
    def seed_history(self) -> 'Asset':
        """Seed the history with the opening value."""
        if not self.value_history:
            self.value_history = [ValueSnapshot(value=self.current_value)]
        return self

    def record_value(self, new_value, when: Optional[datetime] = None) -> bool:
        """
        Set a new current value, appending to the history if it changed.

        Returns True if a snapshot was appended.
        """
        new_value = to_money(new_value)
        if new_value < 0:
            raise ValueError("Asset value cannot be negative")
        if new_value == self.current_value:
            return False
        self.value_history.append(
            ValueSnapshot(date=when or datetime.utcnow(), value=new_value)
        )
        self.current_value = new_value
        return True


class Debt(BaseModel):
    """
    Money the user owes.

    remaining_balance is set directly by the caller; it is not derived
    from payment history.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    original_amount: Money
    remaining_balance: Money = Field(..., ge=0)
    interest_rate: Decimal = Field(..., ge=0, description="Annual rate in percent")
    minimum_payment: Money = Field(default=Decimal("0.00"), ge=0)
    next_payment_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('original_amount', 'remaining_balance', 'minimum_payment', mode='before')
    @classmethod
    def quantize_money_fields(cls, v):
        return to_money(v)

    @field_validator('next_payment_date')
    @classmethod
    def normalize_next_payment_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)
