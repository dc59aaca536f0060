"""
Domain Errors

Every rejection raised by a guard, engine or flow is a FinanceError.
They are local and recoverable: each rejects a single mutation and
carries enough structured context for the caller to render a precise
message. details() returns that context as a plain dict.

Store failures are NOT domain errors; they surface as StorageError from
finwise.services.storage and pass through untouched.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


def format_amount(amount: Decimal, currency: str = "$") -> str:
    return f"{currency}{amount:.2f}"


class FinanceError(Exception):
    """Base exception for finwise domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, **self.details()}


class ValidationError(FinanceError):
    """Caller-supplied input is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Build from a pydantic ValidationError, keeping its first issue."""
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        return cls(first["msg"], field=field)

    def details(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class NotFoundError(FinanceError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: Optional[UUID] = None, message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} not found")

    def details(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "entity_id": str(self.entity_id) if self.entity_id else None,
        }


class NotAuthorizedError(FinanceError):
    """The caller does not own the record they tried to touch."""

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Not authorized to access this {entity.lower()}")

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "entity_id": str(self.entity_id)}


class DuplicateBudgetError(FinanceError):
    """The owner already has a budget for this category and period."""

    def __init__(self, category_id: UUID, period_start: datetime):
        self.category_id = category_id
        self.period_start = period_start
        super().__init__("Budget already exists for this category and period")

    def details(self) -> dict[str, Any]:
        return {
            "category_id": str(self.category_id),
            "period_start": self.period_start.isoformat(),
        }


class BudgetExceedsIncomeError(FinanceError):
    """Total allocation for the period would exceed the period's income."""

    def __init__(
        self,
        total_income: Decimal,
        existing_allocated: Decimal,
        requested_amount: Decimal,
        projected: Decimal,
        currency: str = "$",
    ):
        self.total_income = total_income
        self.existing_allocated = existing_allocated
        self.requested_amount = requested_amount
        self.projected = projected
        super().__init__(
            f"Total budget allocation ({format_amount(projected, currency)}) exceeds "
            f"total income for the period ({format_amount(total_income, currency)})"
        )

    def details(self) -> dict[str, Any]:
        return {
            "total_income": self.total_income,
            "existing_allocated": self.existing_allocated,
            "requested_amount": self.requested_amount,
            "new_total_allocated": self.projected,
        }


class NoBudgetAllocatedError(FinanceError):
    """An expense was recorded for a category with no budget in its period."""

    def __init__(self, category_id: UUID, period_label: str):
        self.category_id = category_id
        self.period_label = period_label
        self.suggestion = (
            f"Please create a budget for this category in {period_label} "
            "before recording expenses."
        )
        super().__init__(
            "Cannot record expense: No budget has been allocated for this "
            f"category in {period_label}."
        )

    def details(self) -> dict[str, Any]:
        return {
            "category_id": str(self.category_id),
            "period": self.period_label,
            "suggestion": self.suggestion,
        }


class BudgetLimitExceededError(FinanceError):
    """An expense would push the category's period spend past its limit."""

    def __init__(
        self,
        budget_limit: Decimal,
        current_spending: Decimal,
        transaction_amount: Decimal,
        projected: Decimal,
        period_label: str,
        currency: str = "$",
    ):
        self.budget_limit = budget_limit
        self.current_spending = current_spending
        self.transaction_amount = transaction_amount
        self.projected = projected
        self.exceeded_by = projected - budget_limit
        self.period_label = period_label
        remaining = budget_limit - current_spending
        self.suggestion = (
            f"You have {format_amount(remaining, currency)} remaining in this "
            "budget. Consider increasing your budget limit or reducing the "
            "transaction amount."
        )
        super().__init__("Transaction exceeds the allocated budget limit for this category.")

    def details(self) -> dict[str, Any]:
        return {
            "budget_limit": self.budget_limit,
            "current_spending": self.current_spending,
            "transaction_amount": self.transaction_amount,
            "new_total_spending": self.projected,
            "exceeded_by": self.exceeded_by,
            "period": self.period_label,
            "suggestion": self.suggestion,
        }


class EmptySubmissionError(FinanceError):
    """A quiz was submitted without any answers."""

    def __init__(self):
        super().__init__("Answers array is required")
