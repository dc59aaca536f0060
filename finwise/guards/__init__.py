"""
Guards Package

Business-rule checks that run before a budget or transaction is
persisted, plus the period resolver they share and the domain errors
they raise.
"""

from finwise.guards.errors import (
    BudgetExceedsIncomeError,
    BudgetLimitExceededError,
    DuplicateBudgetError,
    EmptySubmissionError,
    FinanceError,
    NoBudgetAllocatedError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from finwise.guards.period import Period, period_containing, resolve_period
from finwise.guards.budget_guard import BudgetGuard
from finwise.guards.transaction_guard import TransactionGuard

__all__ = [
    # Errors
    "BudgetExceedsIncomeError",
    "BudgetLimitExceededError",
    "DuplicateBudgetError",
    "EmptySubmissionError",
    "FinanceError",
    "NoBudgetAllocatedError",
    "NotAuthorizedError",
    "NotFoundError",
    "ValidationError",
    # Periods
    "Period",
    "period_containing",
    "resolve_period",
    # Guards
    "BudgetGuard",
    "TransactionGuard",
]
