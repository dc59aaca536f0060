"""
Transaction Guard

Expense transactions require a budget for their category in the
calendar month of the transaction date, and may not push that
category's month-to-date spend past the budget's limit.

Income transactions never pass through this guard.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog

from finwise.config import get_settings
from finwise.guards.errors import BudgetLimitExceededError, NoBudgetAllocatedError
from finwise.guards.period import period_containing
from finwise.models.ledger import Budget, TransactionType, to_money
from finwise.services.storage.interface import LedgerStorageInterface


logger = structlog.get_logger(__name__)


class TransactionGuard:
    """Validates expense creation against the category's monthly budget."""

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage
        self._currency = get_settings().app.currency_symbol

    async def validate_expense(
        self,
        owner_id: UUID,
        category_id: UUID,
        amount,
        date: datetime,
    ) -> Budget:
        """
        Check that an expense may be recorded.

        Returns:
            The budget the expense counts against

        Raises:
            NoBudgetAllocatedError: No budget for the category's period
            BudgetLimitExceededError: Spend would exceed the limit
        """
        amount = to_money(amount)
        period = period_containing(date)

        budget = await self._storage.find_budget(owner_id, category_id, period.start)
        if budget is None:
            logger.info(
                "Expense rejected: no budget",
                owner_id=str(owner_id),
                category_id=str(category_id),
                period=period.label,
            )
            raise NoBudgetAllocatedError(category_id, period.label)

        # Client-side fold; per-period transaction counts are small
        expenses = await self._storage.list_transactions(
            owner_id,
            transaction_type=TransactionType.EXPENSE,
            category_id=category_id,
            date_from=period.start,
            date_to=period.end,
        )
        total_spent = sum((t.amount for t in expenses), Decimal("0.00"))

        projected = total_spent + amount
        if projected > budget.limit_amount:
            logger.info(
                "Expense rejected: budget limit exceeded",
                owner_id=str(owner_id),
                category_id=str(category_id),
                period=period.label,
                budget_limit=str(budget.limit_amount),
                current_spending=str(total_spent),
                transaction_amount=str(amount),
            )
            raise BudgetLimitExceededError(
                budget_limit=budget.limit_amount,
                current_spending=total_spent,
                transaction_amount=amount,
                projected=projected,
                period_label=period.label,
                currency=self._currency,
            )

        return budget
