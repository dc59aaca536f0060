"""
Budget Guard

Enforces the allocation invariant: the sum of an owner's budget limits
for a period must not exceed the owner's income transactions in that
period.

DESIGN DECISION: The guard only reads and decides. It never writes and
never locks; the calling flow holds the (owner, period) lock around
validate + persist so the check and the write are atomic within one
process.

Comparisons are strict (`>`), so a zero limit always passes and an
allocation exactly equal to income is allowed.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finwise.config import get_settings
from finwise.guards.errors import BudgetExceedsIncomeError, DuplicateBudgetError
from finwise.guards.period import Period, resolve_period
from finwise.models.ledger import Budget, TransactionType, to_money
from finwise.services.storage.interface import LedgerStorageInterface


logger = structlog.get_logger(__name__)


class BudgetGuard:
    """
    Validates budget creation and updates against period income.

    Usage:
        guard = BudgetGuard(storage)
        period = await guard.validate_create(owner_id, category_id, 2024, 2, 500)
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage
        self._currency = get_settings().app.currency_symbol

    async def validate_create(
        self,
        owner_id: UUID,
        category_id: UUID,
        year: int,
        month: int,
        limit_amount,
    ) -> Period:
        """
        Check that a new budget may be created.

        Returns:
            The resolved period; its start is the budget's period_start

        Raises:
            DuplicateBudgetError: A budget already exists for the
                (owner, category, period) triple
            BudgetExceedsIncomeError: Allocation would exceed income
        """
        period = resolve_period(year, month)
        limit_amount = to_money(limit_amount)

        existing = await self._storage.find_budget(owner_id, category_id, period.start)
        if existing is not None:
            logger.info(
                "Budget rejected: duplicate",
                owner_id=str(owner_id),
                category_id=str(category_id),
                period=period.label,
            )
            raise DuplicateBudgetError(category_id, period.start)

        await self._check_allocation(owner_id, period, limit_amount, exclude_id=None)
        return period

    async def validate_update(
        self,
        existing_budget: Budget,
        owner_id: UUID,
        new_category_id: Optional[UUID] = None,
        new_limit_amount=None,
        new_year: Optional[int] = None,
        new_month: Optional[int] = None,
    ) -> Period:
        """
        Check that an existing budget may be changed.

        The target period stays the budget's current one unless both
        new_year and new_month are given; the limit defaults to the
        current limit. The budget itself is left out of the allocation
        sum so it never counts against its own change. No duplicate
        check is done here; the calling flow looks for a category/period
        collision itself and the store rejects one on write.

        new_category_id does not affect the allocation sum, which spans
        every category of the period.

        Returns:
            The target period

        Raises:
            BudgetExceedsIncomeError: Allocation would exceed income
        """
        if new_year is not None and new_month is not None:
            period = resolve_period(new_year, new_month)
        else:
            current = existing_budget.period_start
            period = resolve_period(current.year, current.month)

        if new_limit_amount is None:
            limit_amount = existing_budget.limit_amount
        else:
            limit_amount = to_money(new_limit_amount)

        await self._check_allocation(owner_id, period, limit_amount, exclude_id=existing_budget.id)
        return period

    async def _check_allocation(
        self,
        owner_id: UUID,
        period: Period,
        limit_amount: Decimal,
        exclude_id: Optional[UUID],
    ) -> None:
        total_income = await self._storage.sum_transaction_amounts(
            owner_id,
            transaction_type=TransactionType.INCOME,
            date_from=period.start,
            date_to=period.end,
        )

        budgets = await self._storage.list_budgets_by_period(
            owner_id, period.start, exclude_id=exclude_id
        )
        existing_allocated = sum((b.limit_amount for b in budgets), Decimal("0.00"))

        projected = existing_allocated + limit_amount
        if projected > total_income:
            logger.info(
                "Budget rejected: allocation exceeds income",
                owner_id=str(owner_id),
                period=period.label,
                total_income=str(total_income),
                existing_allocated=str(existing_allocated),
                requested_amount=str(limit_amount),
            )
            raise BudgetExceedsIncomeError(
                total_income=total_income,
                existing_allocated=existing_allocated,
                requested_amount=limit_amount,
                projected=projected,
                currency=self._currency,
            )
