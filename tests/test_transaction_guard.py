"""
Tests for the Transaction Guard.

Expenses need a budget for their month and must stay within its limit.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finwise.guards.errors import BudgetLimitExceededError, NoBudgetAllocatedError
from finwise.guards.transaction_guard import TransactionGuard
from finwise.models.ledger import Budget


@pytest.fixture
def guard(storage):
    return TransactionGuard(storage)


async def save_budget(storage, owner_id, category_id, limit, period_start=datetime(2024, 2, 1)):
    budget = Budget(
        owner_id=owner_id,
        category_id=category_id,
        period_start=period_start,
        limit_amount=limit,
    )
    await storage.save_budget(budget)
    return budget


class TestBudgetExistence:
    """No budget, no expense."""

    @pytest.mark.asyncio
    async def test_expense_without_budget_fails(self, guard, owner_id, groceries):
        with pytest.raises(NoBudgetAllocatedError) as exc_info:
            await guard.validate_expense(owner_id, groceries.id, "10", datetime(2024, 2, 12))

        error = exc_info.value
        assert error.category_id == groceries.id
        assert error.period_label == "February 2024"
        assert error.message == (
            "Cannot record expense: No budget has been allocated for this "
            "category in February 2024."
        )
        assert "February 2024" in error.details()["suggestion"]

    @pytest.mark.asyncio
    async def test_budget_in_other_month_does_not_count(self, guard, storage, owner_id, groceries):
        await save_budget(storage, owner_id, groceries.id, "100", period_start=datetime(2024, 1, 1))

        with pytest.raises(NoBudgetAllocatedError):
            await guard.validate_expense(owner_id, groceries.id, "10", datetime(2024, 2, 1))

    @pytest.mark.asyncio
    async def test_other_owners_budget_does_not_count(self, guard, storage, owner_id, other_owner_id, groceries):
        await save_budget(storage, other_owner_id, groceries.id, "100")

        with pytest.raises(NoBudgetAllocatedError):
            await guard.validate_expense(owner_id, groceries.id, "10", datetime(2024, 2, 12))


class TestHardLimit:
    """Cumulative spend may reach but not pass the limit."""

    @pytest.mark.asyncio
    async def test_fill_budget_then_one_cent_over(self, guard, storage, seeder, owner_id, groceries):
        budget = await save_budget(storage, owner_id, groceries.id, "100")

        returned = await guard.validate_expense(owner_id, groceries.id, "100", datetime(2024, 2, 12))
        assert returned.id == budget.id
        await seeder.expense(owner_id, groceries.id, "100")

        with pytest.raises(BudgetLimitExceededError) as exc_info:
            await guard.validate_expense(owner_id, groceries.id, "0.01", datetime(2024, 2, 20))

        error = exc_info.value
        assert error.budget_limit == Decimal("100.00")
        assert error.current_spending == Decimal("100.00")
        assert error.transaction_amount == Decimal("0.01")
        assert error.projected == Decimal("100.01")
        assert error.exceeded_by == Decimal("0.01")
        assert error.period_label == "February 2024"
        assert error.message == "Transaction exceeds the allocated budget limit for this category."

    @pytest.mark.asyncio
    async def test_decimal_sums_are_exact(self, guard, storage, seeder, owner_id, groceries):
        """0.10 + 0.20 is exactly 0.30, so a 0.30 limit is not exceeded."""
        await save_budget(storage, owner_id, groceries.id, "0.30")
        await seeder.expense(owner_id, groceries.id, "0.10")

        await guard.validate_expense(owner_id, groceries.id, "0.20", datetime(2024, 2, 12))

    @pytest.mark.asyncio
    async def test_only_same_category_spend_counts(self, guard, storage, seeder, owner_id, groceries):
        await save_budget(storage, owner_id, groceries.id, "50")
        await seeder.expense(owner_id, uuid4(), "500")

        await guard.validate_expense(owner_id, groceries.id, "50", datetime(2024, 2, 12))

    @pytest.mark.asyncio
    async def test_spend_in_other_months_does_not_count(self, guard, storage, seeder, owner_id, groceries):
        await save_budget(storage, owner_id, groceries.id, "50")
        await seeder.expense(owner_id, groceries.id, "500", date=datetime(2024, 1, 31, 23, 0))
        await seeder.expense(owner_id, groceries.id, "500", date=datetime(2024, 3, 1, 0, 0))

        await guard.validate_expense(owner_id, groceries.id, "50", datetime(2024, 2, 29, 12, 0))

    @pytest.mark.asyncio
    async def test_income_in_category_does_not_count_as_spend(self, guard, storage, seeder, owner_id, groceries):
        await save_budget(storage, owner_id, groceries.id, "50")
        await seeder.income(owner_id, groceries.id, "500")

        await guard.validate_expense(owner_id, groceries.id, "50", datetime(2024, 2, 12))

    @pytest.mark.asyncio
    async def test_zero_budget_rejects_any_expense(self, guard, storage, owner_id, groceries):
        await save_budget(storage, owner_id, groceries.id, "0")

        with pytest.raises(BudgetLimitExceededError) as exc_info:
            await guard.validate_expense(owner_id, groceries.id, "0.01", datetime(2024, 2, 12))
        assert "$0.00 remaining" in exc_info.value.suggestion
