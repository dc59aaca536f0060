"""
Integration tests for the flows.

Each test builds the full component set over InMemoryStorage through
create_app_components, the way an application would.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from finwise.guards.errors import (
    BudgetExceedsIncomeError,
    BudgetLimitExceededError,
    DuplicateBudgetError,
    NoBudgetAllocatedError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from finwise.models.content import QuizCategory, TipCategory
from finwise.models.ledger import CategoryType, TransactionType
from finwise.models.notification import NotificationEvent
from finwise.orchestrator import PeriodLocks, create_app_components
from finwise.services.storage.memory import InMemoryStorage


class YieldingStorage(InMemoryStorage):
    """Yields to the event loop before every transaction read."""

    async def list_transactions(self, *args, **kwargs):
        await asyncio.sleep(0)
        return await super().list_transactions(*args, **kwargs)


class RaisingHub:
    """A hub whose delivery always blows up."""

    async def notify_transaction_change(self, owner_id, transaction, action):
        raise RuntimeError("broker down")


async def fund_february(app, seeder, owner_id, salary, groceries, income="1000", limit="100"):
    await seeder.income(owner_id, salary.id, income)
    return await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, limit)


class TestBudgetFlow:
    """Guarded budget create/update, free delete."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)

        assert budget.period_start == datetime(2024, 2, 1)
        assert budget.limit_amount == Decimal("100.00")
        assert [b.id for b in await app.budgets.list_budgets(owner_id, 2024, 2)] == [budget.id]
        assert await app.budgets.list_budgets(owner_id, 2024, 3) == []

    @pytest.mark.asyncio
    async def test_create_without_income_fails(self, app, owner_id, groceries):
        with pytest.raises(BudgetExceedsIncomeError):
            await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "1")

    @pytest.mark.asyncio
    async def test_zero_limit_without_income_passes(self, app, owner_id, groceries):
        budget = await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "0")
        assert budget.limit_amount == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, app, seeder, owner_id, salary, groceries):
        await fund_february(app, seeder, owner_id, salary, groceries)

        with pytest.raises(DuplicateBudgetError):
            await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "10")

    @pytest.mark.asyncio
    async def test_non_expense_category_rejected(self, app, owner_id, salary):
        with pytest.raises(ValidationError) as exc_info:
            await app.budgets.create_budget(owner_id, salary.id, 2024, 2, "0")
        assert exc_info.value.field == "category_id"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("month", [0, 13])
    async def test_bad_month_rejected(self, app, owner_id, groceries, month):
        with pytest.raises(ValidationError):
            await app.budgets.create_budget(owner_id, groceries.id, 2024, month, "0")

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, app, owner_id, groceries):
        with pytest.raises(ValidationError):
            await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "-5")

    @pytest.mark.asyncio
    async def test_update_limit_excludes_itself(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries, limit="900")

        updated = await app.budgets.update_budget(owner_id, budget.id, limit_amount="1000")

        assert updated.limit_amount == Decimal("1000.00")
        assert updated.updated_at >= budget.updated_at

    @pytest.mark.asyncio
    async def test_update_limit_over_income_fails(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)

        with pytest.raises(BudgetExceedsIncomeError):
            await app.budgets.update_budget(owner_id, budget.id, limit_amount="1000.01")

        assert (await app.budgets.get_budget(owner_id, budget.id)).limit_amount == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_move_needs_income_in_target_month(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)

        with pytest.raises(BudgetExceedsIncomeError):
            await app.budgets.update_budget(owner_id, budget.id, year=2024, month=3)

        await seeder.income(owner_id, salary.id, "500", date=datetime(2024, 3, 5))
        moved = await app.budgets.update_budget(owner_id, budget.id, year=2024, month=3)
        assert moved.period_start == datetime(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_year_without_month_does_not_move(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)

        updated = await app.budgets.update_budget(owner_id, budget.id, year=2025)

        assert updated.period_start == datetime(2024, 2, 1)

    @pytest.mark.asyncio
    async def test_move_onto_existing_budget_clashes(self, app, seeder, owner_id, salary, groceries):
        await seeder.income(owner_id, salary.id, "500", date=datetime(2024, 3, 5))
        march = await app.budgets.create_budget(owner_id, groceries.id, 2024, 3, "100")
        february = await fund_february(app, seeder, owner_id, salary, groceries)

        with pytest.raises(DuplicateBudgetError):
            await app.budgets.update_budget(owner_id, february.id, year=2024, month=3)

        assert (await app.budgets.get_budget(owner_id, march.id)).period_start == datetime(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_delete_is_unguarded(self, app, seeder, owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)
        await seeder.expense(owner_id, groceries.id, "100")

        await app.budgets.delete_budget(owner_id, budget.id)

        assert await app.budgets.list_budgets(owner_id) == []


class TestTransactionFlow:
    """Expense creation is guarded; update and delete are not re-validated."""

    @pytest.mark.asyncio
    async def test_income_needs_no_budget(self, app, owner_id, salary):
        transaction = await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "2500", date=datetime(2024, 2, 1)
        )
        assert transaction.amount == Decimal("2500.00")

    @pytest.mark.asyncio
    async def test_expense_needs_budget(self, app, owner_id, groceries):
        with pytest.raises(NoBudgetAllocatedError):
            await app.transactions.create_transaction(
                owner_id, groceries.id, TransactionType.EXPENSE, "5", date=datetime(2024, 2, 3)
            )
        assert await app.transactions.list_transactions(owner_id) == []

    @pytest.mark.asyncio
    async def test_expense_within_then_over_budget(self, app, seeder, owner_id, salary, groceries):
        await fund_february(app, seeder, owner_id, salary, groceries)

        await app.transactions.create_transaction(
            owner_id, groceries.id, TransactionType.EXPENSE, "100", date=datetime(2024, 2, 3)
        )
        with pytest.raises(BudgetLimitExceededError):
            await app.transactions.create_transaction(
                owner_id, groceries.id, TransactionType.EXPENSE, "0.01", date=datetime(2024, 2, 4)
            )

    @pytest.mark.asyncio
    async def test_zero_amount_rejected(self, app, owner_id, salary):
        with pytest.raises(ValidationError) as exc_info:
            await app.transactions.create_transaction(owner_id, salary.id, TransactionType.INCOME, "0")
        assert exc_info.value.field == "amount"

    @pytest.mark.asyncio
    async def test_update_is_not_revalidated(self, app, seeder, owner_id, salary, groceries):
        await fund_february(app, seeder, owner_id, salary, groceries)
        transaction = await app.transactions.create_transaction(
            owner_id, groceries.id, TransactionType.EXPENSE, "50", date=datetime(2024, 2, 3)
        )

        updated = await app.transactions.update_transaction(owner_id, transaction.id, amount="5000")

        assert updated.amount == Decimal("5000.00")
        stored = await app.transactions.get_transaction(owner_id, transaction.id)
        assert stored.amount == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, app, seeder, owner_id, salary):
        older = await seeder.income(owner_id, salary.id, "1", date=datetime(2024, 1, 1))
        newer = await seeder.income(owner_id, salary.id, "1", date=datetime(2024, 2, 1))

        listed = await app.transactions.list_transactions(owner_id)

        assert [t.id for t in listed] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_description_can_be_cleared(self, app, owner_id, salary):
        transaction = await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "10", description="February pay"
        )

        kept = await app.transactions.update_transaction(owner_id, transaction.id, amount="12")
        assert kept.description == "February pay"

        cleared = await app.transactions.update_transaction(owner_id, transaction.id, description=None)
        assert cleared.description is None
        assert cleared.amount == Decimal("12.00")

    @pytest.mark.asyncio
    async def test_delete(self, app, seeder, owner_id, salary):
        transaction = await seeder.income(owner_id, salary.id, "10")

        await app.transactions.delete_transaction(owner_id, transaction.id)

        with pytest.raises(NotFoundError):
            await app.transactions.get_transaction(owner_id, transaction.id)


class TestTransactionNotifications:
    """Every successful change notifies the owner three times."""

    @pytest.mark.asyncio
    async def test_create_update_delete(self, app, hub, owner_id, salary):
        received = []
        hub.subscribe(owner_id, received.append)

        transaction = await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "10"
        )
        await app.transactions.update_transaction(owner_id, transaction.id, description="Bonus")
        await app.transactions.delete_transaction(owner_id, transaction.id)

        assert len(received) == 9
        assert [n.payload["action"] for n in received if n.event == NotificationEvent.DASHBOARD_UPDATE] == [
            "transaction_created",
            "transaction_updated",
            "transaction_deleted",
        ]

    @pytest.mark.asyncio
    async def test_rejected_expense_sends_nothing(self, app, hub, owner_id, groceries):
        received = []
        hub.subscribe(owner_id, received.append)

        with pytest.raises(NoBudgetAllocatedError):
            await app.transactions.create_transaction(owner_id, groceries.id, TransactionType.EXPENSE, "5")

        assert received == []

    @pytest.mark.asyncio
    async def test_broken_hub_does_not_fail_the_mutation(self, storage, owner_id, salary):
        app = create_app_components(storage=storage, hub=RaisingHub())

        transaction = await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "10"
        )

        assert await storage.get_transaction(transaction.id) is not None


class TestOwnership:
    """Another owner's record is not authorized; a missing one is not found."""

    @pytest.mark.asyncio
    async def test_budget(self, app, seeder, owner_id, other_owner_id, salary, groceries):
        budget = await fund_february(app, seeder, owner_id, salary, groceries)

        with pytest.raises(NotAuthorizedError):
            await app.budgets.get_budget(other_owner_id, budget.id)
        with pytest.raises(NotAuthorizedError):
            await app.budgets.update_budget(other_owner_id, budget.id, limit_amount="1")
        with pytest.raises(NotAuthorizedError):
            await app.budgets.delete_budget(other_owner_id, budget.id)
        with pytest.raises(NotFoundError):
            await app.budgets.get_budget(owner_id, uuid4())

    @pytest.mark.asyncio
    async def test_transaction(self, app, seeder, owner_id, other_owner_id, salary):
        transaction = await seeder.income(owner_id, salary.id, "10")

        with pytest.raises(NotAuthorizedError):
            await app.transactions.update_transaction(other_owner_id, transaction.id, amount="1")
        with pytest.raises(NotAuthorizedError):
            await app.transactions.delete_transaction(other_owner_id, transaction.id)
        assert await app.transactions.list_transactions(other_owner_id) == []

    @pytest.mark.asyncio
    async def test_asset_and_debt(self, app, owner_id, other_owner_id):
        asset = await app.assets.create_asset(owner_id, uuid4(), "Savings", "100")
        debt = await app.debts.create_debt(owner_id, uuid4(), "Card", "500", "400", "19.9")

        with pytest.raises(NotAuthorizedError):
            await app.assets.update_asset(other_owner_id, asset.id, current_value="1")
        with pytest.raises(NotAuthorizedError):
            await app.debts.delete_debt(other_owner_id, debt.id)
        with pytest.raises(NotFoundError):
            await app.debts.get_debt(owner_id, uuid4())


class TestAwareDates:
    """ISO dates with a UTC designator flow through guards and reports."""

    @pytest.mark.asyncio
    async def test_aware_income_then_budget(self, app, owner_id, salary, groceries):
        await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, 1000, date="2024-02-15T10:00:00Z"
        )

        budget = await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, 100)

        assert budget.limit_amount == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_aware_expense_and_reports(self, app, owner_id, salary, groceries):
        await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, 1000, date="2024-02-01T08:00:00Z"
        )
        await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, 100)

        await app.transactions.create_transaction(
            owner_id, groceries.id, TransactionType.EXPENSE, 40, date="2024-02-20T18:00:00+01:00"
        )

        breakdown = await app.reports.spending_breakdown(owner_id, 2024, 2)
        assert breakdown.total_spending == Decimal("40.00")
        listed = await app.transactions.list_transactions(
            owner_id,
            date_from=datetime(2024, 2, 20, tzinfo=timezone.utc),
            date_to=datetime(2024, 2, 21, tzinfo=timezone.utc),
        )
        assert [t.date for t in listed] == [datetime(2024, 2, 20, 17, 0)]


class TestAssetAndDebtFlows:

    @pytest.mark.asyncio
    async def test_asset_history_through_updates(self, app, owner_id):
        asset = await app.assets.create_asset(owner_id, uuid4(), "Brokerage", "1000")

        await app.assets.update_asset(owner_id, asset.id, current_value="1200")
        await app.assets.update_asset(owner_id, asset.id, current_value="1200")
        renamed = await app.assets.update_asset(owner_id, asset.id, name="Brokerage (ISA)")

        assert renamed.name == "Brokerage (ISA)"
        assert [s.value for s in renamed.value_history] == [Decimal("1000.00"), Decimal("1200.00")]

    @pytest.mark.asyncio
    async def test_negative_asset_value_rejected(self, app, owner_id):
        asset = await app.assets.create_asset(owner_id, uuid4(), "Cash", "10")

        with pytest.raises(ValidationError) as exc_info:
            await app.assets.update_asset(owner_id, asset.id, current_value="-1")
        assert exc_info.value.field == "current_value"

    @pytest.mark.asyncio
    async def test_debt_balance_set_by_caller(self, app, owner_id):
        debt = await app.debts.create_debt(owner_id, uuid4(), "Student Loan", "20000", "15000", "5")

        updated = await app.debts.update_debt(owner_id, debt.id, remaining_balance="14500")

        assert updated.remaining_balance == Decimal("14500.00")
        assert updated.original_amount == Decimal("20000.00")

    @pytest.mark.asyncio
    async def test_debt_next_payment_date_can_be_cleared(self, app, owner_id):
        debt = await app.debts.create_debt(
            owner_id, uuid4(), "Card", "500", "400", "19.9",
            next_payment_date=datetime(2024, 3, 1),
        )

        kept = await app.debts.update_debt(owner_id, debt.id, name="Visa")
        assert kept.next_payment_date == datetime(2024, 3, 1)

        cleared = await app.debts.update_debt(owner_id, debt.id, next_payment_date=None)
        assert cleared.next_payment_date is None
        assert cleared.name == "Visa"


class TestQuizAndAdminFlows:

    @pytest.mark.asyncio
    async def test_question_lifecycle(self, app):
        question = await app.admin.create_question(
            "What does APR stand for?",
            ["Annual Percentage Rate", "Average Payment Ratio"],
            0,
            QuizCategory.DEBT,
        )

        presentation = await app.quizzes.start_quiz(category=QuizCategory.DEBT)
        assert [q.id for q in presentation.questions] == [question.id]

        result = await app.quizzes.submit_quiz([{"question_id": question.id, "selected_index": 0}])
        assert result.score_percentage == 100

        await app.admin.update_question(question.id, correct_answer_index=1)
        result = await app.quizzes.submit_quiz([{"question_id": question.id, "selected_index": 0}])
        assert result.score_percentage == 0

        await app.admin.delete_question(question.id)
        with pytest.raises(NotFoundError):
            await app.admin.get_question(question.id)

    @pytest.mark.asyncio
    async def test_question_validation(self, app):
        with pytest.raises(ValidationError):
            await app.admin.create_question("Q?", ["A", "B"], 5)

    @pytest.mark.asyncio
    async def test_update_cannot_break_answer_index(self, app):
        question = await app.admin.create_question("Q?", ["A", "B", "C"], 2)

        with pytest.raises(ValidationError):
            await app.admin.update_question(question.id, options=["A", "B"])

    @pytest.mark.asyncio
    async def test_tips_published_filter(self, app):
        admin_id = uuid4()
        shown = await app.admin.create_tip(admin_id, "Emergency fund", "Aim for 3 months.", TipCategory.SAVING)
        hidden = await app.admin.create_tip(admin_id, "Draft", "WIP", TipCategory.BUDGETING, is_published=False)

        assert [t.id for t in await app.admin.list_tips(published_only=True)] == [shown.id]

        await app.admin.update_tip(hidden.id, is_published=True)
        assert len(await app.admin.list_tips(published_only=True)) == 2

    @pytest.mark.asyncio
    async def test_seed_categories_is_idempotent(self, app):
        assert await app.admin.seed_categories() == 31
        assert await app.admin.seed_categories() == 0

        expense = await app.admin.list_categories(CategoryType.EXPENSE)
        assert len(expense) == 12


class TestReportFlow:

    @pytest.mark.asyncio
    async def test_breakdown_rejects_bad_month(self, app, owner_id):
        with pytest.raises(ValidationError):
            await app.reports.spending_breakdown(owner_id, 2024, 13)

    def test_projections_are_exposed(self, app):
        assert app.reports.simulate_investment(1000, 0, 0, 1).final_value == 1000
        assert app.reports.simulate_retirement(0, 100, 0, 0, 1).projected_nominal_value == 100


class TestPeriodLocks:
    """Guard check and write are atomic per (owner, period)."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self, owner_id):
        locks = PeriodLocks()
        order = []

        async def worker(name):
            async with locks.hold(owner_id, datetime(2024, 2, 1)):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_registry_empties_after_release(self, owner_id):
        locks = PeriodLocks()

        for month in range(1, 13):
            async with locks.hold(owner_id, datetime(2024, month, 1)):
                assert locks.active_keys == 1

        assert locks.active_keys == 0

    @pytest.mark.asyncio
    async def test_waiter_keeps_lock_alive(self, owner_id):
        locks = PeriodLocks()
        february = datetime(2024, 2, 1)
        inside = []

        async def worker(name):
            async with locks.hold(owner_id, february):
                inside.append((name, locks.active_keys))
                await asyncio.sleep(0)

        await asyncio.gather(worker("a"), worker("b"))

        assert inside == [("a", 1), ("b", 1)]
        assert locks.active_keys == 0

    @pytest.mark.asyncio
    async def test_registry_empties_after_error(self, owner_id):
        locks = PeriodLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold(owner_id, datetime(2024, 2, 1), datetime(2024, 3, 1)):
                raise RuntimeError("boom")

        assert locks.active_keys == 0

    @pytest.mark.asyncio
    async def test_flows_release_their_locks(self, app, seeder, owner_id, salary, groceries):
        await fund_february(app, seeder, owner_id, salary, groceries)
        await app.transactions.create_transaction(
            owner_id, groceries.id, TransactionType.EXPENSE, "10", date=datetime(2024, 2, 3)
        )

        assert app.budgets._locks is app.transactions._locks
        assert app.budgets._locks.active_keys == 0

    @pytest.mark.asyncio
    async def test_racing_expenses_cannot_overshoot(self, owner_id, salary, groceries):
        storage = YieldingStorage()
        await storage.save_category(salary)
        await storage.save_category(groceries)
        app = create_app_components(storage=storage)
        await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "1000", date=datetime(2024, 2, 1)
        )
        await app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "100")

        results = await asyncio.gather(
            *[
                app.transactions.create_transaction(
                    owner_id, groceries.id, TransactionType.EXPENSE, "60", date=datetime(2024, 2, 10)
                )
                for _ in range(2)
            ],
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, BudgetLimitExceededError)) == 1
        spent = await storage.sum_transaction_amounts(owner_id, transaction_type=TransactionType.EXPENSE)
        assert spent == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_racing_budgets_cannot_over_allocate(self, owner_id, salary, groceries):
        storage = YieldingStorage()
        await storage.save_category(salary)
        await storage.save_category(groceries)
        app = create_app_components(storage=storage)
        await app.transactions.create_transaction(
            owner_id, salary.id, TransactionType.INCOME, "1000", date=datetime(2024, 2, 1)
        )

        results = await asyncio.gather(
            app.budgets.create_budget(owner_id, groceries.id, 2024, 2, "600"),
            app.budgets.create_budget(owner_id, uuid4(), 2024, 2, "600"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, BudgetExceedsIncomeError)) == 1
        assert len(await app.budgets.list_budgets(owner_id)) == 1
