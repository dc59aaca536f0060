"""
Main Orchestrator for finwise

This module ties together all the components and defines the
owner-facing flows:
1. Budgets (guarded create/update, free delete)
2. Transactions (guarded expense create, notifications on every change)
3. Assets and debts (owner-checked CRUD, asset value history)
4. Quizzes (present, score) and admin content (questions, tips, categories)
5. Reports and projections

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every read/update/delete of an owned record checks the owner
- Guard check and write happen under one (owner, period) lock
- Notifications are sent after the lock is released and can never
  fail the mutation

The lock is an in-process asyncio.Lock. With several worker processes
sharing one store the check-then-write race is back; that deployment
needs a store-level transaction instead.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import Any, NamedTuple, Optional, Type, TypeVar
from uuid import UUID

import pydantic
from pydantic import BaseModel

from finwise.calculators.projections import (
    InvestmentProjection,
    RetirementProjection,
    compound_interest,
    retirement_future_value,
)
from finwise.config import get_settings, validate_all_settings
from finwise.guards.budget_guard import BudgetGuard
from finwise.guards.errors import (
    DuplicateBudgetError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from finwise.guards.period import period_containing, resolve_period
from finwise.guards.transaction_guard import TransactionGuard
from finwise.logging_config import get_logger
from finwise.models.content import (
    QuizCategory,
    QuizPresentation,
    QuizQuestion,
    QuizScore,
    Tip,
    TipCategory,
)
from finwise.models.ledger import (
    Asset,
    Budget,
    Category,
    CategoryType,
    Debt,
    Transaction,
    TransactionType,
    default_categories,
    to_naive_utc,
)
from finwise.models.notification import NotificationAction
from finwise.notifications.hub import NotificationHub
from finwise.quizzes.engine import QuizEngine
from finwise.reports.summary import (
    FinancialSummary,
    NetWorthReport,
    ReportService,
    SavingTipsReport,
    SpendingBreakdown,
)
from finwise.services.storage import (
    FinanceStorage,
    GoogleSheetsClient,
    GoogleSheetsStorage,
    InMemoryStorage,
)


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# =============================================================================
# SHARED HELPERS
# =============================================================================

def build_model(model_cls: Type[ModelT], **data: Any) -> ModelT:
    """Construct a model, turning schema failures into ValidationError."""
    try:
        return model_cls(**data)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Default for update parameters that accept None as "clear this field"
UNSET: Any = _Unset()


def apply_changes(
    record: ModelT,
    changes: dict[str, Any],
    nullable: tuple[str, ...] = (),
) -> ModelT:
    """
    Return a re-validated copy of `record` with the changes applied.

    UNSET always means "leave as is". None means the same, except for
    keys listed in `nullable`, where None clears the field.
    """
    changes = {
        k: v for k, v in changes.items()
        if v is not UNSET and (v is not None or k in nullable)
    }
    return build_model(type(record), **{**record.model_dump(), **changes})


def require_owner(record: Optional[ModelT], owner_id: UUID, entity: str, record_id: UUID) -> ModelT:
    """Return the record if `owner_id` owns it."""
    if record is None:
        raise NotFoundError(entity, record_id)
    if record.owner_id != owner_id:
        logger.info("Ownership check failed", entity=entity, entity_id=str(record_id))
        raise NotAuthorizedError(entity, record_id)
    return record


def require_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month")
    if year < 1:
        raise ValidationError("Year must be a positive integer", field="year")


class PeriodLocks:
    """
    asyncio locks keyed on (owner_id, period_start).

    Budget create/update and expense create take the same key, so an
    allocation change and an expense in the same owner's month are
    serialized.

    A key's lock lives only while someone holds or waits for it; the
    last user out removes it.
    """

    def __init__(self):
        self._locks: dict[tuple[UUID, datetime], asyncio.Lock] = {}
        self._users: dict[tuple[UUID, datetime], int] = {}

    @property
    def active_keys(self) -> int:
        """Keys currently held or awaited."""
        return len(self._locks)

    def _checkout(self, key: tuple[UUID, datetime]) -> asyncio.Lock:
        self._users[key] = self._users.get(key, 0) + 1
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _checkin(self, key: tuple[UUID, datetime]) -> None:
        self._users[key] -= 1
        if self._users[key] == 0:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, owner_id: UUID, *period_starts: datetime):
        """Hold the locks for every given period; acquired in sorted order."""
        keys = sorted({(owner_id, start) for start in period_starts}, key=lambda k: k[1])
        # Registered before the first await so a waiter keeps the lock alive
        locks = [self._checkout(key) for key in keys]
        try:
            async with AsyncExitStack() as stack:
                for lock in locks:
                    await stack.enter_async_context(lock)
                yield
        finally:
            for key in keys:
                self._checkin(key)


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetFlow:
    """
    Orchestrates budget changes.

    Flow (create):
    1. Validate month and category
    2. Lock (owner, period)
    3. Budget Guard: duplicate check, allocation vs. income
    4. Persist
    """

    def __init__(
        self,
        storage: FinanceStorage,
        guard: Optional[BudgetGuard] = None,
        locks: Optional[PeriodLocks] = None,
    ):
        self._storage = storage
        self._guard = guard or BudgetGuard(storage)
        self._locks = locks if locks is not None else PeriodLocks()

    async def _check_category(self, category_id: UUID) -> None:
        """Budgets must point at an expense category when the category is known."""
        category = await self._storage.get_category(category_id)
        if category is not None and category.type != CategoryType.EXPENSE:
            raise ValidationError(
                f"Budgets can only be set for expense categories, not '{category.name}'",
                field="category_id",
            )

    async def create_budget(
        self,
        owner_id: UUID,
        category_id: UUID,
        year: int,
        month: int,
        limit_amount,
    ) -> Budget:
        require_month(year, month)
        await self._check_category(category_id)
        period = resolve_period(year, month)

        budget = build_model(
            Budget,
            owner_id=owner_id,
            category_id=category_id,
            period_start=period.start,
            limit_amount=limit_amount,
        )

        async with self._locks.hold(owner_id, period.start):
            await self._guard.validate_create(
                owner_id, category_id, year, month, budget.limit_amount
            )
            await self._storage.save_budget(budget)

        logger.info(
            "Budget created",
            budget_id=str(budget.id),
            owner_id=str(owner_id),
            period=period.label,
            limit_amount=str(budget.limit_amount),
        )
        return budget

    async def get_budget(self, owner_id: UUID, budget_id: UUID) -> Budget:
        budget = await self._storage.get_budget(budget_id)
        return require_owner(budget, owner_id, "Budget", budget_id)

    async def list_budgets(
        self,
        owner_id: UUID,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> list[Budget]:
        """The owner's budgets, newest period first; optionally one month only."""
        if year is not None and month is not None:
            require_month(year, month)
            budgets = await self._storage.list_budgets_by_period(
                owner_id, resolve_period(year, month).start
            )
        else:
            budgets = await self._storage.list_budgets(owner_id)
        return sorted(budgets, key=lambda b: b.period_start, reverse=True)

    async def update_budget(
        self,
        owner_id: UUID,
        budget_id: UUID,
        category_id: Optional[UUID] = None,
        limit_amount=None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Budget:
        """
        Change a budget's limit, category or month.

        The month only moves when both year and month are given.
        """
        current = await self.get_budget(owner_id, budget_id)
        move = year is not None and month is not None
        if move:
            require_month(year, month)
        if category_id is not None:
            await self._check_category(category_id)
        if limit_amount is not None:
            limit_amount = apply_changes(current, {"limit_amount": limit_amount}).limit_amount
        target_start = resolve_period(year, month).start if move else current.period_start

        async with self._locks.hold(owner_id, current.period_start, target_start):
            # Re-read under the lock
            existing = await self.get_budget(owner_id, budget_id)
            period = await self._guard.validate_update(
                existing,
                owner_id,
                new_category_id=category_id,
                new_limit_amount=limit_amount,
                new_year=year,
                new_month=month,
            )

            new_category = category_id or existing.category_id
            clash = await self._storage.find_budget(owner_id, new_category, period.start)
            if clash is not None and clash.id != existing.id:
                raise DuplicateBudgetError(new_category, period.start)

            updated = apply_changes(existing, {
                "category_id": category_id,
                "limit_amount": limit_amount,
                "period_start": period.start,
                "updated_at": datetime.utcnow(),
            })
            await self._storage.update_budget(updated)

        logger.info(
            "Budget updated",
            budget_id=str(budget_id),
            owner_id=str(owner_id),
            period=period.label,
            limit_amount=str(updated.limit_amount),
        )
        return updated

    async def delete_budget(self, owner_id: UUID, budget_id: UUID) -> None:
        await self.get_budget(owner_id, budget_id)
        await self._storage.delete_budget(budget_id)
        logger.info("Budget deleted", budget_id=str(budget_id), owner_id=str(owner_id))


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionFlow:
    """
    Orchestrates transaction changes.

    Only expense creation runs the Transaction Guard. Update and delete
    are owner-checked but deliberately not re-validated against the
    budget. Every successful change notifies the owner.
    """

    def __init__(
        self,
        storage: FinanceStorage,
        guard: Optional[TransactionGuard] = None,
        hub: Optional[NotificationHub] = None,
        locks: Optional[PeriodLocks] = None,
    ):
        self._storage = storage
        self._guard = guard or TransactionGuard(storage)
        self._hub = hub or NotificationHub()
        self._locks = locks if locks is not None else PeriodLocks()

    async def _notify(self, owner_id: UUID, transaction: Transaction, action: NotificationAction) -> None:
        try:
            await self._hub.notify_transaction_change(owner_id, transaction, action)
        except Exception as e:
            logger.warning(
                "Transaction notification failed",
                transaction_id=str(transaction.id),
                action=action.value,
                error=str(e),
            )

    async def create_transaction(
        self,
        owner_id: UUID,
        category_id: UUID,
        transaction_type: TransactionType,
        amount,
        date: Optional[datetime] = None,
        description: Optional[str] = None,
    ) -> Transaction:
        """
        Record a transaction.

        Raises:
            ValidationError: Malformed input
            NoBudgetAllocatedError: Expense with no budget for its month
            BudgetLimitExceededError: Expense past the budget limit
        """
        transaction = build_model(
            Transaction,
            owner_id=owner_id,
            category_id=category_id,
            type=transaction_type,
            amount=amount,
            date=date or datetime.utcnow(),
            description=description,
        )

        if transaction.type == TransactionType.EXPENSE:
            period = period_containing(transaction.date)
            async with self._locks.hold(owner_id, period.start):
                await self._guard.validate_expense(
                    owner_id, category_id, transaction.amount, transaction.date
                )
                await self._storage.save_transaction(transaction)
        else:
            await self._storage.save_transaction(transaction)

        logger.info(
            "Transaction created",
            transaction_id=str(transaction.id),
            owner_id=str(owner_id),
            type=transaction.type.value,
            amount=str(transaction.amount),
        )
        await self._notify(owner_id, transaction, NotificationAction.CREATED)
        return transaction

    async def get_transaction(self, owner_id: UUID, transaction_id: UUID) -> Transaction:
        transaction = await self._storage.get_transaction(transaction_id)
        return require_owner(transaction, owner_id, "Transaction", transaction_id)

    async def list_transactions(
        self,
        owner_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        transactions = await self._storage.list_transactions(
            owner_id,
            transaction_type=transaction_type,
            category_id=category_id,
            date_from=to_naive_utc(date_from),
            date_to=to_naive_utc(date_to),
        )
        return sorted(transactions, key=lambda t: t.date, reverse=True)

    async def update_transaction(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        category_id: Optional[UUID] = None,
        transaction_type: Optional[TransactionType] = None,
        amount=None,
        date: Optional[datetime] = None,
        description: Optional[str] = UNSET,
    ) -> Transaction:
        """Edit a transaction; description=None clears the description."""
        existing = await self.get_transaction(owner_id, transaction_id)
        updated = apply_changes(existing, {
            "category_id": category_id,
            "type": transaction_type,
            "amount": amount,
            "date": date,
            "description": description,
            "updated_at": datetime.utcnow(),
        }, nullable=("description",))
        await self._storage.update_transaction(updated)

        logger.info("Transaction updated", transaction_id=str(transaction_id), owner_id=str(owner_id))
        await self._notify(owner_id, updated, NotificationAction.UPDATED)
        return updated

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> None:
        existing = await self.get_transaction(owner_id, transaction_id)
        await self._storage.delete_transaction(transaction_id)

        logger.info("Transaction deleted", transaction_id=str(transaction_id), owner_id=str(owner_id))
        await self._notify(owner_id, existing, NotificationAction.DELETED)


# =============================================================================
# ASSETS & DEBTS
# =============================================================================

class AssetFlow:
    """Owner-checked asset CRUD with append-only value history."""

    def __init__(self, storage: FinanceStorage):
        self._storage = storage

    async def create_asset(
        self,
        owner_id: UUID,
        category_id: UUID,
        name: str,
        current_value,
    ) -> Asset:
        asset = build_model(
            Asset,
            owner_id=owner_id,
            category_id=category_id,
            name=name,
            current_value=current_value,
        )
        await self._storage.save_asset(asset)
        logger.info("Asset created", asset_id=str(asset.id), owner_id=str(owner_id))
        return asset

    async def get_asset(self, owner_id: UUID, asset_id: UUID) -> Asset:
        asset = await self._storage.get_asset(asset_id)
        return require_owner(asset, owner_id, "Asset", asset_id)

    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        assets = await self._storage.list_assets(owner_id)
        return sorted(assets, key=lambda a: a.last_updated, reverse=True)

    async def update_asset(
        self,
        owner_id: UUID,
        asset_id: UUID,
        name: Optional[str] = None,
        category_id: Optional[UUID] = None,
        current_value=None,
    ) -> Asset:
        """Edit an asset; a changed value appends a history snapshot."""
        existing = await self.get_asset(owner_id, asset_id)
        asset = apply_changes(existing, {"name": name, "category_id": category_id})

        if current_value is not None:
            try:
                asset.record_value(current_value)
            except ValueError as e:
                raise ValidationError(str(e), field="current_value") from e
        asset.last_updated = datetime.utcnow()

        await self._storage.update_asset(asset)
        logger.info(
            "Asset updated",
            asset_id=str(asset_id),
            owner_id=str(owner_id),
            history_length=len(asset.value_history),
        )
        return asset

    async def delete_asset(self, owner_id: UUID, asset_id: UUID) -> None:
        await self.get_asset(owner_id, asset_id)
        await self._storage.delete_asset(asset_id)
        logger.info("Asset deleted", asset_id=str(asset_id), owner_id=str(owner_id))


class DebtFlow:
    """Owner-checked debt CRUD. Balances are set by the caller."""

    def __init__(self, storage: FinanceStorage):
        self._storage = storage

    async def create_debt(
        self,
        owner_id: UUID,
        category_id: UUID,
        name: str,
        original_amount,
        remaining_balance,
        interest_rate,
        minimum_payment=0,
        next_payment_date: Optional[datetime] = None,
    ) -> Debt:
        debt = build_model(
            Debt,
            owner_id=owner_id,
            category_id=category_id,
            name=name,
            original_amount=original_amount,
            remaining_balance=remaining_balance,
            interest_rate=interest_rate,
            minimum_payment=minimum_payment,
            next_payment_date=next_payment_date,
        )
        await self._storage.save_debt(debt)
        logger.info("Debt created", debt_id=str(debt.id), owner_id=str(owner_id))
        return debt

    async def get_debt(self, owner_id: UUID, debt_id: UUID) -> Debt:
        debt = await self._storage.get_debt(debt_id)
        return require_owner(debt, owner_id, "Debt", debt_id)

    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        debts = await self._storage.list_debts(owner_id)
        return sorted(debts, key=lambda d: d.created_at, reverse=True)

    async def update_debt(
        self,
        owner_id: UUID,
        debt_id: UUID,
        name: Optional[str] = None,
        category_id: Optional[UUID] = None,
        original_amount=None,
        remaining_balance=None,
        interest_rate=None,
        minimum_payment=None,
        next_payment_date: Optional[datetime] = UNSET,
    ) -> Debt:
        """Edit a debt; next_payment_date=None clears the date."""
        existing = await self.get_debt(owner_id, debt_id)
        debt = apply_changes(existing, {
            "name": name,
            "category_id": category_id,
            "original_amount": original_amount,
            "remaining_balance": remaining_balance,
            "interest_rate": interest_rate,
            "minimum_payment": minimum_payment,
            "next_payment_date": next_payment_date,
            "updated_at": datetime.utcnow(),
        }, nullable=("next_payment_date",))
        await self._storage.update_debt(debt)
        logger.info("Debt updated", debt_id=str(debt_id), owner_id=str(owner_id))
        return debt

    async def delete_debt(self, owner_id: UUID, debt_id: UUID) -> None:
        await self.get_debt(owner_id, debt_id)
        await self._storage.delete_debt(debt_id)
        logger.info("Debt deleted", debt_id=str(debt_id), owner_id=str(owner_id))


# =============================================================================
# QUIZZES & ADMIN CONTENT
# =============================================================================

class QuizFlow:
    """Quiz taking: start (present) and submit (score)."""

    def __init__(
        self,
        storage: FinanceStorage,
        engine: Optional[QuizEngine] = None,
    ):
        self._engine = engine or QuizEngine(storage)

    async def start_quiz(
        self,
        category: Optional[QuizCategory] = None,
        count: Optional[int] = None,
    ) -> QuizPresentation:
        return await self._engine.present(category=category, count=count)

    async def submit_quiz(self, answers: Optional[list]) -> QuizScore:
        return await self._engine.score(answers)


class AdminFlow:
    """
    Admin management of reference data: quiz questions, tips and
    categories. Who counts as an admin is decided by the caller.
    """

    def __init__(self, storage: FinanceStorage):
        self._storage = storage

    # --- Categories ---------------------------------------------------------

    async def seed_categories(self) -> int:
        """Insert any default category that is missing. Returns how many were added."""
        added = 0
        for category in default_categories():
            if await self._storage.get_category_by_name(category.name) is None:
                await self._storage.save_category(category)
                added += 1
        logger.info("Categories seeded", added=added)
        return added

    async def list_categories(self, category_type: Optional[CategoryType] = None) -> list[Category]:
        categories = await self._storage.list_categories(category_type)
        return sorted(categories, key=lambda c: (c.type.value, c.name))

    # --- Quiz questions -----------------------------------------------------

    async def create_question(
        self,
        question_text: str,
        options: list[str],
        correct_answer_index: int,
        category: QuizCategory = QuizCategory.GENERAL,
    ) -> QuizQuestion:
        question = build_model(
            QuizQuestion,
            question_text=question_text,
            options=options,
            correct_answer_index=correct_answer_index,
            category=category,
        )
        await self._storage.save_question(question)
        logger.info("Quiz question created", question_id=str(question.id))
        return question

    async def get_question(self, question_id: UUID) -> QuizQuestion:
        question = await self._storage.get_question(question_id)
        if question is None:
            raise NotFoundError("Quiz question", question_id)
        return question

    async def list_questions(self, category: Optional[QuizCategory] = None) -> list[QuizQuestion]:
        questions = await self._storage.list_questions(category)
        return sorted(questions, key=lambda q: q.created_at, reverse=True)

    async def update_question(
        self,
        question_id: UUID,
        question_text: Optional[str] = None,
        options: Optional[list[str]] = None,
        correct_answer_index: Optional[int] = None,
        category: Optional[QuizCategory] = None,
    ) -> QuizQuestion:
        existing = await self.get_question(question_id)
        question = apply_changes(existing, {
            "question_text": question_text,
            "options": options,
            "correct_answer_index": correct_answer_index,
            "category": category,
        })
        await self._storage.update_question(question)
        logger.info("Quiz question updated", question_id=str(question_id))
        return question

    async def delete_question(self, question_id: UUID) -> None:
        await self.get_question(question_id)
        await self._storage.delete_question(question_id)
        logger.info("Quiz question deleted", question_id=str(question_id))

    # --- Tips ---------------------------------------------------------------

    async def create_tip(
        self,
        admin_id: UUID,
        title: str,
        body: str,
        category: TipCategory,
        is_published: bool = True,
    ) -> Tip:
        tip = build_model(
            Tip,
            admin_id=admin_id,
            title=title,
            body=body,
            category=category,
            is_published=is_published,
        )
        await self._storage.save_tip(tip)
        logger.info("Tip created", tip_id=str(tip.id), admin_id=str(admin_id))
        return tip

    async def get_tip(self, tip_id: UUID) -> Tip:
        tip = await self._storage.get_tip(tip_id)
        if tip is None:
            raise NotFoundError("Tip", tip_id)
        return tip

    async def list_tips(self, published_only: bool = False) -> list[Tip]:
        tips = await self._storage.list_tips(published_only=published_only)
        return sorted(tips, key=lambda t: t.created_at, reverse=True)

    async def update_tip(
        self,
        tip_id: UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
        category: Optional[TipCategory] = None,
        is_published: Optional[bool] = None,
    ) -> Tip:
        existing = await self.get_tip(tip_id)
        tip = apply_changes(existing, {
            "title": title,
            "body": body,
            "category": category,
            "is_published": is_published,
            "updated_at": datetime.utcnow(),
        })
        await self._storage.update_tip(tip)
        logger.info("Tip updated", tip_id=str(tip_id))
        return tip

    async def delete_tip(self, tip_id: UUID) -> None:
        await self.get_tip(tip_id)
        await self._storage.delete_tip(tip_id)
        logger.info("Tip deleted", tip_id=str(tip_id))


# =============================================================================
# REPORTS & PROJECTIONS
# =============================================================================

class ReportFlow:
    """Read-only reports and what-if projections."""

    def __init__(
        self,
        storage: FinanceStorage,
        report_service: Optional[ReportService] = None,
    ):
        self._reports = report_service or ReportService(storage)

    async def net_worth(self, owner_id: UUID) -> NetWorthReport:
        return await self._reports.net_worth(owner_id)

    async def spending_breakdown(
        self,
        owner_id: UUID,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> SpendingBreakdown:
        if year is not None and month is not None:
            require_month(year, month)
        return await self._reports.spending_breakdown(owner_id, year, month)

    async def financial_summary(self, owner_id: UUID, days: Optional[int] = None) -> FinancialSummary:
        return await self._reports.financial_summary(owner_id, days=days)

    async def saving_tips(self, owner_id: UUID) -> SavingTipsReport:
        return await self._reports.saving_tips(owner_id)

    def simulate_investment(
        self,
        initial: float,
        monthly_contribution: float,
        annual_return_pct: float,
        years: int,
    ) -> InvestmentProjection:
        return compound_interest(initial, monthly_contribution, annual_return_pct, years)

    def simulate_retirement(
        self,
        current_savings: float,
        annual_contribution: float,
        annual_return_pct: float,
        inflation_pct: float,
        years_until_retirement: int,
    ) -> RetirementProjection:
        return retirement_future_value(
            current_savings,
            annual_contribution,
            annual_return_pct,
            inflation_pct,
            years_until_retirement,
        )


# =============================================================================
# FACTORY
# =============================================================================

class AppComponents(NamedTuple):
    storage: FinanceStorage
    hub: NotificationHub
    budgets: BudgetFlow
    transactions: TransactionFlow
    assets: AssetFlow
    debts: DebtFlow
    quizzes: QuizFlow
    admin: AdminFlow
    reports: ReportFlow


def create_storage() -> FinanceStorage:
    """
    Build the configured storage backend.

    Falls back to in-memory storage when Google Sheets is selected but
    not configured.
    """
    if get_settings().app.storage_backend == "google_sheets":
        try:
            return GoogleSheetsStorage(GoogleSheetsClient())
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("Google Sheets storage not configured, using memory", error=str(e))
    return InMemoryStorage()


def create_app_components(
    storage: Optional[FinanceStorage] = None,
    hub: Optional[NotificationHub] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    The budget and transaction flows share one PeriodLocks registry;
    that sharing is what serializes budget changes against expenses.

    Args:
        storage: Backend to use; built from settings if omitted
        hub: Notification hub; a fresh one if omitted
    """
    status = validate_all_settings()
    for section in ("app", "quiz", "gemini", "google_sheets"):
        if not status[section]:
            logger.info(
                "Settings section not configured",
                section=section,
                error=status.get(f"{section}_error"),
            )

    storage = storage or create_storage()
    hub = hub or NotificationHub()
    locks = PeriodLocks()

    return AppComponents(
        storage=storage,
        hub=hub,
        budgets=BudgetFlow(storage, locks=locks),
        transactions=TransactionFlow(storage, hub=hub, locks=locks),
        assets=AssetFlow(storage),
        debts=DebtFlow(storage),
        quizzes=QuizFlow(storage),
        admin=AdminFlow(storage),
        reports=ReportFlow(storage),
    )
