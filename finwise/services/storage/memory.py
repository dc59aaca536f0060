"""
In-Memory Storage Implementation

Keeps every record in process-local dicts keyed by id. Used by the test
suite and as the default backend when no spreadsheet is configured.

Records are deep-copied on the way in and on the way out, so callers
can never mutate stored state without going through update_*().
"""

from datetime import datetime
from typing import Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel

from finwise.models.ledger import (
    Asset,
    Budget,
    Category,
    CategoryType,
    Debt,
    Transaction,
    TransactionType,
)
from finwise.models.content import QuizCategory, QuizQuestion, Tip
from finwise.services.storage.interface import (
    DuplicateError,
    FinanceStorage,
    RecordNotFoundError,
)


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _copy(record: Optional[ModelT]) -> Optional[ModelT]:
    return record.model_copy(deep=True) if record is not None else None


class InMemoryStorage(FinanceStorage):
    """
    Dict-backed storage for every entity.

    Not shared across processes; the per-(owner, period) locking done by
    the flows is only meaningful with a single process anyway.
    """

    def __init__(self):
        self._categories: dict[UUID, Category] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._budgets: dict[UUID, Budget] = {}
        self._assets: dict[UUID, Asset] = {}
        self._debts: dict[UUID, Debt] = {}
        self._questions: dict[UUID, QuizQuestion] = {}
        self._tips: dict[UUID, Tip] = {}

    # =========================================================================
    # Shared helpers
    # =========================================================================

    @staticmethod
    def _replace(table: dict, record, kind: str) -> bool:
        if record.id not in table:
            raise RecordNotFoundError(f"{kind} {record.id} not found")
        table[record.id] = record.model_copy(deep=True)
        return True

    @staticmethod
    def _delete(table: dict, record_id: UUID) -> bool:
        return table.pop(record_id, None) is not None

    # =========================================================================
    # Categories
    # =========================================================================

    async def save_category(self, category: Category) -> bool:
        if await self.get_category_by_name(category.name) is not None:
            raise DuplicateError(f"Category '{category.name}' already exists")
        self._categories[category.id] = category.model_copy(deep=True)
        return True

    async def get_category(self, category_id: UUID) -> Optional[Category]:
        return _copy(self._categories.get(category_id))

    async def get_category_by_name(self, name: str) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in self._categories.values():
            if category.name.lower() == wanted:
                return _copy(category)
        return None

    async def list_categories(
        self,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        return [
            _copy(c) for c in self._categories.values()
            if category_type is None or c.type == category_type
        ]

    # =========================================================================
    # Transactions
    # =========================================================================

    async def save_transaction(self, transaction: Transaction) -> bool:
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        logger.debug("Transaction saved", transaction_id=str(transaction.id))
        return True

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return _copy(self._transactions.get(transaction_id))

    async def update_transaction(self, transaction: Transaction) -> bool:
        return self._replace(self._transactions, transaction, "Transaction")

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        return self._delete(self._transactions, transaction_id)

    async def list_transactions(
        self,
        owner_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        results = []
        for t in self._transactions.values():
            if t.owner_id != owner_id:
                continue
            if transaction_type is not None and t.type != transaction_type:
                continue
            if category_id is not None and t.category_id != category_id:
                continue
            if date_from is not None and t.date < date_from:
                continue
            if date_to is not None and t.date > date_to:
                continue
            results.append(_copy(t))
        return results

    # =========================================================================
    # Budgets
    # =========================================================================

    def _budget_conflict(self, budget: Budget) -> Optional[Budget]:
        for existing in self._budgets.values():
            if (
                existing.id != budget.id
                and existing.owner_id == budget.owner_id
                and existing.category_id == budget.category_id
                and existing.period_start == budget.period_start
            ):
                return existing
        return None

    async def save_budget(self, budget: Budget) -> bool:
        if self._budget_conflict(budget) is not None:
            raise DuplicateError(
                f"Budget already exists for category {budget.category_id} "
                f"starting {budget.period_start.isoformat()}"
            )
        self._budgets[budget.id] = budget.model_copy(deep=True)
        return True

    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        return _copy(self._budgets.get(budget_id))

    async def update_budget(self, budget: Budget) -> bool:
        if self._budget_conflict(budget) is not None:
            raise DuplicateError(
                f"Another budget already exists for category {budget.category_id} "
                f"starting {budget.period_start.isoformat()}"
            )
        return self._replace(self._budgets, budget, "Budget")

    async def delete_budget(self, budget_id: UUID) -> bool:
        return self._delete(self._budgets, budget_id)

    async def find_budget(
        self,
        owner_id: UUID,
        category_id: UUID,
        period_start: datetime,
    ) -> Optional[Budget]:
        for b in self._budgets.values():
            if (
                b.owner_id == owner_id
                and b.category_id == category_id
                and b.period_start == period_start
            ):
                return _copy(b)
        return None

    async def list_budgets(self, owner_id: UUID) -> list[Budget]:
        return [_copy(b) for b in self._budgets.values() if b.owner_id == owner_id]

    async def list_budgets_by_period(
        self,
        owner_id: UUID,
        period_start: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> list[Budget]:
        return [
            _copy(b) for b in self._budgets.values()
            if b.owner_id == owner_id
            and b.period_start == period_start
            and b.id != exclude_id
        ]

    # =========================================================================
    # Assets & Debts
    # =========================================================================

    async def save_asset(self, asset: Asset) -> bool:
        self._assets[asset.id] = asset.model_copy(deep=True)
        return True

    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        return _copy(self._assets.get(asset_id))

    async def update_asset(self, asset: Asset) -> bool:
        return self._replace(self._assets, asset, "Asset")

    async def delete_asset(self, asset_id: UUID) -> bool:
        return self._delete(self._assets, asset_id)

    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        return [_copy(a) for a in self._assets.values() if a.owner_id == owner_id]

    async def save_debt(self, debt: Debt) -> bool:
        self._debts[debt.id] = debt.model_copy(deep=True)
        return True

    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        return _copy(self._debts.get(debt_id))

    async def update_debt(self, debt: Debt) -> bool:
        return self._replace(self._debts, debt, "Debt")

    async def delete_debt(self, debt_id: UUID) -> bool:
        return self._delete(self._debts, debt_id)

    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        return [_copy(d) for d in self._debts.values() if d.owner_id == owner_id]

    # =========================================================================
    # Quiz questions & Tips
    # =========================================================================

    async def save_question(self, question: QuizQuestion) -> bool:
        self._questions[question.id] = question.model_copy(deep=True)
        return True

    async def get_question(self, question_id: UUID) -> Optional[QuizQuestion]:
        return _copy(self._questions.get(question_id))

    async def update_question(self, question: QuizQuestion) -> bool:
        return self._replace(self._questions, question, "Quiz question")

    async def delete_question(self, question_id: UUID) -> bool:
        return self._delete(self._questions, question_id)

    async def list_questions(
        self,
        category: Optional[QuizCategory] = None,
    ) -> list[QuizQuestion]:
        return [
            _copy(q) for q in self._questions.values()
            if category is None or q.category == category
        ]

    async def save_tip(self, tip: Tip) -> bool:
        self._tips[tip.id] = tip.model_copy(deep=True)
        return True

    async def get_tip(self, tip_id: UUID) -> Optional[Tip]:
        return _copy(self._tips.get(tip_id))

    async def update_tip(self, tip: Tip) -> bool:
        return self._replace(self._tips, tip, "Tip")

    async def delete_tip(self, tip_id: UUID) -> bool:
        return self._delete(self._tips, tip_id)

    async def list_tips(self, published_only: bool = False) -> list[Tip]:
        return [
            _copy(t) for t in self._tips.values()
            if t.is_published or not published_only
        ]
