"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Use in-memory storage for tests and single-process deployments
2. Keep Google Sheets (or a real database later) behind the same calls
3. Keep the guards decoupled from storage implementation

The interfaces are intentionally simple - we're not building a full ORM.
Just the point lookups, filtered range queries and sums the guards and
flows need. Every query is scoped by owner id where records are owned.

Date ranges are inclusive on both ends, matching the period bounds
produced by the period resolver.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

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


class LedgerStorageInterface(ABC):
    """
    Abstract interface for categories, transactions and budgets.

    Any storage implementation must enforce budget uniqueness on
    (owner_id, category_id, period_start) and raise DuplicateError
    when a save or update would violate it.
    """

    # --- Categories ---------------------------------------------------------

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        """
        Save a category.

        Raises:
            DuplicateError: If a category with the same name exists
        """
        pass

    @abstractmethod
    async def get_category(self, category_id: UUID) -> Optional[Category]:
        pass

    @abstractmethod
    async def get_category_by_name(self, name: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def list_categories(
        self,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        pass

    # --- Transactions -------------------------------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace a stored transaction.

        Raises:
            RecordNotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """Returns True if something was deleted."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        """
        List an owner's transactions with optional filters.

        Args:
            owner_id: Owner whose transactions to list
            transaction_type: Filter by income/expense
            category_id: Filter by category
            date_from: Only transactions on or after this instant
            date_to: Only transactions on or before this instant

        Returns:
            List of matching transactions
        """
        pass

    async def sum_transaction_amounts(
        self,
        owner_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Decimal:
        """
        Sum the amounts of matching transactions.

        The default folds over list_transactions(); backends with a
        server-side aggregate may override it. Returns 0 when nothing
        matches.
        """
        transactions = await self.list_transactions(
            owner_id,
            transaction_type=transaction_type,
            category_id=category_id,
            date_from=date_from,
            date_to=date_to,
        )
        return sum((t.amount for t in transactions), Decimal("0.00"))

    # --- Budgets ------------------------------------------------------------

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        """
        Save a new budget.

        Raises:
            DuplicateError: If the owner already has a budget for this
                category and period
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> bool:
        """
        Replace a stored budget.

        Raises:
            RecordNotFoundError: If the budget doesn't exist
            DuplicateError: If the new category/period collides with
                another of the owner's budgets
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID) -> bool:
        pass

    @abstractmethod
    async def find_budget(
        self,
        owner_id: UUID,
        category_id: UUID,
        period_start: datetime,
    ) -> Optional[Budget]:
        """Point lookup on the uniqueness key."""
        pass

    @abstractmethod
    async def list_budgets(self, owner_id: UUID) -> list[Budget]:
        pass

    @abstractmethod
    async def list_budgets_by_period(
        self,
        owner_id: UUID,
        period_start: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> list[Budget]:
        """
        All of an owner's budgets for one period, across categories.

        Args:
            owner_id: Budget owner
            period_start: First instant of the period
            exclude_id: Budget to leave out (the one being updated)
        """
        pass


class HoldingsStorageInterface(ABC):
    """Abstract interface for assets and debts."""

    @abstractmethod
    async def save_asset(self, asset: Asset) -> bool:
        pass

    @abstractmethod
    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        pass

    @abstractmethod
    async def update_asset(self, asset: Asset) -> bool:
        """
        Replace a stored asset, including its value history.

        Raises:
            RecordNotFoundError: If the asset doesn't exist
        """
        pass

    @abstractmethod
    async def delete_asset(self, asset_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        pass

    @abstractmethod
    async def save_debt(self, debt: Debt) -> bool:
        pass

    @abstractmethod
    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        pass

    @abstractmethod
    async def update_debt(self, debt: Debt) -> bool:
        pass

    @abstractmethod
    async def delete_debt(self, debt_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        pass


class ContentStorageInterface(ABC):
    """
    Abstract interface for quiz questions and tips.

    Content is admin-managed and not scoped by owner.
    """

    @abstractmethod
    async def save_question(self, question: QuizQuestion) -> bool:
        pass

    @abstractmethod
    async def get_question(self, question_id: UUID) -> Optional[QuizQuestion]:
        pass

    @abstractmethod
    async def update_question(self, question: QuizQuestion) -> bool:
        pass

    @abstractmethod
    async def delete_question(self, question_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_questions(
        self,
        category: Optional[QuizCategory] = None,
    ) -> list[QuizQuestion]:
        pass

    @abstractmethod
    async def save_tip(self, tip: Tip) -> bool:
        pass

    @abstractmethod
    async def get_tip(self, tip_id: UUID) -> Optional[Tip]:
        pass

    @abstractmethod
    async def update_tip(self, tip: Tip) -> bool:
        pass

    @abstractmethod
    async def delete_tip(self, tip_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_tips(self, published_only: bool = False) -> list[Tip]:
        pass


class FinanceStorage(LedgerStorageInterface, HoldingsStorageInterface, ContentStorageInterface):
    """A backend that implements every storage interface."""
    pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RecordNotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
