"""
Shared fixtures.

Every test runs against a fresh InMemoryStorage; no external services
are contacted.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from finwise.models.ledger import Category, CategoryType, Transaction, TransactionType
from finwise.notifications.hub import NotificationHub
from finwise.orchestrator import create_app_components
from finwise.services.storage.memory import InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_owner_id():
    return uuid4()


@pytest.fixture
def hub():
    return NotificationHub()


@pytest.fixture
def app(storage, hub):
    return create_app_components(storage=storage, hub=hub)


@pytest_asyncio.fixture
async def groceries(storage):
    category = Category(name="Groceries", type=CategoryType.EXPENSE, group="Food & Dining")
    await storage.save_category(category)
    return category


@pytest_asyncio.fixture
async def salary(storage):
    category = Category(name="Salary", type=CategoryType.INCOME, group="Work")
    await storage.save_category(category)
    return category


class LedgerSeeder:
    """Inserts transactions directly into storage, bypassing the guards."""

    def __init__(self, storage):
        self._storage = storage

    async def add(self, owner_id, category_id, transaction_type, amount, date):
        transaction = Transaction(
            owner_id=owner_id,
            category_id=category_id,
            type=transaction_type,
            amount=Decimal(str(amount)),
            date=date,
        )
        await self._storage.save_transaction(transaction)
        return transaction

    async def income(self, owner_id, category_id, amount, date=datetime(2024, 2, 10, 9, 30)):
        return await self.add(owner_id, category_id, TransactionType.INCOME, amount, date)

    async def expense(self, owner_id, category_id, amount, date=datetime(2024, 2, 12, 18, 0)):
        return await self.add(owner_id, category_id, TransactionType.EXPENSE, amount, date)


@pytest.fixture
def seeder(storage):
    return LedgerSeeder(storage)
