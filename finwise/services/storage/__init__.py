"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The in-memory backend is the default; Google Sheets is available for
users who want their ledger in a spreadsheet.
"""

from finwise.services.storage.interface import (
    ConnectionError,
    ContentStorageInterface,
    DuplicateError,
    FinanceStorage,
    HoldingsStorageInterface,
    LedgerStorageInterface,
    RecordNotFoundError,
    StorageError,
)
from finwise.services.storage.memory import InMemoryStorage
from finwise.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsStorage,
)

__all__ = [
    # Interfaces
    "ContentStorageInterface",
    "FinanceStorage",
    "HoldingsStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "RecordNotFoundError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
    "InMemoryStorage",
]
