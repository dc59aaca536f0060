"""Services package."""

from finwise.services.storage import (
    ConnectionError,
    ContentStorageInterface,
    DuplicateError,
    FinanceStorage,
    GoogleSheetsClient,
    GoogleSheetsStorage,
    HoldingsStorageInterface,
    InMemoryStorage,
    LedgerStorageInterface,
    RecordNotFoundError,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "ContentStorageInterface",
    "DuplicateError",
    "FinanceStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStorage",
    "HoldingsStorageInterface",
    "InMemoryStorage",
    "LedgerStorageInterface",
    "RecordNotFoundError",
    "StorageError",
]
