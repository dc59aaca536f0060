"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can inspect their ledger directly in a spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions; the flows serialize writes per (owner, period)
  inside one process, which is the only guarantee offered
- Limited query capabilities (we filter in Python)

Each entity lives in its own worksheet, one record per row. Nested
values (value history, quiz options) are JSON-serialized into a cell.
"""

import json
from datetime import datetime
from typing import Optional, Type, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finwise.config import get_settings
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
    ConnectionError,
    DuplicateError,
    FinanceStorage,
    RecordNotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# Column layouts, one per worksheet. The first column is always the id.
CATEGORY_COLUMNS = ["id", "name", "type", "group", "is_editable", "created_at"]

TRANSACTION_COLUMNS = [
    "id",
    "owner_id",
    "category_id",
    "type",
    "amount",
    "date",
    "description",
    "created_at",
    "updated_at",
]

BUDGET_COLUMNS = [
    "id",
    "owner_id",
    "category_id",
    "period_start",
    "limit_amount",
    "created_at",
    "updated_at",
]

ASSET_COLUMNS = [
    "id",
    "owner_id",
    "category_id",
    "name",
    "current_value",
    "value_history",
    "last_updated",
    "created_at",
]

DEBT_COLUMNS = [
    "id",
    "owner_id",
    "category_id",
    "name",
    "original_amount",
    "remaining_balance",
    "interest_rate",
    "minimum_payment",
    "next_payment_date",
    "created_at",
    "updated_at",
]

QUESTION_COLUMNS = [
    "id",
    "question_text",
    "options",
    "correct_answer_index",
    "category",
    "created_at",
]

TIP_COLUMNS = [
    "id",
    "admin_id",
    "title",
    "body",
    "category",
    "is_published",
    "created_at",
    "updated_at",
]

# Columns whose cell holds a JSON document
JSON_COLUMNS = {"value_history", "options"}


# Writes are retried on transient failures but never on domain conflicts
write_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, RecordNotFoundError)),
    reraise=True,
)


def model_to_row(record: BaseModel, columns: list[str]) -> list:
    """Convert a model to a spreadsheet row in column order."""
    data = record.model_dump(mode="json")
    row = []
    for column in columns:
        value = data.get(column)
        if value is None:
            row.append("")
        elif column in JSON_COLUMNS:
            row.append(json.dumps(value))
        elif isinstance(value, bool):
            row.append(str(value).lower())
        else:
            row.append(str(value))
    return row


def row_to_model(model_cls: Type[ModelT], columns: list[str], row: list) -> ModelT:
    """Convert a spreadsheet row back to a model; blank cells fall back to defaults."""
    # Handle missing columns gracefully
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    data = {}
    for index, column in enumerate(columns):
        cell = safe_get(index)
        if not cell:
            continue
        data[column] = json.loads(cell) if column in JSON_COLUMNS else cell
    return model_cls.model_validate(data)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, setting_name: str, columns: list[str]) -> gspread.Worksheet:
        """
        Get or create a worksheet, writing the header row on creation.

        Args:
            setting_name: Prefix of the *_sheet_name setting, e.g. "budgets"
            columns: Header row for a newly created sheet
        """
        title = getattr(self._settings, f"{setting_name}_sheet_name")
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsStorage(FinanceStorage):
    """
    Google Sheets implementation of every storage interface.

    Reads scan the whole worksheet and filter in Python. Malformed rows
    are skipped with a warning rather than failing the whole read.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # =========================================================================
    # Generic row operations
    # =========================================================================

    def _read_all(
        self,
        sheet_key: str,
        columns: list[str],
        model_cls: Type[ModelT],
    ) -> list[ModelT]:
        try:
            sheet = self._client.get_worksheet(sheet_key, columns)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {sheet_key}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(row_to_model(model_cls, columns, row))
            except Exception as e:
                logger.warning("Skipping malformed row", sheet=sheet_key, row_id=row[0], error=str(e))
        return records

    def _get_by_id(
        self,
        sheet_key: str,
        columns: list[str],
        model_cls: Type[ModelT],
        record_id: UUID,
    ) -> Optional[ModelT]:
        try:
            sheet = self._client.get_worksheet(sheet_key, columns)
            all_rows = sheet.get_all_values()[1:]
            for row in all_rows:
                if row and row[0] == str(record_id):
                    return row_to_model(model_cls, columns, row)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {sheet_key} record: {e}")

    def _append(self, sheet_key: str, columns: list[str], record: BaseModel) -> bool:
        try:
            sheet = self._client.get_worksheet(sheet_key, columns)
            sheet.append_row(model_to_row(record, columns), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {sheet_key} record: {e}")

    def _replace(self, sheet_key: str, columns: list[str], record: BaseModel) -> bool:
        try:
            sheet = self._client.get_worksheet(sheet_key, columns)
            all_rows = sheet.get_all_values()

            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(record.id):
                    new_row = model_to_row(record, columns)
                    for col_idx, value in enumerate(new_row, start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return True

            raise RecordNotFoundError(f"{sheet_key} record not found: {record.id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {sheet_key} record: {e}")

    def _delete(self, sheet_key: str, columns: list[str], record_id: UUID) -> bool:
        try:
            sheet = self._client.get_worksheet(sheet_key, columns)
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(record_id):
                    sheet.delete_rows(idx)
                    return True

            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {sheet_key} record: {e}")

    # =========================================================================
    # Categories
    # =========================================================================

    @write_retry
    async def save_category(self, category: Category) -> bool:
        if await self.get_category_by_name(category.name) is not None:
            raise DuplicateError(f"Category '{category.name}' already exists")
        return self._append("categories", CATEGORY_COLUMNS, category)

    async def get_category(self, category_id: UUID) -> Optional[Category]:
        return self._get_by_id("categories", CATEGORY_COLUMNS, Category, category_id)

    async def get_category_by_name(self, name: str) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in self._read_all("categories", CATEGORY_COLUMNS, Category):
            if category.name.lower() == wanted:
                return category
        return None

    async def list_categories(
        self,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        categories = self._read_all("categories", CATEGORY_COLUMNS, Category)
        if category_type is not None:
            categories = [c for c in categories if c.type == category_type]
        return categories

    # =========================================================================
    # Transactions
    # =========================================================================

    @write_retry
    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._append("transactions", TRANSACTION_COLUMNS, transaction)

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._get_by_id("transactions", TRANSACTION_COLUMNS, Transaction, transaction_id)

    @write_retry
    async def update_transaction(self, transaction: Transaction) -> bool:
        return self._replace("transactions", TRANSACTION_COLUMNS, transaction)

    @write_retry
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        return self._delete("transactions", TRANSACTION_COLUMNS, transaction_id)

    async def list_transactions(
        self,
        owner_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        category_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        results = []
        for t in self._read_all("transactions", TRANSACTION_COLUMNS, Transaction):
            # Apply filters
            if t.owner_id != owner_id:
                continue
            if transaction_type and t.type != transaction_type:
                continue
            if category_id and t.category_id != category_id:
                continue
            if date_from and t.date < date_from:
                continue
            if date_to and t.date > date_to:
                continue
            results.append(t)
        return results

    # =========================================================================
    # Budgets
    # =========================================================================

    async def _budget_conflict(self, budget: Budget) -> bool:
        existing = await self.find_budget(budget.owner_id, budget.category_id, budget.period_start)
        return existing is not None and existing.id != budget.id

    @write_retry
    async def save_budget(self, budget: Budget) -> bool:
        if await self._budget_conflict(budget):
            raise DuplicateError(
                f"Budget already exists for category {budget.category_id} "
                f"starting {budget.period_start.isoformat()}"
            )
        return self._append("budgets", BUDGET_COLUMNS, budget)

    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        return self._get_by_id("budgets", BUDGET_COLUMNS, Budget, budget_id)

    @write_retry
    async def update_budget(self, budget: Budget) -> bool:
        if await self._budget_conflict(budget):
            raise DuplicateError(
                f"Another budget already exists for category {budget.category_id} "
                f"starting {budget.period_start.isoformat()}"
            )
        return self._replace("budgets", BUDGET_COLUMNS, budget)

    @write_retry
    async def delete_budget(self, budget_id: UUID) -> bool:
        return self._delete("budgets", BUDGET_COLUMNS, budget_id)

    async def find_budget(
        self,
        owner_id: UUID,
        category_id: UUID,
        period_start: datetime,
    ) -> Optional[Budget]:
        for b in self._read_all("budgets", BUDGET_COLUMNS, Budget):
            if (
                b.owner_id == owner_id
                and b.category_id == category_id
                and b.period_start == period_start
            ):
                return b
        return None

    async def list_budgets(self, owner_id: UUID) -> list[Budget]:
        return [
            b for b in self._read_all("budgets", BUDGET_COLUMNS, Budget)
            if b.owner_id == owner_id
        ]

    async def list_budgets_by_period(
        self,
        owner_id: UUID,
        period_start: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> list[Budget]:
        return [
            b for b in await self.list_budgets(owner_id)
            if b.period_start == period_start and b.id != exclude_id
        ]

    # =========================================================================
    # Assets & Debts
    # =========================================================================

    @write_retry
    async def save_asset(self, asset: Asset) -> bool:
        return self._append("assets", ASSET_COLUMNS, asset)

    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        return self._get_by_id("assets", ASSET_COLUMNS, Asset, asset_id)

    @write_retry
    async def update_asset(self, asset: Asset) -> bool:
        return self._replace("assets", ASSET_COLUMNS, asset)

    @write_retry
    async def delete_asset(self, asset_id: UUID) -> bool:
        return self._delete("assets", ASSET_COLUMNS, asset_id)

    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        return [
            a for a in self._read_all("assets", ASSET_COLUMNS, Asset)
            if a.owner_id == owner_id
        ]

    @write_retry
    async def save_debt(self, debt: Debt) -> bool:
        return self._append("debts", DEBT_COLUMNS, debt)

    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        return self._get_by_id("debts", DEBT_COLUMNS, Debt, debt_id)

    @write_retry
    async def update_debt(self, debt: Debt) -> bool:
        return self._replace("debts", DEBT_COLUMNS, debt)

    @write_retry
    async def delete_debt(self, debt_id: UUID) -> bool:
        return self._delete("debts", DEBT_COLUMNS, debt_id)

    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        return [
            d for d in self._read_all("debts", DEBT_COLUMNS, Debt)
            if d.owner_id == owner_id
        ]

    # =========================================================================
    # Quiz questions & Tips
    # =========================================================================

    @write_retry
    async def save_question(self, question: QuizQuestion) -> bool:
        return self._append("quiz_questions", QUESTION_COLUMNS, question)

    async def get_question(self, question_id: UUID) -> Optional[QuizQuestion]:
        return self._get_by_id("quiz_questions", QUESTION_COLUMNS, QuizQuestion, question_id)

    @write_retry
    async def update_question(self, question: QuizQuestion) -> bool:
        return self._replace("quiz_questions", QUESTION_COLUMNS, question)

    @write_retry
    async def delete_question(self, question_id: UUID) -> bool:
        return self._delete("quiz_questions", QUESTION_COLUMNS, question_id)

    async def list_questions(
        self,
        category: Optional[QuizCategory] = None,
    ) -> list[QuizQuestion]:
        questions = self._read_all("quiz_questions", QUESTION_COLUMNS, QuizQuestion)
        if category is not None:
            questions = [q for q in questions if q.category == category]
        return questions

    @write_retry
    async def save_tip(self, tip: Tip) -> bool:
        return self._append("tips", TIP_COLUMNS, tip)

    async def get_tip(self, tip_id: UUID) -> Optional[Tip]:
        return self._get_by_id("tips", TIP_COLUMNS, Tip, tip_id)

    @write_retry
    async def update_tip(self, tip: Tip) -> bool:
        return self._replace("tips", TIP_COLUMNS, tip)

    @write_retry
    async def delete_tip(self, tip_id: UUID) -> bool:
        return self._delete("tips", TIP_COLUMNS, tip_id)

    async def list_tips(self, published_only: bool = False) -> list[Tip]:
        tips = self._read_all("tips", TIP_COLUMNS, Tip)
        if published_only:
            tips = [t for t in tips if t.is_published]
        return tips
