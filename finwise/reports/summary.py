"""
Financial Reports

Read-only aggregations over one owner's records:

- net_worth: current asset values minus remaining debt balances
- spending_breakdown: a month's expenses per category, largest first
- financial_summary: a look-back window (90 days by default) of income,
  expenses, savings rate and holdings
- saving_tips: the summary plus an optional AI-generated tip

Nothing here writes to the store.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from finwise.agents.tips_agent import SavingTipAgent
from finwise.config import get_settings
from finwise.guards.period import period_containing, resolve_period
from finwise.models.ledger import TransactionType, to_naive_utc
from finwise.services.storage.interface import FinanceStorage


logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")
UNCATEGORIZED = "Uncategorized"


# =============================================================================
# REPORT MODELS
# =============================================================================

class NetWorthReport(BaseModel):
    total_assets: Decimal
    total_debts: Decimal
    net_worth: Decimal


class CategoryTotal(BaseModel):
    category_id: UUID
    category_name: str
    total: Decimal


class SpendingBreakdown(BaseModel):
    """Expenses for one calendar month grouped by category."""

    month: str = Field(..., description="e.g. 'February 2024'")
    total_spending: Decimal
    breakdown: list[CategoryTotal]


class IncomeSummary(BaseModel):
    total: Decimal
    by_category: list[CategoryTotal] = Field(default_factory=list)


class ExpenseSummary(BaseModel):
    total: Decimal
    by_category: list[CategoryTotal] = Field(default_factory=list)
    highest_category: Optional[CategoryTotal] = None


class AssetSummary(BaseModel):
    total_value: Decimal
    count: int


class DebtSummary(BaseModel):
    total_balance: Decimal
    count: int


class FinancialSummary(BaseModel):
    """Snapshot of an owner's finances over a look-back window."""

    period: str
    date_from: datetime
    date_to: datetime
    income: IncomeSummary
    expenses: ExpenseSummary
    savings_rate: int = Field(..., description="Percent of income not spent")
    assets: AssetSummary
    debts: DebtSummary
    net_worth: Decimal


class SavingTipsReport(BaseModel):
    summary: FinancialSummary
    ai_tip: Optional[str] = None


def savings_rate(income: Decimal, expenses: Decimal) -> int:
    """Whole-percent savings rate; 0 when there is no income."""
    if income <= 0:
        return 0
    rate = (income - expenses) / income * 100
    return int(rate.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# =============================================================================
# SERVICE
# =============================================================================

class ReportService:
    """
    Builds reports for one owner at a time.

    Args:
        storage: Backend implementing every storage interface
        tip_agent: Saving-tip generator; built from settings if omitted
    """

    def __init__(
        self,
        storage: FinanceStorage,
        tip_agent: Optional[SavingTipAgent] = None,
    ):
        self._storage = storage
        self._tip_agent = tip_agent
        self._window_days = get_settings().app.summary_window_days

    @property
    def tip_agent(self) -> SavingTipAgent:
        if self._tip_agent is None:
            self._tip_agent = SavingTipAgent()
        return self._tip_agent

    async def _category_totals(self, totals: dict[UUID, Decimal]) -> list[CategoryTotal]:
        rows = []
        for category_id, total in totals.items():
            category = await self._storage.get_category(category_id)
            rows.append(CategoryTotal(
                category_id=category_id,
                category_name=category.name if category else UNCATEGORIZED,
                total=total,
            ))
        rows.sort(key=lambda r: r.total, reverse=True)
        return rows

    async def net_worth(self, owner_id: UUID) -> NetWorthReport:
        assets = await self._storage.list_assets(owner_id)
        debts = await self._storage.list_debts(owner_id)
        total_assets = sum((a.current_value for a in assets), ZERO)
        total_debts = sum((d.remaining_balance for d in debts), ZERO)
        return NetWorthReport(
            total_assets=total_assets,
            total_debts=total_debts,
            net_worth=total_assets - total_debts,
        )

    async def spending_breakdown(
        self,
        owner_id: UUID,
        year: Optional[int] = None,
        month: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SpendingBreakdown:
        """Expense totals per category for (year, month), default the current month."""
        if year is not None and month is not None:
            period = resolve_period(year, month)
        else:
            period = period_containing(now or datetime.utcnow())

        expenses = await self._storage.list_transactions(
            owner_id,
            transaction_type=TransactionType.EXPENSE,
            date_from=period.start,
            date_to=period.end,
        )
        totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for t in expenses:
            totals[t.category_id] += t.amount

        breakdown = await self._category_totals(totals)
        return SpendingBreakdown(
            month=period.label,
            total_spending=sum((row.total for row in breakdown), ZERO),
            breakdown=breakdown,
        )

    async def financial_summary(
        self,
        owner_id: UUID,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> FinancialSummary:
        days = days or self._window_days
        date_to = to_naive_utc(now) or datetime.utcnow()
        date_from = date_to - timedelta(days=days)

        transactions = await self._storage.list_transactions(
            owner_id, date_from=date_from, date_to=date_to
        )
        income_totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        expense_totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for t in transactions:
            bucket = income_totals if t.type == TransactionType.INCOME else expense_totals
            bucket[t.category_id] += t.amount

        income_rows = await self._category_totals(income_totals)
        expense_rows = await self._category_totals(expense_totals)
        total_income = sum((r.total for r in income_rows), ZERO)
        total_expenses = sum((r.total for r in expense_rows), ZERO)

        worth = await self.net_worth(owner_id)
        asset_count = len(await self._storage.list_assets(owner_id))
        debt_count = len(await self._storage.list_debts(owner_id))

        return FinancialSummary(
            period=f"Last {days} days",
            date_from=date_from,
            date_to=date_to,
            income=IncomeSummary(total=total_income, by_category=income_rows),
            expenses=ExpenseSummary(
                total=total_expenses,
                by_category=expense_rows,
                highest_category=expense_rows[0] if expense_rows else None,
            ),
            savings_rate=savings_rate(total_income, total_expenses),
            assets=AssetSummary(total_value=worth.total_assets, count=asset_count),
            debts=DebtSummary(total_balance=worth.total_debts, count=debt_count),
            net_worth=worth.net_worth,
        )

    async def saving_tips(
        self,
        owner_id: UUID,
        now: Optional[datetime] = None,
    ) -> SavingTipsReport:
        summary = await self.financial_summary(owner_id, now=now)
        tip = await self.tip_agent.generate_tip(summary)
        if tip is None:
            logger.info("Saving tips returned without AI tip", owner_id=str(owner_id))
        return SavingTipsReport(summary=summary, ai_tip=tip)
