"""Reports package."""

from finwise.reports.summary import (
    CategoryTotal,
    FinancialSummary,
    NetWorthReport,
    ReportService,
    SavingTipsReport,
    SpendingBreakdown,
    savings_rate,
)

__all__ = [
    "CategoryTotal",
    "FinancialSummary",
    "NetWorthReport",
    "ReportService",
    "SavingTipsReport",
    "SpendingBreakdown",
    "savings_rate",
]
