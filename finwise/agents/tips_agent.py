"""
Saving-Tip Agent

Turns a user's financial summary into one personalised saving tip via
Gemini.

CRITICAL BOUNDARIES:
- The prompt contains ONLY the user's computed summary
- The agent never reads or writes the store
- A missing API key or any model failure yields None; the summary
  report is still returned without a tip

The LLM is a COACH over data we computed, not a source of figures.
"""

import json
from typing import TYPE_CHECKING, Optional

import google.generativeai as genai
import structlog

from finwise.config import get_settings

if TYPE_CHECKING:
    from finwise.reports.summary import FinancialSummary


logger = structlog.get_logger(__name__)


class SavingTipAgent:
    """
    Generates a saving tip from a FinancialSummary.

    RESPONSIBILITIES:
    - Build a prompt from the summary figures
    - Return the model's text, trimmed

    BOUNDARIES:
    - NEVER raises on model failure
    - NEVER invents figures that are not in the summary
    """

    def __init__(self):
        self._settings = get_settings().gemini
        self._currency = get_settings().app.currency_symbol
        self._model: Optional[genai.GenerativeModel] = None
        if self._settings.enabled:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def enabled(self) -> bool:
        return self._model is not None

    def build_prompt(self, summary: "FinancialSummary") -> str:
        c = self._currency
        highest = summary.expenses.highest_category
        highest_str = (
            f"{highest.category_name} ({c}{highest.total:.2f})" if highest else "N/A"
        )
        data = json.dumps(summary.model_dump(mode="json"), indent=2)

        return f"""You are a Personal Finance Coach with expertise in budgeting, saving, and debt management. Based on the following financial data for a user, provide ONE specific, actionable, and personalized saving tip.

The tip should be:
- Directly relevant to the user's financial situation
- Practical and implementable immediately
- Specific (include numbers or percentages when appropriate)
- Encouraging and supportive in tone

User's Financial Data ({summary.period}):
{data}

Key metrics to consider:
- Total Income: {c}{summary.income.total:.2f}
- Total Expenses: {c}{summary.expenses.total:.2f}
- Savings Rate: {summary.savings_rate}%
- Highest Spending Category: {highest_str}
- Total Assets Value: {c}{summary.assets.total_value:.2f}
- Total Debts Balance: {c}{summary.debts.total_balance:.2f}
- Net Worth: {c}{summary.net_worth:.2f}

IMPORTANT: Use ONLY the figures above. Do NOT invent any other numbers.
Please provide your personalized saving tip in 2-3 sentences."""

    async def generate_tip(self, summary: "FinancialSummary") -> Optional[str]:
        """Return a tip, or None when disabled or the model fails."""
        if not self.enabled:
            return None

        try:
            response = await self._model.generate_content_async(self.build_prompt(summary))
            text = response.text.strip()
            return text or None
        except Exception as e:
            logger.warning("Saving tip generation failed", error=str(e))
            return None
