"""AI agents package."""

from finwise.agents.tips_agent import SavingTipAgent

__all__ = ["SavingTipAgent"]
