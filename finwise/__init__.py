"""
finwise - Personal Finance Engine

The stateful business rules behind a personal-finance application:
budgets that must fit inside income, expenses that must fit inside
budgets, asset and debt tracking, and financial-literacy quizzes.

DESIGN PRINCIPLES:
1. Guards validate against fresh data, never cached state
2. Fail loudly with enough context to explain the rejection
3. Notifications are best-effort and never undo a mutation
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "finwise Team"
