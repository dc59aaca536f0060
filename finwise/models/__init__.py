"""
Data Models Package

This package contains all Pydantic models used by finwise.
All data flowing through the guards, flows and storage backends must
conform to these schemas.
"""

from finwise.models.ledger import (
    CENT,
    DEFAULT_CATEGORIES,
    Asset,
    Budget,
    Category,
    CategoryType,
    Debt,
    Transaction,
    TransactionType,
    ValueSnapshot,
    default_categories,
    to_money,
)
from finwise.models.content import (
    PresentedQuestion,
    QuizAnswer,
    QuizCategory,
    QuizPresentation,
    QuizQuestion,
    QuizResultItem,
    QuizScore,
    Tip,
    TipCategory,
)
from finwise.models.notification import (
    Notification,
    NotificationAction,
    NotificationEvent,
)

__all__ = [
    # Ledger models
    "CENT",
    "DEFAULT_CATEGORIES",
    "Asset",
    "Budget",
    "Category",
    "CategoryType",
    "Debt",
    "Transaction",
    "TransactionType",
    "ValueSnapshot",
    "default_categories",
    "to_money",
    # Content models
    "PresentedQuestion",
    "QuizAnswer",
    "QuizCategory",
    "QuizPresentation",
    "QuizQuestion",
    "QuizResultItem",
    "QuizScore",
    "Tip",
    "TipCategory",
    # Notifications
    "Notification",
    "NotificationAction",
    "NotificationEvent",
]
