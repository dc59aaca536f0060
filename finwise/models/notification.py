"""
Notification Models

A notification tells a user's connected clients that something they
display is stale. Delivery is best-effort: nothing is persisted and no
acknowledgement is awaited.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class NotificationEvent(str, Enum):
    """Channels a client can listen on."""
    BUDGET_UPDATE = "budgetUpdate"
    TRANSACTION_UPDATE = "transactionUpdate"
    DASHBOARD_UPDATE = "dashboardUpdate"


class NotificationAction(str, Enum):
    """What happened to the record that triggered the notification."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class Notification(BaseModel):
    """A single event addressed to one owner."""

    notification_id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    event: NotificationEvent
    message: str = Field(..., max_length=500)
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "notification_id": str(self.notification_id),
            "owner_id": str(self.owner_id),
            "event": self.event.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }
