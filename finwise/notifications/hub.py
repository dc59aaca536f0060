"""
Notification Hub

In-process fan-out of change events to per-owner subscribers. Each
owner id acts as a room: a client subscribes a handler for its owner
and receives every event addressed to that owner.

Delivery is fire-and-forget. A failing handler is logged and skipped;
notify() never raises, so a notification problem can never fail or
roll back the mutation that triggered it.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union
from uuid import UUID

import structlog

from finwise.models.ledger import Transaction
from finwise.models.notification import (
    Notification,
    NotificationAction,
    NotificationEvent,
)


logger = structlog.get_logger(__name__)

Handler = Callable[[Notification], Union[None, Awaitable[None]]]


class NotificationHub:
    """Per-owner publish/subscribe."""

    def __init__(self):
        self._subscribers: dict[UUID, list[Handler]] = {}

    def subscribe(self, owner_id: UUID, handler: Handler) -> None:
        """Register a handler (sync or async) for one owner's events."""
        self._subscribers.setdefault(owner_id, []).append(handler)
        logger.debug("Subscriber joined", owner_id=str(owner_id))

    def unsubscribe(self, owner_id: UUID, handler: Handler) -> None:
        handlers = self._subscribers.get(owner_id)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._subscribers[owner_id]
            logger.debug("Subscriber left", owner_id=str(owner_id))

    def subscriber_count(self, owner_id: UUID) -> int:
        return len(self._subscribers.get(owner_id, []))

    async def notify(
        self,
        owner_id: UUID,
        event: NotificationEvent,
        payload: Optional[dict] = None,
        message: Optional[str] = None,
    ) -> int:
        """
        Deliver an event to every subscriber of `owner_id`.

        Returns:
            Number of handlers that accepted the event
        """
        try:
            notification = Notification(
                owner_id=owner_id,
                event=NotificationEvent(event),
                message=message or f"{NotificationEvent(event).value} for owner",
                payload=payload or {},
            )
        except Exception as e:
            logger.error("Notification could not be built", owner_id=str(owner_id), error=str(e))
            return 0

        delivered = 0
        # Copy: handlers may unsubscribe while we iterate
        for handler in list(self._subscribers.get(owner_id, [])):
            try:
                result = handler(notification)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Notification handler failed",
                    error=str(e),
                    notification=notification.to_log_dict(),
                )

        logger.debug("Notification delivered", delivered=delivered, notification=notification.to_log_dict())
        return delivered

    async def notify_transaction_change(
        self,
        owner_id: UUID,
        transaction: Transaction,
        action: NotificationAction,
    ) -> int:
        """
        Emit the budget, transaction and dashboard events for a change.

        Returns:
            Total deliveries across the three events
        """
        action = NotificationAction(action)
        payload = {
            "transaction_id": str(transaction.id),
            "type": transaction.type.value,
            "amount": str(transaction.amount),
            "action": action.value,
        }
        delivered = await self.notify(
            owner_id,
            NotificationEvent.BUDGET_UPDATE,
            payload,
            message=f"Budget affected by {action.value} transaction",
        )
        delivered += await self.notify(
            owner_id,
            NotificationEvent.TRANSACTION_UPDATE,
            payload,
            message=f"Transaction {action.value}",
        )
        delivered += await self.notify(
            owner_id,
            NotificationEvent.DASHBOARD_UPDATE,
            {"action": f"transaction_{action.value}"},
            message="Dashboard data changed",
        )
        return delivered
