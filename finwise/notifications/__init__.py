"""Notifications package."""

from finwise.notifications.hub import NotificationHub

__all__ = ["NotificationHub"]
