"""Notification persistence, push delivery and background dispatch."""

from .background import BackgroundNotifier
from .dispatcher import NotificationDispatcher
from .models import Notification, NotificationCategory
from .push import ConnectionManager, PushChannel
from .repository import NotificationRepository

__all__ = [
    "BackgroundNotifier",
    "ConnectionManager",
    "Notification",
    "NotificationCategory",
    "NotificationDispatcher",
    "NotificationRepository",
    "PushChannel",
]
