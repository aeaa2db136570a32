"""Notifications module for user notifications.

Provides:
- Notifications for course completion, certificates and passed quizzes
- Notification listing and pagination
- Mark as read functionality
- Unread count tracking

Note: Router is imported directly in main.py to avoid circular imports.
"""

from learnhub.notifications.dispatcher import NotificationDispatcher
from learnhub.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from learnhub.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationDispatcher",
    "NotificationService",
    "NotificationType",
]
