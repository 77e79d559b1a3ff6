"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel

__all__ = [
    "NotificationModel",
    "NotificationPreferenceModel",
]
