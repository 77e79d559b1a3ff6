from .notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)
from .notification_preference import (
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
)

__all__ = [
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
    "NotificationRead",
    "UnreadCountResponse",
]
