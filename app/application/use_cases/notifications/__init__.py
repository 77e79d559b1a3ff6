"""Public entry points of the notification routing and delivery engine."""

from .bulk import cleanup_expired, count_expired, mark_all_read
from .delivery import route_notification, track_delivery
from .preferences import get_or_create_preferences, update_preferences
from .records import (
    NotificationPage,
    create_notification,
    create_project_notification,
    create_task_notification,
    delete_notification,
    get_notification,
    get_unread_count,
    list_notifications,
    mark_notification_read,
    mark_notification_unread,
)
from .routing import enabled_channels, is_within_do_not_disturb, should_notify

__all__ = [
    "NotificationPage",
    "cleanup_expired",
    "count_expired",
    "create_notification",
    "create_project_notification",
    "create_task_notification",
    "delete_notification",
    "enabled_channels",
    "get_notification",
    "get_or_create_preferences",
    "get_unread_count",
    "is_within_do_not_disturb",
    "list_notifications",
    "mark_all_read",
    "mark_notification_read",
    "mark_notification_unread",
    "route_notification",
    "should_notify",
    "track_delivery",
    "update_preferences",
]
