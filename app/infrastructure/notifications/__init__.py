"""Realtime notification helpers and channel transports for the infrastructure layer."""

from .manager import NotificationConnectionManager, notification_manager
from .publisher import (
    NotificationPublisher,
    dispatch_notification,
    notification_publisher,
    serialize_delivery,
    serialize_notification,
)
from .transports import (
    DeliveryResult,
    EmailTransport,
    InAppTransport,
    NotificationTransport,
    SlackTransport,
)

__all__ = [
    "NotificationConnectionManager",
    "notification_manager",
    "NotificationPublisher",
    "notification_publisher",
    "dispatch_notification",
    "serialize_delivery",
    "serialize_notification",
    "DeliveryResult",
    "EmailTransport",
    "InAppTransport",
    "NotificationTransport",
    "SlackTransport",
]
