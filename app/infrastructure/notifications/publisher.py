"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from anyio import from_thread

from app.domain.entities import Channel, Notification

from .manager import NotificationConnectionManager, notification_manager

_DELIVERY_FLAG_NAMES: dict[Channel, tuple[str, str]] = {
    Channel.EMAIL: ("sent", "sent_at"),
    Channel.IN_APP: ("displayed", "displayed_at"),
    Channel.SLACK: ("sent", "sent_at"),
}
_DELIVERY_KEYS: dict[Channel, str] = {
    Channel.EMAIL: "email",
    Channel.IN_APP: "in_app",
    Channel.SLACK: "slack",
}


class NotificationPublisher:
    """Serialize notifications and schedule their delivery."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def dispatch(self, notification: Notification) -> bool:
        """Push ``notification`` to its user and report whether it was displayed.

        From a worker thread the send is awaited, so the result is ``True`` only
        when at least one socket accepted the message. Inside a running event
        loop the send can only be scheduled, and an open connection counts as
        displayed.
        """

        if not self._manager.is_connected(notification.recipient_id):
            return False

        message = {"type": "notification", "data": self._serialize(notification)}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            delivered = from_thread.run(
                self._manager.send_to_user, notification.recipient_id, message
            )
            return delivered > 0

        loop.create_task(
            self._manager.send_to_user(notification.recipient_id, message)
        )
        return True

    @staticmethod
    def _serialize(notification: Notification) -> dict[str, Any]:
        return {
            "id": notification.id,
            "recipient_id": notification.recipient_id,
            "type": notification.type.value,
            "title": notification.title,
            "content": notification.content,
            "importance": notification.importance.value,
            "read": notification.read,
            "read_at": _iso_or_none(notification.read_at),
            "reference": {
                "kind": notification.reference.kind.value,
                "id": notification.reference.id,
            },
            "delivery": serialize_delivery(notification),
            "group": notification.group,
            "expires_at": _iso_or_none(notification.expires_at),
            "created_at": _iso_or_none(notification.created_at),
        }


def serialize_delivery(notification: Notification) -> dict[str, dict[str, Any]]:
    """Return the per-channel delivery block using the persisted field names."""

    serialized: dict[str, dict[str, Any]] = {}
    for channel, delivery in notification.delivery.items():
        flag, timestamp = _DELIVERY_FLAG_NAMES[channel]
        serialized[_DELIVERY_KEYS[channel]] = {
            flag: delivery.succeeded,
            timestamp: _iso_or_none(delivery.delivered_at),
            "error": delivery.error,
        }
    return serialized


def _iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


notification_publisher = NotificationPublisher(notification_manager)


def dispatch_notification(notification: Notification) -> bool:
    """Public helper that delegates to the shared publisher instance."""

    return notification_publisher.dispatch(notification)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return NotificationPublisher._serialize(notification)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "dispatch_notification",
    "serialize_delivery",
    "serialize_notification",
]
