"""Channel adapters that hand a notification to an external delivery service."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import requests

from app.config import get_settings
from app.domain.entities import Channel, Notification, NotificationPreference
from app.infrastructure.email import send_notification_email

from .publisher import NotificationPublisher, notification_publisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome reported by a transport for a single send."""

    success: bool
    error: str | None = None


class NotificationTransport(ABC):
    """Abstract interface for channel delivery adapters."""

    channel: Channel

    @abstractmethod
    def send(
        self, notification: Notification, preferences: NotificationPreference
    ) -> DeliveryResult:
        """Deliver ``notification`` to its recipient."""


class EmailTransport(NotificationTransport):
    """Send notifications through SendGrid.

    Recipients are opaque identifiers, so the caller provides ``resolve_address``
    to map them to an email address.
    """

    channel = Channel.EMAIL

    def __init__(
        self,
        resolve_address: Callable[[str], str | None],
        *,
        sender: Callable[[str, Notification], tuple[bool, str | None]] = send_notification_email,
    ) -> None:
        self._resolve_address = resolve_address
        self._sender = sender

    def send(
        self, notification: Notification, preferences: NotificationPreference
    ) -> DeliveryResult:
        address = self._resolve_address(notification.recipient_id)
        if not address:
            return DeliveryResult(False, "No email address for recipient")
        sent, error = self._sender(address, notification)
        return DeliveryResult(sent, None if sent else error)


class InAppTransport(NotificationTransport):
    """Push notifications to the recipient's open websocket connections."""

    channel = Channel.IN_APP

    def __init__(self, publisher: NotificationPublisher = notification_publisher) -> None:
        self._publisher = publisher

    def send(
        self, notification: Notification, preferences: NotificationPreference
    ) -> DeliveryResult:
        if self._publisher.dispatch(notification):
            return DeliveryResult(True)
        return DeliveryResult(False, "Recipient has no open connection")


class SlackTransport(NotificationTransport):
    """Post notifications to the recipient's Slack incoming webhook."""

    channel = Channel.SLACK

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout

    def send(
        self, notification: Notification, preferences: NotificationPreference
    ) -> DeliveryResult:
        webhook_url = preferences.slack.webhook_url
        if not webhook_url:
            return DeliveryResult(False, "Slack webhook is not configured")

        payload: dict[str, str] = {
            "text": f"*{notification.title}*\n{notification.content}",
        }
        if preferences.slack.channel:
            payload["channel"] = preferences.slack.channel

        timeout = self._timeout or get_settings().slack_timeout_seconds
        try:
            response = requests.post(webhook_url, json=payload, timeout=timeout)
        except requests.RequestException as exc:
            logger.warning(
                "Slack webhook request failed for notification %s: %s", notification.id, exc
            )
            return DeliveryResult(False, f"slack_exception:{exc}")

        if 200 <= response.status_code < 300:
            return DeliveryResult(True)
        logger.warning(
            "Slack webhook responded with status %s for notification %s",
            response.status_code,
            notification.id,
        )
        return DeliveryResult(False, f"slack_http_{response.status_code}")


__all__ = [
    "DeliveryResult",
    "EmailTransport",
    "InAppTransport",
    "NotificationTransport",
    "SlackTransport",
]
