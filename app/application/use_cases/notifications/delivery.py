"""Use cases that fan a notification out to its channels and record the outcome."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping

from sqlalchemy.orm import Session

from app.domain.entities import Channel, Notification, parse_channel
from app.domain.exceptions import NotFoundError, ValidationError
from app.infrastructure.notifications import DeliveryResult, NotificationTransport
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

from .preferences import get_or_create_preferences
from .records import NOT_FOUND_MESSAGE
from .routing import enabled_channels

logger = logging.getLogger(__name__)


def track_delivery(
    session: Session,
    notification_id: int,
    channel: Channel | str,
    *,
    success: bool,
    error: str | None = None,
    now: datetime | None = None,
) -> Notification:
    """Replace the channel's delivery record with the outcome of the latest attempt.

    Only the latest attempt per channel is kept: a success stores the time and
    clears any error, a failure stores ``error`` and drops the previous
    timestamp. If the write fails the previous state stays in place.
    """

    channel = parse_channel(channel)
    repository = NotificationRepository(session)
    if not repository.track_delivery(
        notification_id,
        channel,
        succeeded=bool(success),
        delivered_at=(now or now_in_app_timezone()) if success else None,
        error=error,
    ):
        raise NotFoundError(NOT_FOUND_MESSAGE)

    notification = repository.get(notification_id)
    if notification is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return notification


def route_notification(
    session: Session,
    notification: Notification,
    transports: Mapping[Channel, NotificationTransport],
    *,
    now: datetime | None = None,
) -> dict[Channel, DeliveryResult]:
    """Send ``notification`` on every channel its recipient allows.

    Each allowed channel with a transport is attempted once, in order, and its
    outcome is recorded with :func:`track_delivery`. Suppressed channels are
    left without a delivery record.
    """

    if notification.id is None:
        raise ValidationError("La notificación debe guardarse antes de enviarse")

    now = now or now_in_app_timezone()
    preferences = get_or_create_preferences(session, notification.recipient_id)
    results: dict[Channel, DeliveryResult] = {}

    for channel in enabled_channels(
        preferences, notification.type, notification.importance, now
    ):
        transport = transports.get(channel)
        if transport is None:
            logger.debug("No transport registered for channel %s; skipping", channel.value)
            continue

        try:
            result = transport.send(notification, preferences)
        except Exception as exc:  # adapter failures become failed deliveries
            logger.exception(
                "Transport for %s raised while sending notification %s",
                channel.value,
                notification.id,
            )
            result = DeliveryResult(False, str(exc) or exc.__class__.__name__)

        if not result.success:
            logger.warning(
                "Delivery of notification %s on %s failed: %s",
                notification.id,
                channel.value,
                result.error,
            )
        track_delivery(
            session,
            notification.id,
            channel,
            success=result.success,
            error=result.error,
            now=now,
        )
        results[channel] = result

    return results


__all__ = ["route_notification", "track_delivery"]
