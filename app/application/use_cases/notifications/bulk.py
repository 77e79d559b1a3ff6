"""Set-based state transitions and the expiry sweep."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import NotificationType, parse_notification_type
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def mark_all_read(
    session: Session,
    user_id: str,
    *,
    notification_type: NotificationType | str | None = None,
    now: datetime | None = None,
) -> int:
    """Mark every unread notification of ``user_id`` as read in one statement.

    Returns the number of notifications that changed state.
    """

    parsed_type = parse_notification_type(notification_type) if notification_type else None
    return NotificationRepository(session).mark_all_as_read(
        user_id,
        read_at=now or now_in_app_timezone(),
        notification_type=parsed_type,
    )


def cleanup_expired(session: Session, now: datetime | None = None) -> int:
    """Delete every notification whose ``expires_at`` is strictly before ``now``."""

    now = now or now_in_app_timezone()
    deleted = NotificationRepository(session).delete_expired(now)
    logger.info("Deleted %s expired notifications (cutoff %s)", deleted, now.isoformat())
    return deleted


def count_expired(session: Session, now: datetime | None = None) -> int:
    """Return how many notifications :func:`cleanup_expired` would delete."""

    return NotificationRepository(session).count_expired(now or now_in_app_timezone())


__all__ = ["cleanup_expired", "count_expired", "mark_all_read"]
