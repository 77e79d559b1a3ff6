"""Decide whether a notification may go out on a channel."""

from __future__ import annotations

import logging
from datetime import datetime, time

from app.domain.entities import (
    Channel,
    DoNotDisturb,
    Importance,
    NotificationPreference,
    NotificationType,
    parse_channel,
    parse_importance,
    parse_notification_type,
)
from app.utils import local_clock, parse_clock

logger = logging.getLogger(__name__)


def should_notify(
    preferences: NotificationPreference,
    notification_type: NotificationType | str,
    channel: Channel | str,
    importance: Importance | str,
    now: datetime,
) -> bool:
    """Return ``True`` when ``preferences`` let the notification through ``channel``.

    The gates run in order and the first failing one suppresses delivery:

    1. the channel is switched off;
    2. the type is disabled (or missing) in the channel's type map;
    3. ``importance`` ranks below the channel's minimum importance;
    4. ``now`` falls inside the do-not-disturb window, evaluated in the window's
       own timezone. The window applies to every channel and every importance,
       urgent included.

    The function has no side effects. Naive ``now`` values are read in the
    application timezone.
    """

    notification_type = parse_notification_type(notification_type)
    channel = parse_channel(channel)
    importance = parse_importance(importance)

    channel_preferences = preferences.for_channel(channel)
    if not channel_preferences.enabled:
        return False

    if not channel_preferences.allows_type(notification_type):
        return False

    if importance < preferences.minimum_importance_for(channel):
        return False

    if is_within_do_not_disturb(preferences.do_not_disturb, now):
        return False

    return True


def is_within_do_not_disturb(window: DoNotDisturb, now: datetime) -> bool:
    """Return ``True`` when ``window`` is enabled and covers ``now``.

    Bounds are inclusive at minute precision. A window whose start is after its
    end wraps past midnight.
    """

    if not window.enabled:
        return False

    start = parse_clock(window.start_time)
    end = parse_clock(window.end_time)
    current = local_clock(now, window.timezone)
    return _clock_in_window(current, start, end)


def _clock_in_window(current: time, start: time, end: time) -> bool:
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def enabled_channels(
    preferences: NotificationPreference,
    notification_type: NotificationType | str,
    importance: Importance | str,
    now: datetime,
) -> list[Channel]:
    """Return, in delivery order, the channels :func:`should_notify` allows."""

    allowed: list[Channel] = []
    for channel in Channel:
        if should_notify(preferences, notification_type, channel, importance, now):
            allowed.append(channel)
        else:
            logger.debug(
                "Suppressed %s notification for user %s on %s",
                notification_type,
                preferences.user_id,
                channel.value,
            )
    return allowed


__all__ = ["enabled_channels", "is_within_do_not_disturb", "should_notify"]
