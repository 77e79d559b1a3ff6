"""Domain entity holding a user's notification delivery preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.domain.exceptions import ValidationError

from .importance import Importance, parse_importance
from .notification import Channel, NotificationType

DEFAULT_DIGEST_TIME = "09:00"
DEFAULT_DND_START = "22:00"
DEFAULT_DND_END = "08:00"
DEFAULT_DND_TIMEZONE = "UTC"

# Types enabled out of the box on email and in-app. The remaining types
# (milestones, risk and system alerts) must be opted into per channel.
DEFAULT_ENABLED_TYPES: frozenset[NotificationType] = frozenset(
    {
        NotificationType.TASK_ASSIGNED,
        NotificationType.STATUS_CHANGE,
        NotificationType.TASK_COMPLETED,
        NotificationType.PROJECT_UPDATE,
        NotificationType.COMMENT_ADDED,
        NotificationType.MENTION,
        NotificationType.DEADLINE_APPROACHING,
        NotificationType.TEAM_CHANGE,
    }
)

DEFAULT_MINIMUM_IMPORTANCE: dict[Channel, Importance] = {
    Channel.EMAIL: Importance.LOW,
    Channel.IN_APP: Importance.LOW,
    Channel.SLACK: Importance.MEDIUM,
}


class DigestFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


def parse_digest_frequency(value: DigestFrequency | str | None) -> DigestFrequency:
    """Return the :class:`DigestFrequency` for ``value`` or raise ``ValidationError``."""

    if isinstance(value, DigestFrequency):
        return value
    try:
        return DigestFrequency(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Frecuencia de resumen no válida: {value}") from exc


def default_type_map(*, enabled: bool) -> dict[NotificationType, bool]:
    """Return a type map covering every :class:`NotificationType`."""

    return {
        notification_type: enabled and notification_type in DEFAULT_ENABLED_TYPES
        for notification_type in NotificationType
    }


@dataclass
class ChannelPreferences:
    """Settings shared by every channel: an on/off switch and a per-type map."""

    enabled: bool = True
    types: dict[NotificationType, bool] = field(default_factory=dict)

    def allows_type(self, notification_type: NotificationType) -> bool:
        return bool(self.types.get(notification_type, False))


@dataclass
class DigestSettings:
    enabled: bool = True
    frequency: DigestFrequency = DigestFrequency.DAILY
    time: str = DEFAULT_DIGEST_TIME


@dataclass
class EmailPreferences(ChannelPreferences):
    digest: DigestSettings = field(default_factory=DigestSettings)


@dataclass
class InAppPreferences(ChannelPreferences):
    desktop: bool = True
    sound: bool = True


@dataclass
class SlackPreferences(ChannelPreferences):
    webhook_url: str | None = None
    channel: str | None = None


@dataclass
class DoNotDisturb:
    """Recurring local-time window during which deliveries are suppressed."""

    enabled: bool = False
    start_time: str = DEFAULT_DND_START
    end_time: str = DEFAULT_DND_END
    timezone: str = DEFAULT_DND_TIMEZONE


@dataclass
class NotificationPreference:
    """Per-user delivery preferences. Exactly one record exists per user."""

    id: int | None
    user_id: str
    email: EmailPreferences
    in_app: InAppPreferences
    slack: SlackPreferences
    minimum_importance: dict[Channel, Importance]
    do_not_disturb: DoNotDisturb
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def for_channel(self, channel: Channel) -> ChannelPreferences:
        """Return the settings block for ``channel``."""

        if channel is Channel.EMAIL:
            return self.email
        if channel is Channel.IN_APP:
            return self.in_app
        return self.slack

    def minimum_importance_for(self, channel: Channel) -> Importance:
        return parse_importance(
            self.minimum_importance.get(channel, DEFAULT_MINIMUM_IMPORTANCE[channel])
        )

    @classmethod
    def with_defaults(cls, user_id: str) -> "NotificationPreference":
        """Build an unsaved record populated entirely from the documented defaults."""

        return cls(
            id=None,
            user_id=user_id,
            email=EmailPreferences(enabled=True, types=default_type_map(enabled=True)),
            in_app=InAppPreferences(enabled=True, types=default_type_map(enabled=True)),
            slack=SlackPreferences(enabled=False, types=default_type_map(enabled=False)),
            minimum_importance=dict(DEFAULT_MINIMUM_IMPORTANCE),
            do_not_disturb=DoNotDisturb(),
        )


__all__ = [
    "ChannelPreferences",
    "DEFAULT_ENABLED_TYPES",
    "DEFAULT_MINIMUM_IMPORTANCE",
    "DigestFrequency",
    "DigestSettings",
    "DoNotDisturb",
    "EmailPreferences",
    "InAppPreferences",
    "NotificationPreference",
    "SlackPreferences",
    "default_type_map",
    "parse_digest_frequency",
]
