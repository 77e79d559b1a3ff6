"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.domain.exceptions import ValidationError

from .importance import Importance


class NotificationType(str, Enum):
    """Events worth notifying a user about."""

    PROJECT_UPDATE = "project_update"
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    COMMENT_ADDED = "comment_added"
    MENTION = "mention"
    DEADLINE_APPROACHING = "deadline_approaching"
    MILESTONE_REACHED = "milestone_reached"
    TEAM_CHANGE = "team_change"
    STATUS_CHANGE = "status_change"
    RISK_ALERT = "risk_alert"
    SYSTEM_ALERT = "system_alert"


class Channel(str, Enum):
    """Delivery surfaces a notification may be routed through."""

    EMAIL = "email"
    IN_APP = "inApp"
    SLACK = "slack"


class ReferenceKind(str, Enum):
    """Entities a notification can point back to."""

    PROJECT = "Project"
    TASK = "Task"
    COMMENT = "Comment"
    PROJECT_UPDATE = "ProjectUpdate"


def _parse_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"{label} no válido: {value}") from exc


def parse_notification_type(value: NotificationType | str | None) -> NotificationType:
    """Return the :class:`NotificationType` for ``value`` or raise ``ValidationError``."""

    return _parse_enum(NotificationType, value, "Tipo de notificación")


def parse_channel(value: Channel | str | None) -> Channel:
    """Return the :class:`Channel` for ``value`` or raise ``ValidationError``."""

    return _parse_enum(Channel, value, "Canal")


def parse_reference_kind(value: ReferenceKind | str | None) -> ReferenceKind:
    """Return the :class:`ReferenceKind` for ``value`` or raise ``ValidationError``."""

    return _parse_enum(ReferenceKind, value, "Tipo de referencia")


@dataclass(frozen=True)
class EntityReference:
    """Weak pointer from a notification to the entity that triggered it."""

    kind: ReferenceKind
    id: str


@dataclass(frozen=True)
class ChannelDelivery:
    """Outcome of the latest delivery attempt on a single channel.

    ``succeeded`` maps to ``sent`` for email and Slack and to ``displayed`` for
    in-app delivery. ``delivered_at`` is only populated on success.
    """

    succeeded: bool
    delivered_at: datetime | None = None
    error: str | None = None


@dataclass
class Notification:
    """Information message delivered to a specific user."""

    id: int | None
    recipient_id: str
    type: NotificationType
    title: str
    content: str
    reference: EntityReference
    importance: Importance = Importance.MEDIUM
    read: bool = False
    read_at: datetime | None = None
    delivery: dict[Channel, ChannelDelivery] = field(default_factory=dict)
    group: str | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def delivery_for(self, channel: Channel) -> ChannelDelivery | None:
        """Return the recorded outcome for ``channel`` if any attempt was tracked."""

        return self.delivery.get(channel)


__all__ = [
    "Channel",
    "ChannelDelivery",
    "EntityReference",
    "Notification",
    "NotificationType",
    "ReferenceKind",
    "parse_channel",
    "parse_notification_type",
    "parse_reference_kind",
]
