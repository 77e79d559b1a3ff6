"""Domain entities exposed by the application."""

from .importance import Importance, parse_importance
from .notification import (
    Channel,
    ChannelDelivery,
    EntityReference,
    Notification,
    NotificationType,
    ReferenceKind,
    parse_channel,
    parse_notification_type,
    parse_reference_kind,
)
from .notification_preference import (
    ChannelPreferences,
    DigestFrequency,
    DigestSettings,
    DoNotDisturb,
    EmailPreferences,
    InAppPreferences,
    NotificationPreference,
    SlackPreferences,
    default_type_map,
    parse_digest_frequency,
)

__all__ = [
    "Channel",
    "ChannelDelivery",
    "ChannelPreferences",
    "DigestFrequency",
    "DigestSettings",
    "DoNotDisturb",
    "EmailPreferences",
    "EntityReference",
    "Importance",
    "InAppPreferences",
    "Notification",
    "NotificationPreference",
    "NotificationType",
    "ReferenceKind",
    "SlackPreferences",
    "default_type_map",
    "parse_channel",
    "parse_digest_frequency",
    "parse_importance",
    "parse_notification_type",
    "parse_reference_kind",
]
