"""Use cases for resolving and editing a user's notification preferences."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping

from sqlalchemy.orm import Session

from app.domain.entities import (
    Channel,
    ChannelPreferences,
    NotificationPreference,
    NotificationType,
    parse_digest_frequency,
    parse_importance,
)
from app.domain.exceptions import ConflictError, StorageError, ValidationError
from app.infrastructure.repositories import NotificationPreferenceRepository
from app.utils import is_valid_timezone, parse_clock

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {notification_type.value: notification_type for notification_type in NotificationType}
_IMPORTANCE_KEYS: dict[str, Channel] = {
    "email": Channel.EMAIL,
    "inApp": Channel.IN_APP,
    "in_app": Channel.IN_APP,
    "slack": Channel.SLACK,
}


def get_or_create_preferences(session: Session, user_id: str) -> NotificationPreference:
    """Return the preferences of ``user_id``, persisting the defaults on first access.

    Two first accesses may race; the loser's insert is rejected by the unique
    constraint and resolved by reading the winner's record once.
    """

    if not user_id:
        raise ValidationError("El usuario es obligatorio")

    repository = NotificationPreferenceRepository(session)
    preference = repository.get_by_user(user_id)
    if preference is not None:
        return preference

    try:
        created = repository.create(NotificationPreference.with_defaults(user_id))
    except ConflictError:
        logger.info(
            "Notification preferences for user %s were created concurrently; re-reading",
            user_id,
        )
        existing = repository.get_by_user(user_id)
        if existing is None:
            msg = f"Notification preferences for user {user_id} vanished after a conflict"
            raise StorageError(msg)
        return existing

    logger.info("Created default notification preferences for user %s", user_id)
    return created


def update_preferences(
    session: Session, user_id: str, payload: Mapping[str, Any]
) -> NotificationPreference:
    """Merge the allow-listed fields of ``payload`` into the user's preferences.

    Unrecognized keys are ignored. Recognized keys with malformed values raise
    :class:`ValidationError` and leave the stored record unchanged.
    """

    current = get_or_create_preferences(session, user_id)
    updated = copy.deepcopy(current)
    _apply_payload(updated, payload or {})
    return NotificationPreferenceRepository(session).update(updated)


def _apply_payload(preference: NotificationPreference, payload: Mapping[str, Any]) -> None:
    email = _section(payload, "email")
    if email is not None:
        _apply_channel(preference.email, email, "email")
        digest = _section(email, "digest", "email.digest")
        if digest is not None:
            if "enabled" in digest:
                preference.email.digest.enabled = _as_bool(digest["enabled"], "email.digest.enabled")
            if "frequency" in digest:
                try:
                    preference.email.digest.frequency = parse_digest_frequency(digest["frequency"])
                except ValidationError as exc:
                    raise ValidationError(f"email.digest.frequency: {exc}") from exc
            if "time" in digest:
                preference.email.digest.time = _as_clock(digest["time"], "email.digest.time")

    in_app = _section(payload, "in_app")
    if in_app is not None:
        _apply_channel(preference.in_app, in_app, "in_app")
        if "desktop" in in_app:
            preference.in_app.desktop = _as_bool(in_app["desktop"], "in_app.desktop")
        if "sound" in in_app:
            preference.in_app.sound = _as_bool(in_app["sound"], "in_app.sound")

    slack = _section(payload, "slack")
    if slack is not None:
        _apply_channel(preference.slack, slack, "slack")
        if "webhook_url" in slack:
            preference.slack.webhook_url = _as_optional_text(slack["webhook_url"], "slack.webhook_url")
        if "channel" in slack:
            preference.slack.channel = _as_optional_text(slack["channel"], "slack.channel")

    minimum_importance = _section(payload, "minimum_importance")
    if minimum_importance is not None:
        for key, channel in _IMPORTANCE_KEYS.items():
            if key in minimum_importance and minimum_importance[key] is not None:
                preference.minimum_importance[channel] = parse_importance(minimum_importance[key])

    dnd = _section(payload, "do_not_disturb")
    if dnd is not None:
        window = preference.do_not_disturb
        if "enabled" in dnd:
            window.enabled = _as_bool(dnd["enabled"], "do_not_disturb.enabled")
        if "start_time" in dnd:
            window.start_time = _as_clock(dnd["start_time"], "do_not_disturb.start_time")
        if "end_time" in dnd:
            window.end_time = _as_clock(dnd["end_time"], "do_not_disturb.end_time")
        if "timezone" in dnd:
            tz_name = dnd["timezone"]
            if not isinstance(tz_name, str) or not is_valid_timezone(tz_name.strip()):
                raise ValidationError(f"do_not_disturb.timezone: zona horaria no válida: {tz_name}")
            window.timezone = tz_name.strip()


def _apply_channel(target: ChannelPreferences, section: Mapping[str, Any], label: str) -> None:
    if "enabled" in section:
        target.enabled = _as_bool(section["enabled"], f"{label}.enabled")
    types = _section(section, "types", f"{label}.types")
    if types is None:
        return
    for key, enabled in types.items():
        notification_type = _KNOWN_TYPES.get(key)
        if notification_type is None:
            continue
        target.types[notification_type] = _as_bool(enabled, f"{label}.types.{key}")


def _section(
    payload: Mapping[str, Any], key: str, label: str | None = None
) -> Mapping[str, Any] | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError(f"{label or key}: se esperaba un objeto")
    return value


def _as_bool(value: Any, label: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{label}: se esperaba un valor booleano")
    return value


def _as_clock(value: Any, label: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{label}: use el formato HH:MM")
    try:
        parsed = parse_clock(value)
    except ValueError as exc:
        raise ValidationError(f"{label}: {exc}") from exc
    return parsed.strftime("%H:%M")


def _as_optional_text(value: Any, label: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label}: se esperaba un texto")
    return value.strip() or None


__all__ = ["get_or_create_preferences", "update_preferences"]
