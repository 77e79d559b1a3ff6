"""Tests for the delivery gates applied to each channel."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.application.use_cases.notifications import (
    enabled_channels,
    is_within_do_not_disturb,
    should_notify,
)
from app.domain.entities import (
    Channel,
    DoNotDisturb,
    Importance,
    NotificationPreference,
    NotificationType,
)
from app.domain.exceptions import ValidationError

NOON = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


def _at(hour: int, minute: int) -> datetime:
    return datetime(2024, 5, 6, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def preferences() -> NotificationPreference:
    return NotificationPreference.with_defaults("user-1")


def test_defaults_allow_email_and_in_app_for_common_types(preferences) -> None:
    for channel in (Channel.EMAIL, Channel.IN_APP):
        assert should_notify(
            preferences, NotificationType.TASK_ASSIGNED, channel, Importance.LOW, NOON
        )


def test_defaults_block_slack(preferences) -> None:
    assert not should_notify(
        preferences, NotificationType.TASK_ASSIGNED, Channel.SLACK, Importance.URGENT, NOON
    )


@pytest.mark.parametrize(
    "notification_type",
    [
        NotificationType.MILESTONE_REACHED,
        NotificationType.RISK_ALERT,
        NotificationType.SYSTEM_ALERT,
    ],
)
def test_defaults_block_opt_in_types(preferences, notification_type) -> None:
    assert not should_notify(
        preferences, notification_type, Channel.EMAIL, Importance.URGENT, NOON
    )


def test_disabled_channel_wins_over_everything(preferences) -> None:
    preferences.email.enabled = False
    assert not should_notify(
        preferences, NotificationType.MENTION, Channel.EMAIL, Importance.URGENT, NOON
    )


def test_missing_type_key_counts_as_disabled(preferences) -> None:
    del preferences.in_app.types[NotificationType.MENTION]
    assert not should_notify(
        preferences, NotificationType.MENTION, Channel.IN_APP, Importance.HIGH, NOON
    )


def test_importance_threshold_is_inclusive(preferences) -> None:
    preferences.slack.enabled = True
    preferences.slack.types[NotificationType.TASK_ASSIGNED] = True

    assert not should_notify(
        preferences, NotificationType.TASK_ASSIGNED, Channel.SLACK, Importance.LOW, NOON
    )
    assert should_notify(
        preferences, NotificationType.TASK_ASSIGNED, Channel.SLACK, Importance.MEDIUM, NOON
    )
    assert should_notify(
        preferences, NotificationType.TASK_ASSIGNED, Channel.SLACK, Importance.URGENT, NOON
    )


@pytest.mark.parametrize(
    ("hour", "minute", "suppressed"),
    [
        (23, 30, True),
        (7, 59, True),
        (22, 0, True),
        (8, 0, True),
        (8, 1, False),
        (21, 59, False),
    ],
)
def test_overnight_window_wraps_midnight(preferences, hour, minute, suppressed) -> None:
    preferences.do_not_disturb = DoNotDisturb(
        enabled=True, start_time="22:00", end_time="08:00", timezone="UTC"
    )
    allowed = should_notify(
        preferences, NotificationType.MENTION, Channel.EMAIL, Importance.HIGH, _at(hour, minute)
    )
    assert allowed is not suppressed


@pytest.mark.parametrize(
    ("hour", "minute", "suppressed"),
    [(12, 0, True), (9, 0, True), (17, 0, True), (8, 0, False), (17, 1, False)],
)
def test_daytime_window(hour, minute, suppressed) -> None:
    window = DoNotDisturb(enabled=True, start_time="09:00", end_time="17:00", timezone="UTC")
    assert is_within_do_not_disturb(window, _at(hour, minute)) is suppressed


def test_window_ignores_seconds() -> None:
    window = DoNotDisturb(enabled=True, start_time="09:00", end_time="17:00", timezone="UTC")
    late = datetime(2024, 5, 6, 17, 0, 59, tzinfo=timezone.utc)
    assert is_within_do_not_disturb(window, late)


def test_window_uses_its_own_timezone() -> None:
    window = DoNotDisturb(
        enabled=True, start_time="22:00", end_time="08:00", timezone="America/Bogota"
    )
    # 03:00 UTC is 22:00 the previous evening in Bogota (UTC-5)
    assert is_within_do_not_disturb(window, _at(3, 0))
    # 14:00 UTC is 09:00 in Bogota
    assert not is_within_do_not_disturb(window, _at(14, 0))


def test_naive_instants_are_read_in_app_timezone() -> None:
    window = DoNotDisturb(enabled=True, start_time="09:00", end_time="17:00", timezone="UTC")
    assert is_within_do_not_disturb(window, datetime(2024, 5, 6, 12, 0))


def test_disabled_window_never_suppresses() -> None:
    window = DoNotDisturb(enabled=False, start_time="00:00", end_time="23:59", timezone="UTC")
    assert not is_within_do_not_disturb(window, NOON)


def test_window_suppresses_urgent_notifications(preferences) -> None:
    preferences.do_not_disturb = DoNotDisturb(
        enabled=True, start_time="00:00", end_time="23:59", timezone="UTC"
    )
    assert not should_notify(
        preferences, NotificationType.MENTION, Channel.IN_APP, Importance.URGENT, NOON
    )


def test_accepts_wire_names(preferences) -> None:
    assert should_notify(preferences, "mention", "inApp", "medium", NOON)


def test_rejects_unknown_channel(preferences) -> None:
    with pytest.raises(ValidationError):
        should_notify(preferences, "mention", "sms", "medium", NOON)


def test_should_notify_does_not_mutate_preferences(preferences) -> None:
    before = repr(preferences)
    should_notify(preferences, "mention", "email", "high", NOON)
    assert repr(preferences) == before


def test_enabled_channels_matches_should_notify(preferences) -> None:
    preferences.slack.enabled = True
    preferences.slack.types[NotificationType.MENTION] = True
    preferences.minimum_importance[Channel.EMAIL] = Importance.HIGH

    channels = enabled_channels(preferences, NotificationType.MENTION, Importance.MEDIUM, NOON)

    assert channels == [Channel.IN_APP, Channel.SLACK]


def test_raw_string_threshold_is_ranked_not_alphabetical(preferences) -> None:
    preferences.minimum_importance[Channel.EMAIL] = "low"

    assert preferences.minimum_importance_for(Channel.EMAIL) is Importance.LOW
    assert should_notify(
        preferences, NotificationType.MENTION, Channel.EMAIL, Importance.HIGH, NOON
    )


_OPT_IN_TYPES = {
    NotificationType.MILESTONE_REACHED,
    NotificationType.RISK_ALERT,
    NotificationType.SYSTEM_ALERT,
}


_DEFAULT_THRESHOLDS = {
    Channel.EMAIL: Importance.LOW,
    Channel.IN_APP: Importance.LOW,
    Channel.SLACK: Importance.MEDIUM,
}


def _expected_default(
    notification_type: NotificationType, channel: Channel, importance: Importance
) -> bool:
    # Slack starts switched off with every type disabled.
    if channel is Channel.SLACK:
        return False
    return (
        notification_type not in _OPT_IN_TYPES
        and importance >= _DEFAULT_THRESHOLDS[channel]
    )


def test_defaults_reproduce_the_documented_table() -> None:
    preferences = NotificationPreference.with_defaults("fresh-user")
    mismatches = []

    for notification_type in NotificationType:
        for channel in Channel:
            for importance in Importance:
                expected = _expected_default(notification_type, channel, importance)
                actual = should_notify(preferences, notification_type, channel, importance, NOON)
                if actual is not expected:
                    mismatches.append((notification_type.value, channel.value, importance.value))

    assert mismatches == []
