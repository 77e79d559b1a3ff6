"""Tests for channel transports and the routing glue that records their outcome."""

from __future__ import annotations

import types
from datetime import datetime, timezone

import anyio
import anyio.to_thread
import pytest
import requests

from app.application.use_cases.notifications import (
    create_notification,
    get_notification,
    route_notification,
    update_preferences,
)
from app.domain.entities import (
    Channel,
    EntityReference,
    Notification,
    NotificationPreference,
    NotificationType,
    ReferenceKind,
)
from app.domain.exceptions import ValidationError
from app.infrastructure.notifications import (
    DeliveryResult,
    EmailTransport,
    InAppTransport,
    NotificationConnectionManager,
    NotificationPublisher,
    NotificationTransport,
    SlackTransport,
)
from app.infrastructure.notifications import transports as transports_module

NOON = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


def _notify(session, **overrides):
    values = {
        "recipient_id": "user-1",
        "notification_type": NotificationType.TASK_ASSIGNED,
        "title": "New task",
        "content": "Review the budget",
        "reference": (ReferenceKind.TASK, "t-1"),
        "importance": "high",
    }
    values.update(overrides)
    return create_notification(session, **values)


class RecordingTransport(NotificationTransport):
    def __init__(self, channel: Channel, result: DeliveryResult | Exception) -> None:
        self.channel = channel
        self.result = result
        self.sent: list[int] = []

    def send(self, notification, preferences):
        self.sent.append(notification.id)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakePublisher:
    def __init__(self, connected: bool) -> None:
        self.connected = connected
        self.dispatched = []

    def dispatch(self, notification) -> bool:
        self.dispatched.append(notification)
        return self.connected


def test_route_sends_on_allowed_channels_and_records_outcome(session) -> None:
    notification = _notify(session)
    email = RecordingTransport(Channel.EMAIL, DeliveryResult(True))
    in_app = RecordingTransport(Channel.IN_APP, DeliveryResult(False, "offline"))
    slack = RecordingTransport(Channel.SLACK, DeliveryResult(True))

    results = route_notification(
        session,
        notification,
        {Channel.EMAIL: email, Channel.IN_APP: in_app, Channel.SLACK: slack},
        now=NOON,
    )

    assert set(results) == {Channel.EMAIL, Channel.IN_APP}
    assert slack.sent == []

    stored = get_notification(session, notification.id, user_id="user-1")
    assert stored.delivery_for(Channel.EMAIL).succeeded is True
    assert stored.delivery_for(Channel.EMAIL).delivered_at == NOON
    assert stored.delivery_for(Channel.IN_APP).succeeded is False
    assert stored.delivery_for(Channel.IN_APP).error == "offline"
    assert stored.delivery_for(Channel.SLACK) is None


def test_route_respects_do_not_disturb(session) -> None:
    update_preferences(
        session,
        "user-1",
        {"do_not_disturb": {"enabled": True, "start_time": "11:00", "end_time": "13:00"}},
    )
    notification = _notify(session, importance="urgent")
    email = RecordingTransport(Channel.EMAIL, DeliveryResult(True))

    assert route_notification(session, notification, {Channel.EMAIL: email}, now=NOON) == {}
    assert email.sent == []


def test_route_turns_transport_exceptions_into_failures(session) -> None:
    notification = _notify(session)
    email = RecordingTransport(Channel.EMAIL, RuntimeError("smtp down"))

    results = route_notification(session, notification, {Channel.EMAIL: email}, now=NOON)

    assert results[Channel.EMAIL] == DeliveryResult(False, "smtp down")
    stored = get_notification(session, notification.id, user_id="user-1")
    assert stored.delivery_for(Channel.EMAIL).error == "smtp down"


def test_route_skips_channels_without_transport(session) -> None:
    notification = _notify(session)

    assert route_notification(session, notification, {}, now=NOON) == {}
    assert get_notification(session, notification.id, user_id="user-1").delivery == {}


def test_in_app_transport_reports_missing_connection() -> None:
    preferences = NotificationPreference.with_defaults("user-1")
    online = InAppTransport(publisher=FakePublisher(connected=True))
    offline = InAppTransport(publisher=FakePublisher(connected=False))
    notification = types.SimpleNamespace(id=1, recipient_id="user-1")

    assert online.send(notification, preferences) == DeliveryResult(True)
    assert offline.send(notification, preferences).success is False


def test_email_transport_resolves_address_and_reports_errors() -> None:
    preferences = NotificationPreference.with_defaults("user-1")
    notification = types.SimpleNamespace(id=1, recipient_id="user-1", title="t", content="c")
    sent_to: list[str] = []

    def sender(address, _notification):
        sent_to.append(address)
        return False, "SendGrid status 403"

    transport = EmailTransport(lambda user_id: f"{user_id}@example.com", sender=sender)
    result = transport.send(notification, preferences)

    assert sent_to == ["user-1@example.com"]
    assert result == DeliveryResult(False, "SendGrid status 403")

    unknown = EmailTransport(lambda user_id: None, sender=sender)
    assert unknown.send(notification, preferences).error == "No email address for recipient"


@pytest.fixture
def slack_preferences() -> NotificationPreference:
    preferences = NotificationPreference.with_defaults("user-1")
    preferences.slack.enabled = True
    preferences.slack.webhook_url = "https://hooks.slack.test/T000"
    preferences.slack.channel = "#alerts"
    return preferences


def _slack_notification():
    return types.SimpleNamespace(id=7, recipient_id="user-1", title="Risk", content="Budget overrun")


def test_slack_transport_posts_to_webhook(monkeypatch, slack_preferences) -> None:
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        return types.SimpleNamespace(status_code=200)

    monkeypatch.setattr(transports_module.requests, "post", fake_post)

    result = SlackTransport(timeout=3).send(_slack_notification(), slack_preferences)

    assert result == DeliveryResult(True)
    assert calls == [
        (
            "https://hooks.slack.test/T000",
            {"text": "*Risk*\nBudget overrun", "channel": "#alerts"},
            3,
        )
    ]


def test_slack_transport_reports_http_status(monkeypatch, slack_preferences) -> None:
    monkeypatch.setattr(
        transports_module.requests,
        "post",
        lambda url, json, timeout: types.SimpleNamespace(status_code=404),
    )

    result = SlackTransport().send(_slack_notification(), slack_preferences)

    assert result == DeliveryResult(False, "slack_http_404")


def test_slack_transport_reports_request_errors(monkeypatch, slack_preferences) -> None:
    def boom(url, json, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(transports_module.requests, "post", boom)

    result = SlackTransport().send(_slack_notification(), slack_preferences)

    assert result.success is False
    assert result.error == "slack_exception:connection refused"


def test_slack_transport_requires_webhook(slack_preferences) -> None:
    slack_preferences.slack.webhook_url = None

    result = SlackTransport().send(_slack_notification(), slack_preferences)

    assert result == DeliveryResult(False, "Slack webhook is not configured")


def test_route_requires_a_saved_notification(session) -> None:
    draft = Notification(
        id=None,
        recipient_id="user-1",
        type=NotificationType.MENTION,
        title="Draft",
        content="Not stored yet",
        reference=EntityReference(ReferenceKind.COMMENT, "c-1"),
    )
    transport = RecordingTransport(Channel.IN_APP, DeliveryResult(True))

    with pytest.raises(ValidationError):
        route_notification(session, draft, {Channel.IN_APP: transport})
    assert transport.sent == []


class FakeSocket:
    def __init__(self, fails: bool = False) -> None:
        self.fails = fails
        self.messages: list[dict] = []

    async def send_json(self, message) -> None:
        if self.fails:
            raise RuntimeError("socket closed")
        self.messages.append(message)


def _connected_manager(*sockets: FakeSocket) -> NotificationConnectionManager:
    manager = NotificationConnectionManager()
    for socket in sockets:
        manager._connections["user-1"].add(socket)
    return manager


def _inbox_item() -> Notification:
    return Notification(
        id=7,
        recipient_id="user-1",
        type=NotificationType.MENTION,
        title="Mentioned",
        content="You were mentioned",
        reference=EntityReference(ReferenceKind.COMMENT, "c-1"),
    )


def _dispatch_from_worker(publisher: NotificationPublisher, notification: Notification) -> bool:
    async def main() -> bool:
        return await anyio.to_thread.run_sync(publisher.dispatch, notification)

    return anyio.run(main)


def test_send_to_user_counts_accepted_sockets() -> None:
    good = FakeSocket()
    manager = _connected_manager(good, FakeSocket(fails=True))

    delivered = anyio.run(manager.send_to_user, "user-1", {"type": "ping"})

    assert delivered == 1
    assert good.messages == [{"type": "ping"}]
    assert manager.is_connected("user-1")


def test_dispatch_reports_failure_when_every_socket_is_stale() -> None:
    manager = _connected_manager(FakeSocket(fails=True))

    assert _dispatch_from_worker(NotificationPublisher(manager), _inbox_item()) is False
    assert not manager.is_connected("user-1")


def test_dispatch_reports_success_once_a_socket_accepts() -> None:
    socket = FakeSocket()
    manager = _connected_manager(socket)

    assert _dispatch_from_worker(NotificationPublisher(manager), _inbox_item()) is True
    assert socket.messages[0]["type"] == "notification"
    assert socket.messages[0]["data"]["id"] == 7
