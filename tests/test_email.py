"""Unit tests for the SendGrid email helper utilities."""

from __future__ import annotations

import json
import types

import pytest

from app.domain.entities import EntityReference, Notification, NotificationType, ReferenceKind
from app.infrastructure import email as email_module


class DummySettings:
    sendgrid_api_key = "SG.fake"
    sendgrid_sender = "sender@example.com"


class _StubSendGridAPIClient:
    """Default stand-in client that returns a successful response."""

    sent: list = []

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, message):
        self.sent.append(message)
        return types.SimpleNamespace(status_code=202, body=None)


def test_send_email_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """When SendGrid settings are missing the helper should exit early."""

    class MissingSettings:
        sendgrid_api_key = None
        sendgrid_sender = None

    monkeypatch.setattr(email_module, "get_settings", lambda: MissingSettings())

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (
        False,
        "SendGrid is not configured",
    )


def test_send_email_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """A successful SendGrid response should report no error."""

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", _StubSendGridAPIClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (True, None)


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog):
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {
                "errors": [
                    {
                        "message": "The provided authorization grant is invalid.",
                        "help": "https://sendgrid.com/docs/for-developers/sending-email/authentication/",
                    }
                ]
            }
        )

    class ForbiddenClient(_StubSendGridAPIClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", ForbiddenClient)

    with caplog.at_level("ERROR", logger=email_module.__name__):
        sent, error = email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert sent is False
    assert error.startswith("SendGrid status 403: The provided authorization grant is invalid.")
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_send_email_reports_unsuccessful_response(monkeypatch: pytest.MonkeyPatch) -> None:
    class RejectingClient(_StubSendGridAPIClient):
        def send(self, message):
            return types.SimpleNamespace(status_code=400, body=b'{"errors": [{"message": "bad to"}]}')

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    assert email_module.send_email("Subject", "<p>Body</p>", "user@example.com") == (
        False,
        "SendGrid status 400: bad to",
    )


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, None),
        ("  ", None),
        ("plain failure", "plain failure"),
        ({"errors": [{"message": "first"}, {"message": "second"}]}, "first; second"),
        (["a", "b"], "a; b"),
    ],
)
def test_extract_sendgrid_error_details(body, expected) -> None:
    assert email_module._extract_sendgrid_error_details(body) == expected


def test_notification_email_escapes_content(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_send_email(subject, html_content, recipient):
        captured.update(subject=subject, html=html_content, recipient=recipient)
        return True, None

    monkeypatch.setattr(email_module, "send_email", fake_send_email)
    notification = Notification(
        id=1,
        recipient_id="user-1",
        type=NotificationType.COMMENT_ADDED,
        title="New <comment>",
        content="a & b",
        reference=EntityReference(kind=ReferenceKind.COMMENT, id="c-1"),
    )

    assert email_module.send_notification_email("user@example.com", notification) == (True, None)
    assert captured["subject"] == "New <comment>"
    assert "New &lt;comment&gt;" in captured["html"]
    assert "a &amp; b" in captured["html"]
    assert captured["recipient"] == "user@example.com"
