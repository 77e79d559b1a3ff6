"""Utility helpers for sending notification emails via SendGrid."""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.config import get_settings
from app.domain.entities import Notification

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                help_link = item.get("help")
                if message and help_link:
                    messages.append(f"{message} (help: {help_link})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        # Fall back to a JSON string for unrecognised payloads
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        try:
            return "; ".join(str(item) for item in parsed)
        except TypeError:
            return None

    return None


def _describe_failure(status_code: Any, details: str | None) -> str:
    if status_code and details:
        return f"SendGrid status {status_code}: {details}"
    if status_code:
        return f"SendGrid status {status_code}"
    if details:
        return f"SendGrid error: {details}"
    return "SendGrid request failed"


def _log_sendgrid_exception(exc: Exception) -> str:
    """Log a SendGrid API error and return a short description of it."""

    status_code = getattr(exc, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(exc, "body", None))

    if status_code or details:
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
    else:
        logger.exception("Error sending email via SendGrid: %s", exc)
        details = str(exc) or None
    return _describe_failure(status_code, details)


def _log_unsuccessful_response(response: Any) -> str:
    """Log details from an unsuccessful SendGrid response object."""

    status_code = getattr(response, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(response, "body", None))

    if details:
        logger.error("SendGrid API responded with status %s: %s", status_code, details)
    else:
        logger.error("SendGrid API responded with status %s", status_code)
    return _describe_failure(status_code, details)


def send_email(subject: str, html_content: str, recipient: str) -> tuple[bool, str | None]:
    """Send an email using the configured SendGrid credentials.

    Returns a ``(sent, error)`` pair; ``error`` is ``None`` on success.
    """

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False, "SendGrid is not configured"

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # sendgrid raises python_http_client errors for non-2xx
        return False, _log_sendgrid_exception(exc)

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        return False, _log_unsuccessful_response(response)

    return True, None


def send_notification_email(recipient: str, notification: Notification) -> tuple[bool, str | None]:
    """Email ``notification`` to ``recipient`` as a plain HTML message."""

    html_content = "".join(
        (
            f"<p><strong>{html.escape(notification.title)}</strong></p>",
            f"<p>{html.escape(notification.content)}</p>",
        )
    )
    return send_email(notification.title, html_content, recipient)


__all__ = ["send_email", "send_notification_email"]
