"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class NotificationReferenceRead(BaseModel):
    kind: str
    id: str


class EmailDeliveryRead(BaseModel):
    sent: bool
    sent_at: datetime | None = None
    error: str | None = None


class InAppDeliveryRead(BaseModel):
    displayed: bool
    displayed_at: datetime | None = None
    error: str | None = None


class SlackDeliveryRead(BaseModel):
    sent: bool
    sent_at: datetime | None = None
    error: str | None = None


class NotificationDeliveryRead(BaseModel):
    """Latest delivery attempt per channel; channels never attempted are omitted."""

    email: EmailDeliveryRead | None = None
    in_app: InAppDeliveryRead | None = None
    slack: SlackDeliveryRead | None = None


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    recipient_id: str
    type: str
    title: str
    content: str
    importance: str
    read: bool
    read_at: datetime | None = None
    reference: NotificationReferenceRead
    delivery: NotificationDeliveryRead = Field(default_factory=NotificationDeliveryRead)
    group: str | None = None
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class NotificationListResponse(BaseModel):
    """A page of notifications together with the unread counter."""

    items: list[NotificationRead]
    total: int
    total_pages: int
    page: int
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


__all__ = [
    "EmailDeliveryRead",
    "InAppDeliveryRead",
    "MarkAllReadResponse",
    "NotificationDeliveryRead",
    "NotificationListResponse",
    "NotificationRead",
    "NotificationReferenceRead",
    "SlackDeliveryRead",
    "UnreadCountResponse",
]
