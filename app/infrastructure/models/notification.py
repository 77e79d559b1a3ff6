"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String(64), nullable=False, index=True)
    type = Column(String(40), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    importance = Column(String(10), nullable=False, default="medium")
    read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime(), nullable=True)

    # Weak reference to the triggering entity; never cascades.
    reference_kind = Column(String(20), nullable=False)
    reference_id = Column(String(64), nullable=False)

    # Latest delivery attempt per channel.
    email_sent = Column(Boolean, nullable=True)
    email_sent_at = Column(DateTime(), nullable=True)
    email_error = Column(Text, nullable=True)
    in_app_displayed = Column(Boolean, nullable=True)
    in_app_displayed_at = Column(DateTime(), nullable=True)
    in_app_error = Column(Text, nullable=True)
    slack_sent = Column(Boolean, nullable=True)
    slack_sent_at = Column(DateTime(), nullable=True)
    slack_error = Column(Text, nullable=True)

    group = Column(String(120), nullable=True, index=True)
    expires_at = Column(DateTime(), nullable=True, index=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )

    __table_args__ = (
        Index("ix_notification_recipient_read_created", "recipient_id", "read", "created_at"),
        Index("ix_notification_recipient_type_created", "recipient_id", "type", "created_at"),
        Index("ix_notification_reference", "reference_kind", "reference_id"),
    )


__all__ = ["NotificationModel"]
