"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, UniqueConstraint

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationPreferenceModel(Base):
    """Database representation of a user's delivery preferences."""

    __tablename__ = "notification_preference"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    email_enabled = Column(Boolean, nullable=False, default=True)
    email_types = Column(JSON, nullable=False, default=dict)
    email_digest_enabled = Column(Boolean, nullable=False, default=True)
    email_digest_frequency = Column(String(10), nullable=False, default="daily")
    email_digest_time = Column(String(5), nullable=False, default="09:00")

    in_app_enabled = Column(Boolean, nullable=False, default=True)
    in_app_desktop = Column(Boolean, nullable=False, default=True)
    in_app_sound = Column(Boolean, nullable=False, default=True)
    in_app_types = Column(JSON, nullable=False, default=dict)

    slack_enabled = Column(Boolean, nullable=False, default=False)
    slack_webhook_url = Column(String(500), nullable=True)
    slack_channel = Column(String(120), nullable=True)
    slack_types = Column(JSON, nullable=False, default=dict)

    minimum_importance_email = Column(String(10), nullable=False, default="low")
    minimum_importance_in_app = Column(String(10), nullable=False, default="low")
    minimum_importance_slack = Column(String(10), nullable=False, default="medium")

    dnd_enabled = Column(Boolean, nullable=False, default=False)
    dnd_start_time = Column(String(5), nullable=False, default="22:00")
    dnd_end_time = Column(String(5), nullable=False, default="08:00")
    dnd_timezone = Column(String(64), nullable=False, default="UTC")

    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_notification_preference_user"),
    )


__all__ = ["NotificationPreferenceModel"]
