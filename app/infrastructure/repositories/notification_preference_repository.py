"""Persistence layer for per-user notification preferences."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import (
    Channel,
    DigestFrequency,
    DigestSettings,
    DoNotDisturb,
    EmailPreferences,
    Importance,
    InAppPreferences,
    NotificationPreference,
    NotificationType,
    SlackPreferences,
)
from app.domain.exceptions import ConflictError, StorageError
from app.infrastructure.models import NotificationPreferenceModel
from app.utils import ensure_app_timezone

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {notification_type.value: notification_type for notification_type in NotificationType}


class NotificationPreferenceRepository:
    """Load and store :class:`NotificationPreference` records keyed by user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_user(self, user_id: str) -> NotificationPreference | None:
        model = self._get_model(user_id)
        return self._to_entity(model) if model else None

    def create(self, preference: NotificationPreference) -> NotificationPreference:
        """Insert ``preference``; a second record for the same user raises ``ConflictError``."""

        model = NotificationPreferenceModel(user_id=preference.user_id)
        self._apply_entity_to_model(model, preference)
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(
                f"Notification preferences for user {preference.user_id} already exist"
            ) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to create notification preferences")
            raise StorageError("No se pudieron guardar las preferencias") from exc
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, preference: NotificationPreference) -> NotificationPreference:
        model = self._get_model(preference.user_id)
        if model is None:
            msg = f"Notification preferences for user {preference.user_id} not found"
            raise StorageError(msg)
        self._apply_entity_to_model(model, preference)
        self.session.add(model)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to update notification preferences")
            raise StorageError("No se pudieron guardar las preferencias") from exc
        self.session.refresh(model)
        return self._to_entity(model)

    def _get_model(self, user_id: str) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .one_or_none()
        )

    @staticmethod
    def _dump_types(types: Mapping[NotificationType, bool]) -> dict[str, bool]:
        return {notification_type.value: bool(enabled) for notification_type, enabled in types.items()}

    @staticmethod
    def _load_types(raw: Mapping[str, Any] | None) -> dict[NotificationType, bool]:
        types: dict[NotificationType, bool] = {}
        for key, enabled in (raw or {}).items():
            notification_type = _KNOWN_TYPES.get(key)
            if notification_type is not None:
                types[notification_type] = bool(enabled)
        return types

    @classmethod
    def _apply_entity_to_model(
        cls, model: NotificationPreferenceModel, preference: NotificationPreference
    ) -> None:
        email, in_app, slack = preference.email, preference.in_app, preference.slack
        model.email_enabled = email.enabled
        model.email_types = cls._dump_types(email.types)
        model.email_digest_enabled = email.digest.enabled
        model.email_digest_frequency = email.digest.frequency.value
        model.email_digest_time = email.digest.time

        model.in_app_enabled = in_app.enabled
        model.in_app_desktop = in_app.desktop
        model.in_app_sound = in_app.sound
        model.in_app_types = cls._dump_types(in_app.types)

        model.slack_enabled = slack.enabled
        model.slack_webhook_url = slack.webhook_url
        model.slack_channel = slack.channel
        model.slack_types = cls._dump_types(slack.types)

        model.minimum_importance_email = preference.minimum_importance_for(Channel.EMAIL).value
        model.minimum_importance_in_app = preference.minimum_importance_for(Channel.IN_APP).value
        model.minimum_importance_slack = preference.minimum_importance_for(Channel.SLACK).value

        dnd = preference.do_not_disturb
        model.dnd_enabled = dnd.enabled
        model.dnd_start_time = dnd.start_time
        model.dnd_end_time = dnd.end_time
        model.dnd_timezone = dnd.timezone

    @classmethod
    def _to_entity(cls, model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            email=EmailPreferences(
                enabled=model.email_enabled,
                types=cls._load_types(model.email_types),
                digest=DigestSettings(
                    enabled=model.email_digest_enabled,
                    frequency=DigestFrequency(model.email_digest_frequency),
                    time=model.email_digest_time,
                ),
            ),
            in_app=InAppPreferences(
                enabled=model.in_app_enabled,
                types=cls._load_types(model.in_app_types),
                desktop=model.in_app_desktop,
                sound=model.in_app_sound,
            ),
            slack=SlackPreferences(
                enabled=model.slack_enabled,
                types=cls._load_types(model.slack_types),
                webhook_url=model.slack_webhook_url,
                channel=model.slack_channel,
            ),
            minimum_importance={
                Channel.EMAIL: Importance(model.minimum_importance_email),
                Channel.IN_APP: Importance(model.minimum_importance_in_app),
                Channel.SLACK: Importance(model.minimum_importance_slack),
            },
            do_not_disturb=DoNotDisturb(
                enabled=model.dnd_enabled,
                start_time=model.dnd_start_time,
                end_time=model.dnd_end_time,
                timezone=model.dnd_timezone,
            ),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationPreferenceRepository"]
