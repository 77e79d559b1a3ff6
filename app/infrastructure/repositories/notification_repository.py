"""Persistence helpers for notification entities."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.domain.entities import (
    Channel,
    ChannelDelivery,
    EntityReference,
    Importance,
    Notification,
    NotificationType,
    ReferenceKind,
)
from app.domain.exceptions import StorageError
from app.infrastructure.models import NotificationModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone

logger = logging.getLogger(__name__)

# (flag, timestamp, error) columns holding the latest attempt for each channel.
_DELIVERY_COLUMNS: dict[Channel, tuple[str, str, str]] = {
    Channel.EMAIL: ("email_sent", "email_sent_at", "email_error"),
    Channel.IN_APP: ("in_app_displayed", "in_app_displayed_at", "in_app_error"),
    Channel.SLACK: ("slack_sent", "slack_sent_at", "slack_error"),
}


class NotificationRepository:
    """Provide CRUD and set-based state operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_for_recipient(
        self, notification_id: int, *, recipient_id: str
    ) -> Notification | None:
        model = self._owned(notification_id, recipient_id).one_or_none()
        return self._to_entity(model) if model else None

    def list_for_recipient(
        self,
        recipient_id: str,
        *,
        notification_type: NotificationType | None = None,
        read: bool | None = None,
        skip: int = 0,
        limit: int | None = 20,
        newest_first: bool = True,
    ) -> Sequence[Notification]:
        query = self._filtered(recipient_id, notification_type=notification_type, read=read)
        if newest_first:
            query = query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
        else:
            query = query.order_by(
                NotificationModel.created_at.asc(), NotificationModel.id.asc()
            )
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_unread_for_recipient(
        self, recipient_id: str, *, limit: int | None = 50
    ) -> Sequence[Notification]:
        return self.list_for_recipient(recipient_id, read=False, limit=limit)

    def count_for_recipient(
        self,
        recipient_id: str,
        *,
        notification_type: NotificationType | None = None,
        read: bool | None = None,
    ) -> int:
        return self._filtered(
            recipient_id, notification_type=notification_type, read=read
        ).count()

    def count_unread(self, recipient_id: str) -> int:
        return self.count_for_recipient(recipient_id, read=False)

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self._commit("create notification")
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(
        self, notification_id: int, *, recipient_id: str, read_at: datetime
    ) -> bool:
        """Flip an unread record to read. Return ``False`` when it is absent or foreign."""

        updated = (
            self._owned(notification_id, recipient_id)
            .filter(NotificationModel.read.is_(False))
            .update(
                {
                    NotificationModel.read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(read_at),
                },
                synchronize_session=False,
            )
        )
        self._commit("mark notification as read")
        return bool(updated) or self._exists(notification_id, recipient_id)

    def mark_as_unread(self, notification_id: int, *, recipient_id: str) -> bool:
        """Force a record back to unread. Return ``False`` when it is absent or foreign."""

        updated = self._owned(notification_id, recipient_id).update(
            {NotificationModel.read: False, NotificationModel.read_at: None},
            synchronize_session=False,
        )
        self._commit("mark notification as unread")
        return bool(updated)

    def mark_many_as_read(
        self, notification_ids: Iterable[int], *, recipient_id: str, read_at: datetime
    ) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.read.is_(False),
            )
            .update(
                {
                    NotificationModel.read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(read_at),
                },
                synchronize_session=False,
            )
        )
        self._commit("acknowledge notifications")
        return updated

    def mark_all_as_read(
        self,
        recipient_id: str,
        *,
        read_at: datetime,
        notification_type: NotificationType | None = None,
    ) -> int:
        updated = self._filtered(
            recipient_id, notification_type=notification_type, read=False
        ).update(
            {
                NotificationModel.read: True,
                NotificationModel.read_at: ensure_app_naive_datetime(read_at),
            },
            synchronize_session=False,
        )
        self._commit("mark all notifications as read")
        return updated

    def track_delivery(
        self,
        notification_id: int,
        channel: Channel,
        *,
        succeeded: bool,
        delivered_at: datetime | None,
        error: str | None,
    ) -> bool:
        """Replace the delivery columns of ``channel`` in a single statement."""

        flag, timestamp, error_column = _DELIVERY_COLUMNS[channel]
        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .update(
                {
                    getattr(NotificationModel, flag): succeeded,
                    getattr(NotificationModel, timestamp): (
                        ensure_app_naive_datetime(delivered_at) if succeeded else None
                    ),
                    getattr(NotificationModel, error_column): None if succeeded else error,
                },
                synchronize_session=False,
            )
        )
        self._commit("track notification delivery")
        return bool(updated)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def delete_for_recipient(self, notification_id: int, *, recipient_id: str) -> bool:
        deleted = self._owned(notification_id, recipient_id).delete(
            synchronize_session=False
        )
        self._commit("delete notification")
        return bool(deleted)

    def count_expired(self, before: datetime) -> int:
        return self._expired(before).count()

    def delete_expired(self, before: datetime) -> int:
        deleted = self._expired(before).delete(synchronize_session=False)
        self._commit("delete expired notifications")
        return deleted

    def _owned(self, notification_id: int, recipient_id: str) -> Query:
        return self.session.query(NotificationModel).filter(
            NotificationModel.id == notification_id,
            NotificationModel.recipient_id == recipient_id,
        )

    def _exists(self, notification_id: int, recipient_id: str) -> bool:
        return self.session.query(
            self._owned(notification_id, recipient_id).exists()
        ).scalar()

    def _filtered(
        self,
        recipient_id: str,
        *,
        notification_type: NotificationType | None,
        read: bool | None,
    ) -> Query:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == recipient_id
        )
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)
        if read is not None:
            query = query.filter(NotificationModel.read.is_(read))
        return query

    def _expired(self, before: datetime) -> Query:
        return self.session.query(NotificationModel).filter(
            NotificationModel.expires_at.is_not(None),
            NotificationModel.expires_at < ensure_app_naive_datetime(before),
        )

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to %s", action)
            raise StorageError(f"No se pudo completar la operación: {action}") from exc

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.recipient_id = notification.recipient_id
        model.type = notification.type.value
        model.title = notification.title
        model.content = notification.content
        model.importance = notification.importance.value
        model.read = notification.read
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.reference_kind = notification.reference.kind.value
        model.reference_id = notification.reference.id
        model.group = notification.group
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)
        if notification.created_at is not None:
            model.created_at = ensure_app_naive_datetime(notification.created_at)
        for channel, (flag, timestamp, error_column) in _DELIVERY_COLUMNS.items():
            delivery = notification.delivery.get(channel)
            setattr(model, flag, delivery.succeeded if delivery else None)
            setattr(
                model,
                timestamp,
                ensure_app_naive_datetime(delivery.delivered_at) if delivery else None,
            )
            setattr(model, error_column, delivery.error if delivery else None)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        delivery: dict[Channel, ChannelDelivery] = {}
        for channel, (flag, timestamp, error_column) in _DELIVERY_COLUMNS.items():
            succeeded = getattr(model, flag)
            if succeeded is None:
                continue
            delivery[channel] = ChannelDelivery(
                succeeded=succeeded,
                delivered_at=ensure_app_timezone(getattr(model, timestamp)),
                error=getattr(model, error_column),
            )
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            type=NotificationType(model.type),
            title=model.title,
            content=model.content,
            reference=EntityReference(
                kind=ReferenceKind(model.reference_kind), id=model.reference_id
            ),
            importance=Importance(model.importance),
            read=model.read,
            read_at=ensure_app_timezone(model.read_at),
            delivery=delivery,
            group=model.group,
            expires_at=ensure_app_timezone(model.expires_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationRepository"]
