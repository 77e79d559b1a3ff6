"""Use cases for creating notifications and moving them between read states."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.orm import Session

from app.domain.entities import (
    EntityReference,
    Importance,
    Notification,
    NotificationType,
    ReferenceKind,
    parse_importance,
    parse_notification_type,
    parse_reference_kind,
)
from app.domain.exceptions import NotFoundError, ValidationError
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

NOT_FOUND_MESSAGE = "Notificación no encontrada"
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class NotificationPage:
    """A page of a user's notifications plus the counters shown next to it."""

    items: Sequence[Notification]
    total: int
    page: int
    limit: int
    unread_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def create_notification(
    session: Session,
    *,
    recipient_id: str,
    notification_type: NotificationType | str,
    title: str,
    content: str,
    reference: EntityReference | tuple[ReferenceKind | str, str],
    importance: Importance | str = Importance.MEDIUM,
    group: str | None = None,
    expires_at: datetime | None = None,
) -> Notification:
    """Persist a new unread notification with no delivery attempts recorded."""

    if not recipient_id:
        raise ValidationError("El destinatario es obligatorio")
    title = (title or "").strip()
    content = (content or "").strip()
    if not title:
        raise ValidationError("El título es obligatorio")
    if not content:
        raise ValidationError("El contenido es obligatorio")

    notification = Notification(
        id=None,
        recipient_id=recipient_id,
        type=parse_notification_type(notification_type),
        title=title,
        content=content,
        reference=_coerce_reference(reference),
        importance=parse_importance(importance),
        read=False,
        read_at=None,
        delivery={},
        group=group,
        expires_at=expires_at,
        created_at=now_in_app_timezone(),
    )
    return NotificationRepository(session).create(notification)


def create_project_notification(
    session: Session,
    *,
    recipient_id: str,
    project_id: str,
    project_name: str,
    notification_type: NotificationType | str,
    content: str,
    importance: Importance | str = Importance.MEDIUM,
) -> Notification:
    """Notify ``recipient_id`` about a project, titled after the project name."""

    return create_notification(
        session,
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=f"Project: {project_name}",
        content=content,
        reference=EntityReference(kind=ReferenceKind.PROJECT, id=str(project_id)),
        importance=importance,
    )


def create_task_notification(
    session: Session,
    *,
    recipient_id: str,
    task_id: str,
    task_title: str,
    notification_type: NotificationType | str,
    content: str,
    importance: Importance | str = Importance.MEDIUM,
) -> Notification:
    """Notify ``recipient_id`` about a task, titled after the task title."""

    return create_notification(
        session,
        recipient_id=recipient_id,
        notification_type=notification_type,
        title=f"Task: {task_title}",
        content=content,
        reference=EntityReference(kind=ReferenceKind.TASK, id=str(task_id)),
        importance=importance,
    )


def get_notification(session: Session, notification_id: int, *, user_id: str) -> Notification:
    """Return the notification if ``user_id`` owns it, else raise ``NotFoundError``."""

    notification = NotificationRepository(session).get_for_recipient(
        notification_id, recipient_id=user_id
    )
    if notification is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return notification


def list_notifications(
    session: Session,
    *,
    user_id: str,
    notification_type: NotificationType | str | None = None,
    read: bool | None = None,
    page: int = 1,
    limit: int = 20,
    order: str = "desc",
) -> NotificationPage:
    """Return one page of the user's notifications, newest first by default."""

    if page < 1:
        raise ValidationError("La página debe ser mayor o igual a 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"El límite debe estar entre 1 y {MAX_PAGE_SIZE}")
    if order not in ("asc", "desc"):
        raise ValidationError("El orden debe ser 'asc' o 'desc'")
    parsed_type = parse_notification_type(notification_type) if notification_type else None

    repository = NotificationRepository(session)
    items = repository.list_for_recipient(
        user_id,
        notification_type=parsed_type,
        read=read,
        skip=(page - 1) * limit,
        limit=limit,
        newest_first=order == "desc",
    )
    total = repository.count_for_recipient(user_id, notification_type=parsed_type, read=read)
    return NotificationPage(
        items=items,
        total=total,
        page=page,
        limit=limit,
        unread_count=repository.count_unread(user_id),
    )


def mark_notification_read(
    session: Session,
    notification_id: int,
    *,
    user_id: str,
    now: datetime | None = None,
) -> Notification:
    """Mark the notification as read; an already read one keeps its ``read_at``."""

    repository = NotificationRepository(session)
    if not repository.mark_as_read(
        notification_id, recipient_id=user_id, read_at=now or now_in_app_timezone()
    ):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return get_notification(session, notification_id, user_id=user_id)


def mark_notification_unread(
    session: Session, notification_id: int, *, user_id: str
) -> Notification:
    """Mark the notification as unread and clear ``read_at``."""

    repository = NotificationRepository(session)
    if not repository.mark_as_unread(notification_id, recipient_id=user_id):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return get_notification(session, notification_id, user_id=user_id)


def delete_notification(session: Session, notification_id: int, *, user_id: str) -> None:
    """Delete a notification owned by ``user_id``."""

    if not NotificationRepository(session).delete_for_recipient(
        notification_id, recipient_id=user_id
    ):
        raise NotFoundError(NOT_FOUND_MESSAGE)


def get_unread_count(session: Session, user_id: str) -> int:
    """Return how many unread notifications ``user_id`` has."""

    return NotificationRepository(session).count_unread(user_id)


def _coerce_reference(
    reference: EntityReference | tuple[ReferenceKind | str, str] | None,
) -> EntityReference:
    if isinstance(reference, EntityReference):
        kind, entity_id = reference.kind, reference.id
    elif isinstance(reference, tuple) and len(reference) == 2:
        kind, entity_id = reference
    else:
        raise ValidationError("La referencia es obligatoria")
    if not entity_id:
        raise ValidationError("La referencia debe indicar el identificador de la entidad")
    return EntityReference(kind=parse_reference_kind(kind), id=str(entity_id))


__all__ = [
    "NotificationPage",
    "create_notification",
    "create_project_notification",
    "create_task_notification",
    "delete_notification",
    "get_notification",
    "get_unread_count",
    "list_notifications",
    "mark_notification_read",
    "mark_notification_unread",
]
