"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import (
    APIRouter,
    Body,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    delete_notification as delete_notification_uc,
    get_notification as get_notification_uc,
    get_or_create_preferences as get_or_create_preferences_uc,
    get_unread_count as get_unread_count_uc,
    list_notifications as list_notifications_uc,
    mark_all_read as mark_all_read_uc,
    mark_notification_read as mark_notification_read_uc,
    mark_notification_unread as mark_notification_unread_uc,
    update_preferences as update_preferences_uc,
)
from app.domain.entities import Channel, Notification, NotificationPreference
from app.domain.exceptions import NotFoundError, ValidationError
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.notifications import (
    notification_manager,
    serialize_delivery,
    serialize_notification,
)
from app.infrastructure.repositories import NotificationRepository
from app.interfaces.api.dependencies import get_current_user_id, resolve_current_user_id
from app.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    UnreadCountResponse,
)
from app.utils import now_in_app_timezone

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)

# Payload keys follow the snake_case section names used across the preferences body.
_SECTION_KEYS: dict[Channel, str] = {
    Channel.EMAIL: "email",
    Channel.IN_APP: "in_app",
    Channel.SLACK: "slack",
}


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        recipient_id=notification.recipient_id,
        type=notification.type.value,
        title=notification.title,
        content=notification.content,
        importance=notification.importance.value,
        read=notification.read,
        read_at=notification.read_at,
        reference={
            "kind": notification.reference.kind.value,
            "id": notification.reference.id,
        },
        delivery=serialize_delivery(notification),
        group=notification.group,
        expires_at=notification.expires_at,
        created_at=notification.created_at,
        updated_at=notification.updated_at,
    )


def _preference_to_schema(preference: NotificationPreference) -> NotificationPreferenceRead:
    def _types(types) -> dict[str, bool]:
        return {notification_type.value: enabled for notification_type, enabled in types.items()}

    return NotificationPreferenceRead(
        user_id=preference.user_id,
        email={
            "enabled": preference.email.enabled,
            "types": _types(preference.email.types),
            "digest": {
                "enabled": preference.email.digest.enabled,
                "frequency": preference.email.digest.frequency.value,
                "time": preference.email.digest.time,
            },
        },
        in_app={
            "enabled": preference.in_app.enabled,
            "desktop": preference.in_app.desktop,
            "sound": preference.in_app.sound,
            "types": _types(preference.in_app.types),
        },
        slack={
            "enabled": preference.slack.enabled,
            "webhook_url": preference.slack.webhook_url,
            "channel": preference.slack.channel,
            "types": _types(preference.slack.types),
        },
        minimum_importance={
            _SECTION_KEYS[channel]: preference.minimum_importance_for(channel).value
            for channel in Channel
        },
        do_not_disturb={
            "enabled": preference.do_not_disturb.enabled,
            "start_time": preference.do_not_disturb.start_time,
            "end_time": preference.do_not_disturb.end_time,
            "timezone": preference.do_not_disturb.timezone,
        },
        created_at=preference.created_at,
        updated_at=preference.updated_at,
    )


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    type: str | None = Query(None, description="Filtra por tipo de notificación"),
    read: bool | None = Query(None, description="Filtra por estado de lectura"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationListResponse:
    """Devuelve las notificaciones del usuario autenticado, paginadas."""

    try:
        result = list_notifications_uc(
            db,
            user_id=user_id,
            notification_type=type,
            read=read,
            page=page,
            limit=limit,
            order=order,
        )
    except ValidationError as exc:
        raise _bad_request(exc) from exc

    return NotificationListResponse(
        items=[_notification_to_schema(notification) for notification in result.items],
        total=result.total,
        total_pages=result.total_pages,
        page=result.page,
        unread_count=result.unread_count,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> UnreadCountResponse:
    """Devuelve la cantidad de notificaciones sin leer."""

    return UnreadCountResponse(unread_count=get_unread_count_uc(db, user_id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_as_read(
    type: str | None = Query(None, description="Limita la operación a un tipo"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> MarkAllReadResponse:
    """Marca como leídas todas las notificaciones pendientes del usuario."""

    try:
        updated = mark_all_read_uc(db, user_id, notification_type=type)
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return MarkAllReadResponse(updated=updated)


@router.get("/preferences", response_model=NotificationPreferenceRead)
def read_preferences(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationPreferenceRead:
    """Devuelve las preferencias del usuario, creándolas con valores por defecto si faltan."""

    return _preference_to_schema(get_or_create_preferences_uc(db, user_id))


@router.put("/preferences", response_model=NotificationPreferenceRead)
def update_preferences(
    payload: dict[str, Any] = Body(
        ..., description="Cambios parciales de preferencias"
    ),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationPreferenceRead:
    """Actualiza las preferencias de notificación del usuario."""

    try:
        changes = NotificationPreferenceUpdate.model_validate(payload)
    except PydanticValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        ) from exc

    try:
        preference = update_preferences_uc(
            db, user_id, changes.model_dump(exclude_unset=True)
        )
    except ValidationError as exc:
        raise _bad_request(exc) from exc
    return _preference_to_schema(preference)


@router.get("/{notification_id}", response_model=NotificationRead)
def read_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationRead:
    """Obtiene una notificación del usuario autenticado."""

    try:
        notification = get_notification_uc(db, notification_id, user_id=user_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return _notification_to_schema(notification)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationRead:
    """Marca la notificación como leída."""

    try:
        notification = mark_notification_read_uc(db, notification_id, user_id=user_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return _notification_to_schema(notification)


@router.post("/{notification_id}/unread", response_model=NotificationRead)
def mark_as_unread(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> NotificationRead:
    """Marca la notificación como no leída."""

    try:
        notification = mark_notification_unread_uc(db, notification_id, user_id=user_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return _notification_to_schema(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> Response:
    """Elimina una notificación del usuario autenticado."""

    try:
        delete_notification_uc(db, notification_id, user_id=user_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _notification_to_payload(notification: Notification) -> dict[str, Any]:
    return serialize_notification(notification)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user_id = resolve_current_user_id(token)
        pending_notifications = NotificationRepository(session).list_unread_for_recipient(
            user_id
        )
    except HTTPException:
        await websocket.close(code=1008)
        return
    except Exception:
        logger.exception("Failed to open notification websocket")
        await websocket.close(code=1011)
        return
    finally:
        session.close()

    await notification_manager.connect(user_id, websocket)
    try:
        if pending_notifications:
            await websocket.send_json(
                {"type": "init", "data": [_notification_to_payload(n) for n in pending_notifications]}
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    ack_session = SessionLocal()
                    try:
                        NotificationRepository(ack_session).mark_many_as_read(
                            [value for value in ids if isinstance(value, int)],
                            recipient_id=user_id,
                            read_at=now_in_app_timezone(),
                        )
                    finally:
                        ack_session.close()
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:
        notification_manager.disconnect(user_id, websocket)
        raise
