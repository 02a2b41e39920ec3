from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict

from app.core.config import get_settings
from app.dependencies.auth import CurrentUser, resolve_user_from_token
from app.dependencies.services import NotificationRepositoryDep
from app.notifications.models import NotificationCategory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_id: int
    title: str
    message: str
    category: NotificationCategory
    is_read: bool
    created_at: datetime


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(repository: NotificationRepositoryDep, user: CurrentUser) -> list[NotificationResponse]:
    notifications = await repository.list_for_user(user.id)
    return [NotificationResponse.model_validate(item) for item in notifications]


@router.get("/unread-count")
async def unread_count(repository: NotificationRepositoryDep, user: CurrentUser) -> dict[str, int]:
    return {"unread": await repository.count_unread(user.id)}


@router.post("/read-all")
async def mark_all_read(repository: NotificationRepositoryDep, user: CurrentUser) -> dict[str, int]:
    return {"updated": await repository.mark_all_read(user.id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int, repository: NotificationRepositoryDep, user: CurrentUser
) -> NotificationResponse:
    notification = await repository.mark_read(notification_id, user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: int, repository: NotificationRepositoryDep, user: CurrentUser) -> None:
    if not await repository.delete(notification_id, user.id):
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")


@router.websocket("/ws")
async def notification_socket(websocket: WebSocket, token: str | None = Query(default=None)) -> None:
    state = websocket.app.state
    manager = getattr(state, "connection_manager", None)
    user = await resolve_user_from_token(
        token,
        settings=get_settings(),
        users=getattr(state, "user_directory", None),
    )
    if user is None or manager is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await manager.connect(user.id, websocket)
    try:
        # Inbound frames are only keep-alives.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Notification socket for user %s disconnected", user.id)
    finally:
        await manager.disconnect(user.id, websocket)
