from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from app.assets.registry import AssetRegistry
from app.comments.service import CommentService
from app.notifications.repository import NotificationRepository
from app.tickets.service import TicketLifecycleManager


def _from_state(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return service


async def get_ticket_service(request: Request) -> TicketLifecycleManager:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_comment_service(request: Request) -> CommentService:
    return _from_state(request, "comment_service", "Comment service")


async def get_asset_registry(request: Request) -> AssetRegistry:
    return _from_state(request, "asset_registry", "Asset registry")


async def get_notification_repository(request: Request) -> NotificationRepository:
    return _from_state(request, "notification_repository", "Notification store")


TicketServiceDep = Annotated[TicketLifecycleManager, Depends(get_ticket_service)]
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
AssetRegistryDep = Annotated[AssetRegistry, Depends(get_asset_registry)]
NotificationRepositoryDep = Annotated[NotificationRepository, Depends(get_notification_repository)]

