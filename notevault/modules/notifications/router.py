"""
Notifications Endpoints

- GET    /api/v1/notifications               - Inbox (paginated)
- GET    /api/v1/notifications/unread-count  - Badge counter
- PATCH  /api/v1/notifications/read-all      - Mark everything read
- DELETE /api/v1/notifications               - Clear inbox
- GET    /api/v1/notifications/{id}          - Open one (marks read)
- PATCH  /api/v1/notifications/{id}/read     - Mark one read
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.auth.dependencies import CurrentUser
from notevault.modules.notifications.schemas import (
    NotificationBulkResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from notevault.modules.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def get_notification_service(db: Annotated[AsyncSession, Depends(get_db)]) -> NotificationService:
    return NotificationService(db)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=NotificationListResponse, summary="List Notifications")
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> NotificationListResponse:
    items, total, unread = await service.list_for_user(current_user.id, page, limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        page=page,
        limit=limit,
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread Count")
async def unread_count(current_user: CurrentUser, service: NotificationServiceDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await service.unread_count(current_user.id))


@router.patch("/read-all", response_model=NotificationBulkResponse, summary="Mark All Read")
async def mark_all_read(current_user: CurrentUser, service: NotificationServiceDep) -> NotificationBulkResponse:
    return NotificationBulkResponse(updated=await service.mark_all_read(current_user.id))


@router.delete("", response_model=NotificationBulkResponse, summary="Clear All")
async def clear_all(current_user: CurrentUser, service: NotificationServiceDep) -> NotificationBulkResponse:
    return NotificationBulkResponse(updated=await service.clear_all(current_user.id))


@router.get("/{notification_id}", response_model=NotificationResponse, summary="Open Notification")
async def get_notification(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> NotificationResponse:
    notification = await service.get(current_user.id, notification_id)
    return NotificationResponse.model_validate(notification)


@router.patch("/{notification_id}/read", response_model=NotificationResponse, summary="Mark Read")
async def mark_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> NotificationResponse:
    notification = await service.mark_read(current_user.id, notification_id)
    return NotificationResponse.model_validate(notification)
