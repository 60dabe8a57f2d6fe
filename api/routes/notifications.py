"""In-app notification endpoints."""

from typing import Any

from fastapi import APIRouter, Query

from api.routes.auth import CurrentUser
from booking.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    current_user: CurrentUser,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
) -> dict[str, Any]:
    return {
        "items": await notification_service.list_notifications(
            current_user.id, unread_only=unread_only, limit=limit
        ),
        "unread_count": await notification_service.count_unread_notifications(current_user.id),
    }


# Declared before /{notification_id}/read so "read-all" is not parsed as an id
@router.put("/read-all")
async def mark_all_read(current_user: CurrentUser) -> dict[str, int]:
    return {"updated": await notification_service.mark_all_notifications_read(current_user.id)}


@router.put("/{notification_id}/read")
async def mark_read(notification_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await notification_service.mark_notification_read(current_user.id, notification_id)
