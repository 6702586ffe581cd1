"""
Notifications Router

In-app notification center.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ecoride.dependencies import get_current_user, get_notification_service
from ecoride.models.notification import Notification
from ecoride.models.user import User
from ecoride.services.notification_service import NotificationService


router = APIRouter()


class NotificationListResponse(BaseModel):
    """List of notifications with unread count."""
    notifications: List[Notification]
    unread_count: int


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    limit: int = 50,
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Get user's notifications, newest first."""
    items = await notifications.get_notifications(
        user_id=current_user.user_id,
        limit=limit,
        unread_only=unread_only,
    )
    unread_count = await notifications.get_unread_count(current_user.user_id)

    return NotificationListResponse(notifications=items, unread_count=unread_count)


@router.put("/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Mark a notification as read."""
    return await notifications.mark_read(current_user.user_id, notification_id)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    await notifications.delete_notification(current_user.user_id, notification_id)
    return {"success": True, "message": "Notification deleted"}
