"""
Notification Service - In-app notification center with real-time delivery.
"""

import logging
import uuid
from typing import List, Optional

from ecoride.models.notification import Notification, NotificationIntent
from ecoride.realtime import RealtimeChannel
from ecoride.repositories.base import NotificationRepository
from ecoride.services.exceptions import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Notification service.

    `emit` is fire-and-forget: persistence and publish failures are logged
    and never reach the domain operation that triggered them. After creation
    only the recipient may mark a notification read or delete it.
    """

    def __init__(
        self,
        notifications: Optional[NotificationRepository] = None,
        channel: Optional[RealtimeChannel] = None,
    ):
        if notifications is None:
            from ecoride.repositories.mongo import MongoNotificationRepository
            notifications = MongoNotificationRepository()
        if channel is None:
            from ecoride.realtime import manager
            channel = manager
        self.notifications = notifications
        self.channel = channel

    async def emit(self, user_id: str, intent: NotificationIntent) -> Optional[Notification]:
        """
        Persist a notification for `user_id` and push it to their user room.

        Returns the stored notification, or None if it could not be stored.
        """
        notification = Notification(
            notification_id=str(uuid.uuid4()),
            user_id=user_id,
            type=intent.type,
            title=intent.title,
            body=intent.body,
            ref_id=intent.ref_id,
            ref_type=intent.ref_type,
        )

        try:
            await self.notifications.insert(notification)
        except Exception as e:
            logger.warning(f"Notification for {user_id} not stored: {e}")
            return None

        try:
            await self.channel.publish_to_user(
                user_id, "newNotification", notification.model_dump(mode="json")
            )
        except Exception as e:
            logger.warning(f"Notification {notification.notification_id} not published: {e}")

        return notification

    async def get_notifications(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]:
        """Get user's notifications, newest first."""
        return await self.notifications.find_by_user(user_id, limit=limit, unread_only=unread_only)

    async def get_unread_count(self, user_id: str) -> int:
        return await self.notifications.count_unread(user_id)

    async def _owned(self, user_id: str, notification_id: str) -> Notification:
        notification = await self.notifications.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.user_id != user_id:
            raise AuthorizationError("Only the recipient can change this notification")
        return notification

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        """Mark a notification as read."""
        notification = await self._owned(user_id, notification_id)
        if not notification.read:
            await self.notifications.mark_read(notification_id)
            notification.read = True
        return notification

    async def delete_notification(self, user_id: str, notification_id: str) -> None:
        await self._owned(user_id, notification_id)
        await self.notifications.delete(notification_id)
