from typing import List, Optional, Dict, Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.constants.enums import NotificationType
from newsroom.core.exceptions import AuthorizationError, NotFoundError
from newsroom.models.notification import Notification
from newsroom.repositories.notification import NotificationRepository
from newsroom.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    NotificationSummary
)

logger = structlog.get_logger()


class NotificationService:
    """Service for reading and managing a recipient's notifications"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notification_repository = NotificationRepository(db)

    async def create_notification(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationResponse:
        """Create a single in-app notification"""
        notification = await self.notification_repository.create(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data
        )
        return NotificationResponse.model_validate(notification)

    async def get_notifications(
        self,
        user_id: UUID,
        *,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None
    ) -> NotificationListResponse:
        """Get paginated notifications for a user"""
        offset = (page - 1) * page_size

        notifications = await self.notification_repository.get_by_recipient(
            user_id,
            unread_only=unread_only,
            limit=page_size,
            offset=offset,
            notification_type=notification_type
        )
        total_count = await self.notification_repository.count_by_recipient(
            user_id,
            unread_only=unread_only,
            notification_type=notification_type
        )
        unread_count = await self.notification_repository.get_unread_count(user_id)

        total_pages = (total_count + page_size - 1) // page_size

        return NotificationListResponse(
            notifications=[
                NotificationResponse.model_validate(notification)
                for notification in notifications
            ],
            total=total_count,
            unread_count=unread_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages
        )

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self.notification_repository.get(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != user_id:
            logger.warning(
                "Notification access denied",
                notification_id=str(notification_id),
                user_id=str(user_id),
            )
            raise AuthorizationError("You can only access your own notifications")
        return notification

    async def get_notification(self, notification_id: UUID, user_id: UUID) -> NotificationResponse:
        """Get a single notification owned by user_id"""
        notification = await self._get_owned(notification_id, user_id)
        return NotificationResponse.model_validate(notification)

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> NotificationResponse:
        """Mark one of the user's notifications as read"""
        await self._get_owned(notification_id, user_id)
        notification = await self.notification_repository.mark_as_read(notification_id)
        return NotificationResponse.model_validate(notification)

    async def mark_multiple_as_read(
        self,
        notification_ids: List[UUID],
        user_id: UUID
    ) -> int:
        """Mark several notifications as read; ids owned by others are ignored"""
        return await self.notification_repository.mark_multiple_as_read(
            notification_ids, user_id
        )

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all notifications as read for a user"""
        return await self.notification_repository.mark_all_as_read(user_id)

    async def get_unread_count(self, user_id: UUID) -> int:
        return await self.notification_repository.get_unread_count(user_id)

    async def get_notification_summary(self, user_id: UUID) -> NotificationSummary:
        """Get notification summary for a user"""
        total_count = await self.notification_repository.count_by_recipient(user_id)
        unread_count = await self.notification_repository.get_unread_count(user_id)
        latest_notification = await self.notification_repository.get_latest_notification(user_id)

        latest_response = None
        if latest_notification:
            latest_response = NotificationResponse.model_validate(latest_notification)

        return NotificationSummary(
            total_count=total_count,
            unread_count=unread_count,
            latest_notification=latest_response
        )

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> bool:
        """Delete one of the user's notifications"""
        await self._get_owned(notification_id, user_id)
        return await self.notification_repository.delete(notification_id)

    async def cleanup_old_notifications(
        self,
        user_id: Optional[UUID] = None,
        days_old: int = 30
    ) -> int:
        """Clean up old notifications"""
        deleted = await self.notification_repository.delete_old_notifications(
            user_id, days_old
        )
        logger.info("Old notifications deleted", count=deleted, days_old=days_old)
        return deleted
