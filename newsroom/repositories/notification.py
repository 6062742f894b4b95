from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func, and_, desc, delete
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.constants.enums import NotificationType
from newsroom.models.notification import Notification
from newsroom.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for notification operations"""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    def _recipient_query(
        self,
        query,
        user_id: UUID,
        unread_only: bool,
        notification_type: Optional[NotificationType]
    ):
        query = query.where(self.model.user_id == user_id)
        if unread_only:
            query = query.where(self.model.is_read == False)
        if notification_type:
            query = query.where(self.model.type == notification_type)
        return query

    async def get_by_recipient(
        self,
        user_id: UUID,
        *,
        unread_only: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        notification_type: Optional[NotificationType] = None
    ) -> List[Notification]:
        """Get notifications for a specific recipient, newest first"""
        query = self._recipient_query(
            select(self.model), user_id, unread_only, notification_type
        )
        query = query.order_by(desc(self.model.created_at))

        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_recipient(
        self,
        user_id: UUID,
        *,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None
    ) -> int:
        """Count notifications for a recipient with the same filters as get_by_recipient"""
        query = self._recipient_query(
            select(func.count(self.model.id)), user_id, unread_only, notification_type
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get count of unread notifications for a recipient"""
        return await self.count_by_recipient(user_id, unread_only=True)

    async def get_latest_notification(self, user_id: UUID) -> Optional[Notification]:
        """Get the latest notification for a recipient"""
        query = select(self.model).where(
            self.model.user_id == user_id
        ).order_by(desc(self.model.created_at)).limit(1)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def mark_as_read(self, notification_id: UUID) -> Optional[Notification]:
        """Mark a single notification as read"""
        notification = await self.get(notification_id)
        if notification and not notification.is_read:
            notification.mark_as_read()
            await self.db.flush()
            await self.db.refresh(notification)
        return notification

    async def mark_multiple_as_read(
        self,
        notification_ids: List[UUID],
        user_id: UUID
    ) -> int:
        """Mark several of a recipient's notifications as read"""
        query = select(self.model).where(
            and_(
                self.model.id.in_(notification_ids),
                self.model.user_id == user_id,
                self.model.is_read == False
            )
        )
        result = await self.db.execute(query)
        notifications = result.scalars().all()

        for notification in notifications:
            notification.mark_as_read()

        if notifications:
            await self.db.flush()

        return len(notifications)

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all unread notifications as read for a recipient"""
        query = select(self.model).where(
            and_(
                self.model.user_id == user_id,
                self.model.is_read == False
            )
        )
        result = await self.db.execute(query)
        notifications = result.scalars().all()

        for notification in notifications:
            notification.mark_as_read()

        if notifications:
            await self.db.flush()

        return len(notifications)

    async def delete_old_notifications(
        self,
        user_id: Optional[UUID] = None,
        days_old: int = 30
    ) -> int:
        """Delete notifications older than specified days"""
        cutoff_date = datetime.now(timezone.utc) - timedelta(days=days_old)

        query = delete(self.model).where(self.model.created_at < cutoff_date)
        if user_id:
            query = query.where(self.model.user_id == user_id)

        result = await self.db.execute(query, execution_options={"synchronize_session": False})
        return result.rowcount or 0
