"""
Notification retrieval service unit tests
"""
from uuid import uuid4

import pytest

from newsroom.constants.enums import NotificationType
from newsroom.core.exceptions import AuthorizationError, NotFoundError
from newsroom.services.notification import NotificationService


async def seed(service, user, count, notification_type=NotificationType.INFO):
    return [
        await service.create_notification(
            user_id=user.id,
            notification_type=notification_type,
            title=f"Notice {i}",
            message=f"Message {i}",
            data={"articleId": str(uuid4())},
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
class TestNotificationService:
    """Reading and managing a recipient's notifications"""

    async def test_create_notification(self, db_session, staff_user):
        notification_service = NotificationService(db_session)

        notification = await notification_service.create_notification(
            user_id=staff_user.id,
            notification_type=NotificationType.ARTICLE_APPROVED,
            title="Article Approved",
            message="Your article was approved.",
            data={"articleId": "123"},
        )

        assert notification.user_id == staff_user.id
        assert notification.type == NotificationType.ARTICLE_APPROVED
        assert notification.is_read is False
        assert notification.read_at is None
        assert notification.data == {"articleId": "123"}

    async def test_pagination(self, db_session, staff_user, other_staff_user):
        notification_service = NotificationService(db_session)
        await seed(notification_service, staff_user, 5)
        await seed(notification_service, other_staff_user, 2)

        first_page = await notification_service.get_notifications(staff_user.id, page=1, page_size=2)
        last_page = await notification_service.get_notifications(staff_user.id, page=3, page_size=2)

        assert first_page.total == 5
        assert first_page.total_pages == 3
        assert first_page.unread_count == 5
        assert len(first_page.notifications) == 2
        assert len(last_page.notifications) == 1
        assert all(n.user_id == staff_user.id for n in first_page.notifications + last_page.notifications)

    async def test_filters(self, db_session, staff_user):
        notification_service = NotificationService(db_session)
        created = await seed(notification_service, staff_user, 3)
        await seed(notification_service, staff_user, 1, NotificationType.ARTICLE_PUBLISHED)
        await notification_service.mark_as_read(created[0].id, staff_user.id)

        unread = await notification_service.get_notifications(staff_user.id, unread_only=True)
        published = await notification_service.get_notifications(
            staff_user.id, notification_type=NotificationType.ARTICLE_PUBLISHED
        )

        assert unread.total == 3
        assert all(not n.is_read for n in unread.notifications)
        assert [n.type for n in published.notifications] == [NotificationType.ARTICLE_PUBLISHED]

    async def test_get_notification_enforces_ownership(self, db_session, staff_user, other_staff_user):
        notification_service = NotificationService(db_session)
        [notification] = await seed(notification_service, staff_user, 1)

        assert (await notification_service.get_notification(notification.id, staff_user.id)).id == notification.id
        with pytest.raises(AuthorizationError) as exc_info:
            await notification_service.get_notification(notification.id, other_staff_user.id)
        assert exc_info.value.status_code == 403

    async def test_missing_notification(self, db_session, staff_user):
        notification_service = NotificationService(db_session)

        with pytest.raises(NotFoundError):
            await notification_service.get_notification(uuid4(), staff_user.id)
        with pytest.raises(NotFoundError):
            await notification_service.mark_as_read(uuid4(), staff_user.id)
        with pytest.raises(NotFoundError):
            await notification_service.delete_notification(uuid4(), staff_user.id)

    async def test_mark_as_read(self, db_session, staff_user, other_staff_user):
        notification_service = NotificationService(db_session)
        [notification] = await seed(notification_service, staff_user, 1)

        with pytest.raises(AuthorizationError):
            await notification_service.mark_as_read(notification.id, other_staff_user.id)

        read = await notification_service.mark_as_read(notification.id, staff_user.id)
        assert read.is_read is True
        assert read.read_at is not None

        again = await notification_service.mark_as_read(notification.id, staff_user.id)
        assert again.read_at == read.read_at
        assert await notification_service.get_unread_count(staff_user.id) == 0

    async def test_mark_multiple_ignores_foreign_ids(self, db_session, staff_user, other_staff_user):
        notification_service = NotificationService(db_session)
        own = await seed(notification_service, staff_user, 2)
        [foreign] = await seed(notification_service, other_staff_user, 1)

        updated = await notification_service.mark_multiple_as_read(
            [n.id for n in own] + [foreign.id], staff_user.id
        )

        assert updated == 2
        assert await notification_service.get_unread_count(other_staff_user.id) == 1

    async def test_mark_all_as_read(self, db_session, staff_user):
        notification_service = NotificationService(db_session)
        await seed(notification_service, staff_user, 3)

        assert await notification_service.mark_all_as_read(staff_user.id) == 3
        assert await notification_service.mark_all_as_read(staff_user.id) == 0

    async def test_summary(self, db_session, staff_user):
        notification_service = NotificationService(db_session)

        empty = await notification_service.get_notification_summary(staff_user.id)
        assert empty.total_count == 0
        assert empty.latest_notification is None

        created = await seed(notification_service, staff_user, 2)
        await notification_service.mark_as_read(created[0].id, staff_user.id)

        summary = await notification_service.get_notification_summary(staff_user.id)
        assert summary.total_count == 2
        assert summary.unread_count == 1
        assert summary.latest_notification is not None

    async def test_delete_notification(self, db_session, staff_user, other_staff_user):
        notification_service = NotificationService(db_session)
        [notification] = await seed(notification_service, staff_user, 1)

        with pytest.raises(AuthorizationError):
            await notification_service.delete_notification(notification.id, other_staff_user.id)

        assert await notification_service.delete_notification(notification.id, staff_user.id) is True
        with pytest.raises(NotFoundError):
            await notification_service.get_notification(notification.id, staff_user.id)

    async def test_cleanup_keeps_recent_notifications(self, db_session, staff_user):
        notification_service = NotificationService(db_session)
        await seed(notification_service, staff_user, 3)

        assert await notification_service.cleanup_old_notifications(staff_user.id, days_old=30) == 0
        assert (await notification_service.get_notifications(staff_user.id)).total == 3
