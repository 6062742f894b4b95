"""
Notification fan-out.

The in-app record is the only durable channel: every recipient's row is
written and committed before notify() returns. Email and realtime delivery
run afterwards as background tasks, one per (recipient, channel), so a slow
or failing channel never delays the caller or another recipient.
"""
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.core.exceptions import ChannelDeliveryError, NotFoundError, NotificationDispatchError
from newsroom.models.notification import Notification
from newsroom.repositories.notification import NotificationRepository
from newsroom.schemas.events import NotificationEvent
from newsroom.services.email import EmailSender, render_notification_email
from newsroom.services.realtime import RealtimePusher
from newsroom.services.recipients import NotificationCase, RecipientResolver
from newsroom.utils.background import BackgroundTaskTracker, background_tasks

logger = structlog.get_logger()


class NotificationDispatcher:
    """Resolves an event and delivers it on every channel"""

    def __init__(
        self,
        db: AsyncSession,
        email_sender: EmailSender,
        pusher: RealtimePusher,
        tasks: BackgroundTaskTracker = background_tasks,
    ):
        self.db = db
        self.email_sender = email_sender
        self.pusher = pusher
        self.tasks = tasks
        self.resolver = RecipientResolver(db)
        self.notification_repo = NotificationRepository(db)

    async def notify(self, event: NotificationEvent) -> List[Notification]:
        """
        Write in-app notifications for an event and schedule the other channels.

        Raises NotificationDispatchError if recipients cannot be resolved or
        the in-app records cannot be committed; nothing is sent on other
        channels in that case.
        """
        try:
            resolved = await self.resolver.resolve(event)
        except (SQLAlchemyError, NotFoundError) as e:
            await self.db.rollback()
            logger.error(
                "Failed to resolve notification recipients",
                event=type(event).__name__,
                error=str(e),
            )
            raise NotificationDispatchError(str(e)) from e

        if not resolved:
            logger.info("No recipients for event", event=type(event).__name__)
            return []

        deliveries = []
        try:
            for item in resolved:
                for recipient in item.recipients:
                    notification = await self.notification_repo.create(
                        user_id=recipient.id,
                        type=item.type,
                        title=item.title,
                        message=item.message,
                        data=item.data,
                    )
                    deliveries.append((item.case, recipient, notification))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to create in-app notifications",
                event=type(event).__name__,
                error=str(e),
            )
            raise NotificationDispatchError(str(e)) from e

        logger.info(
            "In-app notifications created",
            event=type(event).__name__,
            cases=sorted({item.case.value for item in resolved}),
            count=len(deliveries),
        )

        for case, recipient, notification in deliveries:
            self.tasks.spawn(
                self._send_email(case, recipient.id, recipient.email, recipient.full_name, notification),
                name=f"email:{case.value}:{recipient.id}",
            )
            self.tasks.spawn(
                self._send_realtime(case, recipient.id, notification),
                name=f"realtime:{case.value}:{recipient.id}",
            )

        return [notification for _, _, notification in deliveries]

    async def _send_email(
        self,
        case: NotificationCase,
        recipient_id: UUID,
        email: str,
        name: str,
        notification: Notification,
    ) -> None:
        subject, html_body = render_notification_email(
            name, notification.title, notification.message, notification.data
        )
        try:
            await self.email_sender.send(email, subject, html_body)
        except ChannelDeliveryError as e:
            logger.error(
                "Email delivery failed",
                case=case.value,
                recipient_id=str(recipient_id),
                channel="email",
                reason=e.reason,
            )
        except Exception as e:
            logger.exception(
                "Unexpected email delivery error",
                case=case.value,
                recipient_id=str(recipient_id),
                channel="email",
                error=str(e),
            )

    async def _send_realtime(
        self,
        case: NotificationCase,
        recipient_id: UUID,
        notification: Notification,
    ) -> None:
        try:
            delivered = await self.pusher.push_notification(recipient_id, notification)
        except ChannelDeliveryError as e:
            logger.error(
                "Realtime delivery failed",
                case=case.value,
                recipient_id=str(recipient_id),
                channel="realtime",
                reason=e.reason,
            )
            return
        except Exception as e:
            logger.exception(
                "Unexpected realtime delivery error",
                case=case.value,
                recipient_id=str(recipient_id),
                channel="realtime",
                error=str(e),
            )
            return

        if not delivered:
            logger.debug(
                "Recipient not connected to notification stream",
                case=case.value,
                recipient_id=str(recipient_id),
            )
