from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.api.v1.dependencies.auth import get_current_user, get_dispatcher
from newsroom.core.exceptions import NotFoundError, NotificationDispatchError
from newsroom.db.session import get_db
from newsroom.models.user import User
from newsroom.repositories.comment import CommentRepository
from newsroom.schemas.comment import CommentResponse, CommentStatusUpdate
from newsroom.schemas.events import CommentStatusEvent
from newsroom.services.dispatcher import NotificationDispatcher
from newsroom.services.permission import Permission, PermissionService

logger = structlog.get_logger()

router = APIRouter()


@router.patch("/{comment_id}/status", response_model=CommentResponse)
async def moderate_comment(
    comment_id: UUID,
    status_update: CommentStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Approve or reject a comment and notify its author"""
    PermissionService.require_permission(current_user, Permission.COMMENT_MODERATE)

    comment_repo = CommentRepository(db)
    comment = await comment_repo.get(comment_id)
    if not comment:
        raise NotFoundError("Comment not found")

    comment = await comment_repo.update_status(comment, status_update.status)
    await db.commit()
    response = CommentResponse.model_validate(comment)

    logger.info(
        "Comment moderated",
        comment_id=str(comment_id),
        status=status_update.status.value,
        moderator_id=str(current_user.id),
    )

    try:
        await dispatcher.notify(CommentStatusEvent(
            comment_id=comment.id,
            status=status_update.status,
            actor_id=current_user.id,
            feedback=status_update.feedback,
        ))
    except NotificationDispatchError as e:
        logger.error("Notification dispatch failed after moderation", comment_id=str(comment_id), error=str(e))

    return response
