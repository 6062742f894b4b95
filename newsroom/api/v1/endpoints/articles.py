from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.api.v1.dependencies.auth import get_current_user, get_dispatcher
from newsroom.core.exceptions import NotFoundError, NotificationDispatchError
from newsroom.db.session import get_db
from newsroom.models.user import User
from newsroom.repositories.article import ArticleRepository
from newsroom.schemas.article import (
    ArticleResponse,
    ArticleStatusUpdate,
    ArticleStatusResponse,
    ArticleTransitionsResponse,
    ArticleUpdate,
)
from newsroom.services.dispatcher import NotificationDispatcher
from newsroom.services.workflow import WorkflowService

logger = structlog.get_logger()

router = APIRouter()


@router.patch("/{article_id}/status", response_model=ArticleStatusResponse)
async def update_article_status(
    article_id: UUID,
    status_update: ArticleStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Move an article along the review workflow.

    The transition is committed before any notification is sent; a failure
    to notify is logged and does not change the response.
    """
    workflow_service = WorkflowService(db)
    article, event = await workflow_service.apply_transition(
        article_id,
        status_update.status,
        current_user,
        feedback=status_update.feedback,
        scheduled_at=status_update.scheduled_at,
    )
    await db.commit()
    response = ArticleStatusResponse.model_validate(article)

    try:
        await dispatcher.notify(event)
    except NotificationDispatchError as e:
        logger.error(
            "Notification dispatch failed after status change",
            article_id=str(article_id),
            new_status=event.new_status.value,
            error=str(e),
        )

    return response


@router.patch("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: UUID,
    article_update: ArticleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Edit an article; reviewers hear about edits in review or after publication"""
    workflow_service = WorkflowService(db)
    article, event = await workflow_service.edit_article(article_id, current_user, article_update.title)
    await db.commit()
    response = ArticleResponse.model_validate(article)

    try:
        await dispatcher.notify(event)
    except NotificationDispatchError as e:
        logger.error(
            "Notification dispatch failed after article edit",
            article_id=str(article_id),
            error=str(e),
        )

    return response


@router.get("/{article_id}/transitions", response_model=ArticleTransitionsResponse)
async def get_article_transitions(
    article_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Statuses the current user may move the article to"""
    article = await ArticleRepository(db).get(article_id)
    if not article:
        raise NotFoundError("Article not found")

    workflow_service = WorkflowService(db)
    return ArticleTransitionsResponse(
        id=article.id,
        status=article.status,
        allowed=workflow_service.get_available_transitions(article, current_user),
    )
