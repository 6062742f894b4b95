"""
Events handed from state-changing operations to the notification dispatcher.

Events are ephemeral: they are never persisted and carry only ids and the
facts the recipient resolver cannot re-read from the store (the old status,
the acting role, reviewer feedback).
"""
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from newsroom.constants.enums import ArticleStatus, CommentStatus, FlipbookAction, Role


class TransitionEvent(BaseModel):
    """An applied article status change"""
    model_config = ConfigDict(frozen=True)

    article_id: UUID
    old_status: ArticleStatus
    new_status: ArticleStatus
    actor_id: UUID
    actor_role: Role
    feedback: Optional[str] = None


class ArticleUpdatedEvent(BaseModel):
    """An article was edited without changing its status"""
    model_config = ConfigDict(frozen=True)

    article_id: UUID
    status: ArticleStatus
    actor_id: UUID
    actor_role: Role


class CommentPostedEvent(BaseModel):
    """A new comment was posted on an article"""
    model_config = ConfigDict(frozen=True)

    comment_id: UUID
    article_id: UUID
    actor_id: UUID


class CommentStatusEvent(BaseModel):
    """A moderator changed a comment's status"""
    model_config = ConfigDict(frozen=True)

    comment_id: UUID
    status: CommentStatus
    actor_id: UUID
    feedback: Optional[str] = None


class FlipbookEvent(BaseModel):
    """An online issue was created or updated"""
    model_config = ConfigDict(frozen=True)

    flipbook_id: UUID
    action: FlipbookAction
    actor_id: UUID


NotificationEvent = Union[
    TransitionEvent,
    ArticleUpdatedEvent,
    CommentPostedEvent,
    CommentStatusEvent,
    FlipbookEvent,
]
