from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.constants.enums import ArticleStatus, Role
from newsroom.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    OwnershipError,
    PermissionDeniedError,
    ValidationError,
)
from newsroom.models.article import Article
from newsroom.models.user import User
from newsroom.repositories.article import ArticleRepository
from newsroom.schemas.events import ArticleUpdatedEvent, TransitionEvent
from newsroom.services.permission import Permission, PermissionService, has_permission

logger = structlog.get_logger()

Edge = Tuple[ArticleStatus, ArticleStatus]

# Forward edges: current status -> statuses it may move to
STATE_TRANSITIONS: Dict[ArticleStatus, FrozenSet[ArticleStatus]] = {
    ArticleStatus.DRAFT: frozenset({ArticleStatus.IN_REVIEW}),
    ArticleStatus.IN_REVIEW: frozenset({
        ArticleStatus.NEEDS_REVISION,
        ArticleStatus.APPROVED,
    }),
    ArticleStatus.NEEDS_REVISION: frozenset({ArticleStatus.IN_REVIEW}),
    ArticleStatus.APPROVED: frozenset({
        ArticleStatus.SCHEDULED,
        ArticleStatus.PUBLISHED,
    }),
    ArticleStatus.SCHEDULED: frozenset({ArticleStatus.PUBLISHED}),
    ArticleStatus.PUBLISHED: frozenset({ArticleStatus.ARCHIVED}),
    ArticleStatus.ARCHIVED: frozenset(),
}

# Privileged back-edges: return to section (editorial board), restore (top two roles)
PRIVILEGED_BACK_EDGES: FrozenSet[Edge] = frozenset({
    (ArticleStatus.APPROVED, ArticleStatus.IN_REVIEW),
    (ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW),
})

EDGE_PERMISSIONS: Dict[Edge, Permission] = {
    (ArticleStatus.DRAFT, ArticleStatus.IN_REVIEW): Permission.ARTICLE_SUBMIT,
    (ArticleStatus.NEEDS_REVISION, ArticleStatus.IN_REVIEW): Permission.ARTICLE_SUBMIT,
    (ArticleStatus.IN_REVIEW, ArticleStatus.APPROVED): Permission.ARTICLE_APPROVE,
    (ArticleStatus.IN_REVIEW, ArticleStatus.NEEDS_REVISION): Permission.ARTICLE_REJECT,
    (ArticleStatus.APPROVED, ArticleStatus.SCHEDULED): Permission.ARTICLE_SCHEDULE,
    (ArticleStatus.APPROVED, ArticleStatus.PUBLISHED): Permission.ARTICLE_PUBLISH,
    (ArticleStatus.SCHEDULED, ArticleStatus.PUBLISHED): Permission.ARTICLE_PUBLISH,
    (ArticleStatus.PUBLISHED, ArticleStatus.ARCHIVED): Permission.ARTICLE_ARCHIVE,
    (ArticleStatus.APPROVED, ArticleStatus.IN_REVIEW): Permission.ARTICLE_RETURN,
    (ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW): Permission.ARTICLE_RESTORE,
}


def is_edge(current_status: ArticleStatus, new_status: ArticleStatus) -> bool:
    """True if current -> new is a forward edge or a privileged back-edge"""
    if new_status in STATE_TRANSITIONS.get(current_status, frozenset()):
        return True
    return (current_status, new_status) in PRIVILEGED_BACK_EDGES


class WorkflowService:
    """Article review workflow"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.article_repo = ArticleRepository(db)

    @staticmethod
    def get_allowed_transitions(current_status: ArticleStatus) -> List[ArticleStatus]:
        """Every status reachable in one step, ignoring who is asking"""
        targets: Set[ArticleStatus] = set(STATE_TRANSITIONS.get(current_status, frozenset()))
        targets.update(new for old, new in PRIVILEGED_BACK_EDGES if old == current_status)
        return sorted(targets, key=lambda s: s.value)

    @staticmethod
    def check_transition(
        current_status: ArticleStatus,
        new_status: ArticleStatus,
        role: Role,
        is_owner: bool,
    ) -> None:
        """
        Validate a transition without touching the database.

        Checks run in a fixed order: the edge must exist, the role must hold
        the edge's permission, and roles without review rights must own the
        article.
        """
        if not is_edge(current_status, new_status):
            raise InvalidTransitionError(
                f"Cannot move article from {current_status.value} to {new_status.value}"
            )

        permission = EDGE_PERMISSIONS[(current_status, new_status)]
        if not has_permission(role, permission):
            raise PermissionDeniedError(
                f"Role {role.value} may not move article from "
                f"{current_status.value} to {new_status.value}"
            )

        if not is_owner and not has_permission(role, Permission.ARTICLE_REVIEW):
            raise OwnershipError("You can only move your own articles")

    def get_available_transitions(self, article: Article, user: User) -> List[ArticleStatus]:
        """Statuses this user may move the article to right now"""
        available = []
        for target in self.get_allowed_transitions(article.status):
            try:
                self.check_transition(
                    article.status, target, user.role, article.author_id == user.id
                )
            except (InvalidTransitionError, PermissionDeniedError, OwnershipError):
                continue
            available.append(target)
        return available

    @staticmethod
    def _validate_schedule(scheduled_at: Optional[datetime]) -> datetime:
        if scheduled_at is None:
            raise ValidationError("scheduled_at is required to schedule an article")
        if scheduled_at.tzinfo is None or scheduled_at.utcoffset() is None:
            raise ValidationError("scheduled_at must include a timezone")
        if scheduled_at <= datetime.now(timezone.utc):
            raise ValidationError("scheduled_at must be in the future")
        return scheduled_at

    async def request_transition(
        self,
        article: Article,
        new_status: ArticleStatus,
        actor: User,
        feedback: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
    ) -> TransitionEvent:
        """
        Move an article along one edge and return the event describing it.

        The write is a compare-and-set on the status the caller observed, so
        of two concurrent requests from the same status only one succeeds;
        the other gets InvalidTransitionError. No notification is sent here.
        """
        old_status = article.status
        self.check_transition(old_status, new_status, actor.role, article.author_id == actor.id)

        if new_status == ArticleStatus.SCHEDULED:
            scheduled_at = self._validate_schedule(scheduled_at)
        else:
            scheduled_at = None

        published_at = None
        if new_status == ArticleStatus.PUBLISHED and article.published_at is None:
            published_at = datetime.now(timezone.utc)

        applied = await self.article_repo.compare_and_set_status(
            article.id,
            old_status,
            new_status,
            published_at=published_at,
            scheduled_at=scheduled_at,
        )
        if not applied:
            logger.warning(
                "Article status changed concurrently",
                article_id=str(article.id),
                expected_status=old_status.value,
                requested_status=new_status.value,
            )
            raise InvalidTransitionError(
                f"Article is no longer {old_status.value}; reload and try again"
            )

        await self.db.refresh(article)

        logger.info(
            "Article status transition",
            article_id=str(article.id),
            old_status=old_status.value,
            new_status=new_status.value,
            actor_id=str(actor.id),
            actor_role=actor.role.value,
        )

        return TransitionEvent(
            article_id=article.id,
            old_status=old_status,
            new_status=new_status,
            actor_id=actor.id,
            actor_role=actor.role,
            feedback=feedback,
        )

    async def apply_transition(
        self,
        article_id: UUID,
        new_status: ArticleStatus,
        actor: User,
        feedback: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
    ) -> Tuple[Article, TransitionEvent]:
        """Load an article and transition it"""
        article = await self.article_repo.get(article_id)
        if not article:
            raise NotFoundError("Article not found")

        event = await self.request_transition(
            article, new_status, actor, feedback=feedback, scheduled_at=scheduled_at
        )
        return article, event

    async def edit_article(
        self,
        article_id: UUID,
        actor: User,
        title: str,
    ) -> Tuple[Article, ArticleUpdatedEvent]:
        """
        Change an article's content without moving it in the workflow.

        The returned event carries the status at edit time; edits in review
        or after publication are announced, the rest are silent.
        """
        article = await self.article_repo.get(article_id)
        if not article:
            raise NotFoundError("Article not found")

        PermissionService.require_article_edit(actor, article)
        article = await self.article_repo.update(article, title=title)

        logger.info(
            "Article edited",
            article_id=str(article.id),
            status=article.status.value,
            actor_id=str(actor.id),
        )

        return article, ArticleUpdatedEvent(
            article_id=article.id,
            status=article.status,
            actor_id=actor.id,
            actor_role=actor.role,
        )
