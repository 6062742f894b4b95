"""
Recipient resolution for notification events.

Every event maps to one or more NotificationCase values. Each case has a
single CaseTemplate (type, title, message, audience) in CASE_TEMPLATES, and
the resolver turns (case, event) into the concrete users to notify plus the
rendered title, message and data payload. Status transitions are matched
against TRANSITION_CASES; anything that does not reach the article author
through a specific case falls back to ARTICLE_STATUS_CHANGED, so every
applied transition notifies someone. Content edits are matched against
UPDATE_CASES by the status the article was in and have no fallback.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from newsroom.constants.enums import (
    ArticleStatus,
    CommentStatus,
    FlipbookAction,
    NotificationType,
    Role,
)
from newsroom.core.exceptions import NotFoundError
from newsroom.models.article import Article
from newsroom.models.user import User
from newsroom.repositories.article import ArticleRepository
from newsroom.repositories.comment import CommentRepository
from newsroom.repositories.flipbook import FlipbookRepository
from newsroom.repositories.user import UserRepository
from newsroom.schemas.events import (
    ArticleUpdatedEvent,
    CommentPostedEvent,
    CommentStatusEvent,
    FlipbookEvent,
    NotificationEvent,
    TransitionEvent,
)

logger = structlog.get_logger()

COMMENT_PREVIEW_LENGTH = 100


class NotificationCase(str, Enum):
    ARTICLE_SUBMITTED = "article_submitted"
    ARTICLE_RESUBMITTED = "article_resubmitted"
    ARTICLE_APPROVED_FOR_FINAL_REVIEW = "article_approved_for_final_review"
    ARTICLE_RETURNED_TO_SECTION = "article_returned_to_section"
    ARTICLE_RETURNED_FOR_REVISION = "article_returned_for_revision"
    ARTICLE_PUBLISHED_AUTHOR = "article_published_author"
    ARTICLE_PUBLISHED_ADVISER = "article_published_adviser"
    ARTICLE_PUBLISHED_BY_SECTION_HEAD = "article_published_by_section_head"
    ARTICLE_ARCHIVED = "article_archived"
    ARTICLE_RESTORED = "article_restored"
    ARTICLE_STATUS_CHANGED = "article_status_changed"
    ARTICLE_UPDATED_IN_REVIEW = "article_updated_in_review"
    ARTICLE_UPDATED_AND_PUBLISHED = "article_updated_and_published"
    COMMENT_POSTED = "comment_posted"
    COMMENT_STATUS_CHANGED = "comment_status_changed"
    FLIPBOOK_CREATED = "flipbook_created"
    FLIPBOOK_UPDATED = "flipbook_updated"


class AudienceKind(str, Enum):
    AUTHOR = "author"
    COMMENT_AUTHOR = "comment_author"
    ROLE = "role"


class Audience(BaseModel):
    """Who a case is addressed to"""
    model_config = ConfigDict(frozen=True)

    kind: AudienceKind
    role: Optional[Role] = None

    @classmethod
    def of_role(cls, role: Role) -> "Audience":
        return cls(kind=AudienceKind.ROLE, role=role)


AUTHOR = Audience(kind=AudienceKind.AUTHOR)
COMMENT_AUTHOR = Audience(kind=AudienceKind.COMMENT_AUTHOR)


class CaseTemplate(BaseModel):
    """Type, wording and audience of one notification case"""
    model_config = ConfigDict(frozen=True)

    type: NotificationType
    title: str
    message: str
    audience: Audience


class ResolvedNotification(BaseModel):
    """One case with its rendered content and concrete recipients"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    case: NotificationCase
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any]
    recipients: List[User]


# Message placeholders: article_title, author_name, actor_name, feedback_suffix,
# status, comment_author, flipbook_name
CASE_TEMPLATES: Dict[NotificationCase, CaseTemplate] = {
    NotificationCase.ARTICLE_SUBMITTED: CaseTemplate(
        type=NotificationType.ARTICLE_SUBMITTED,
        title="New Article Submitted for Review",
        message='{author_name} has submitted "{article_title}" for your review.',
        audience=Audience.of_role(Role.SECTION_HEAD),
    ),
    NotificationCase.ARTICLE_RESUBMITTED: CaseTemplate(
        type=NotificationType.ARTICLE_SUBMITTED,
        title="Article Resubmitted for Review",
        message='{author_name} has revised and resubmitted "{article_title}" for your review.',
        audience=Audience.of_role(Role.SECTION_HEAD),
    ),
    NotificationCase.ARTICLE_APPROVED_FOR_FINAL_REVIEW: CaseTemplate(
        type=NotificationType.ARTICLE_APPROVED,
        title="Article Approved by Section Head",
        message=(
            'Article "{article_title}" by {author_name} has been approved by '
            "{actor_name} and requires your final review."
        ),
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
    NotificationCase.ARTICLE_RETURNED_TO_SECTION: CaseTemplate(
        type=NotificationType.WARNING,
        title="Article Returned by Editor-in-Chief",
        message=(
            'Article "{article_title}" by {author_name} has been returned by '
            "{actor_name} for further review.{feedback_suffix}"
        ),
        audience=Audience.of_role(Role.SECTION_HEAD),
    ),
    NotificationCase.ARTICLE_RETURNED_FOR_REVISION: CaseTemplate(
        type=NotificationType.ARTICLE_REJECTED,
        title="Article Needs Revision",
        message='Your article "{article_title}" needs revision.{feedback_suffix}',
        audience=AUTHOR,
    ),
    NotificationCase.ARTICLE_PUBLISHED_AUTHOR: CaseTemplate(
        type=NotificationType.SUCCESS,
        title="Your Article Published",
        message='Congratulations! Your article "{article_title}" has been published and is now live.',
        audience=AUTHOR,
    ),
    NotificationCase.ARTICLE_PUBLISHED_ADVISER: CaseTemplate(
        type=NotificationType.ARTICLE_PUBLISHED,
        title="Article Published",
        message='"{article_title}" by {author_name} has been published.',
        audience=Audience.of_role(Role.ADVISER),
    ),
    NotificationCase.ARTICLE_PUBLISHED_BY_SECTION_HEAD: CaseTemplate(
        type=NotificationType.ARTICLE_PUBLISHED,
        title="Article Published by Section Head",
        message='{author_name} (Section Head) has published "{article_title}".',
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
    NotificationCase.ARTICLE_ARCHIVED: CaseTemplate(
        type=NotificationType.WARNING,
        title="Article Archived",
        message='{actor_name} has archived "{article_title}" by {author_name}.',
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
    NotificationCase.ARTICLE_RESTORED: CaseTemplate(
        type=NotificationType.INFO,
        title="Article Restored to Review",
        message='{actor_name} has restored "{article_title}" by {author_name} back to the review queue.',
        audience=Audience.of_role(Role.SECTION_HEAD),
    ),
    NotificationCase.ARTICLE_STATUS_CHANGED: CaseTemplate(
        type=NotificationType.INFO,
        title="Article Status Updated",
        message='The status of your article "{article_title}" has been updated to {status}.',
        audience=AUTHOR,
    ),
    NotificationCase.ARTICLE_UPDATED_IN_REVIEW: CaseTemplate(
        type=NotificationType.INFO,
        title="Article Updated",
        message='Article "{article_title}" by {author_name} has been updated by {actor_name}.',
        audience=Audience.of_role(Role.SECTION_HEAD),
    ),
    NotificationCase.ARTICLE_UPDATED_AND_PUBLISHED: CaseTemplate(
        type=NotificationType.ARTICLE_PUBLISHED,
        title="Article Updated and Published",
        message='{actor_name} has updated and republished "{article_title}" by {author_name}.',
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
    NotificationCase.COMMENT_POSTED: CaseTemplate(
        type=NotificationType.INFO,
        title="New Comment on Your Article",
        message='{comment_author} commented on your article "{article_title}".',
        audience=AUTHOR,
    ),
    NotificationCase.COMMENT_STATUS_CHANGED: CaseTemplate(
        type=NotificationType.INFO,
        title="Comment Status Changed",
        message='Your comment on article "{article_title}" has been {status}.{feedback_suffix}',
        audience=COMMENT_AUTHOR,
    ),
    NotificationCase.FLIPBOOK_CREATED: CaseTemplate(
        type=NotificationType.ARTICLE_PUBLISHED,
        title="New Online Issue Created",
        message='{actor_name} has created a new online issue "{flipbook_name}".',
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
    NotificationCase.FLIPBOOK_UPDATED: CaseTemplate(
        type=NotificationType.INFO,
        title="Online Issue Updated",
        message='{actor_name} has updated the online issue "{flipbook_name}".',
        audience=Audience.of_role(Role.EDITOR_IN_CHIEF),
    ),
}

# The generic author notification reads differently per new status
STATUS_CHANGE_VARIANTS: Dict[ArticleStatus, Tuple[NotificationType, str, str]] = {
    ArticleStatus.IN_REVIEW: (
        NotificationType.ARTICLE_SUBMITTED,
        "Article Under Review",
        'Your article "{article_title}" is now under review by the editorial team.',
    ),
    ArticleStatus.NEEDS_REVISION: (
        NotificationType.ARTICLE_REJECTED,
        "Article Needs Revision",
        'Your article "{article_title}" needs revision.{feedback_suffix}',
    ),
    ArticleStatus.APPROVED: (
        NotificationType.ARTICLE_APPROVED,
        "Article Approved",
        'Your article "{article_title}" has been approved and forwarded for final review.',
    ),
    ArticleStatus.PUBLISHED: (
        NotificationType.ARTICLE_PUBLISHED,
        "Article Published",
        'Congratulations! Your article "{article_title}" has been published and is now live.',
    ),
}

COMMENT_STATUS_VARIANTS: Dict[CommentStatus, Tuple[NotificationType, str]] = {
    CommentStatus.APPROVED: (NotificationType.SUCCESS, "Comment Approved"),
    CommentStatus.REJECTED: (NotificationType.ERROR, "Comment Rejected"),
}

EDITORIAL_BOARD = frozenset({Role.EDITOR_IN_CHIEF, Role.ADVISER, Role.SYSTEM_ADMIN})

# (actor_role, author_role) -> bool
CasePredicate = Callable[[Role, Optional[Role]], bool]


def _always(actor_role: Role, author_role: Optional[Role]) -> bool:
    return True


def _author_is(role: Role) -> CasePredicate:
    return lambda actor_role, author_role: author_role == role


def _actor_in(*roles: Role) -> CasePredicate:
    return lambda actor_role, author_role: actor_role in roles


# Keyed by (old_status, new_status); None as old_status matches any source
TRANSITION_CASES: Dict[Tuple[Optional[ArticleStatus], ArticleStatus], List[Tuple[NotificationCase, CasePredicate]]] = {
    (ArticleStatus.DRAFT, ArticleStatus.IN_REVIEW): [
        (NotificationCase.ARTICLE_SUBMITTED, _author_is(Role.STAFF)),
    ],
    (ArticleStatus.NEEDS_REVISION, ArticleStatus.IN_REVIEW): [
        (NotificationCase.ARTICLE_RESUBMITTED, _author_is(Role.STAFF)),
    ],
    (ArticleStatus.IN_REVIEW, ArticleStatus.APPROVED): [
        (NotificationCase.ARTICLE_APPROVED_FOR_FINAL_REVIEW, _actor_in(Role.SECTION_HEAD)),
    ],
    (ArticleStatus.APPROVED, ArticleStatus.IN_REVIEW): [
        (NotificationCase.ARTICLE_RETURNED_TO_SECTION, _actor_in(*EDITORIAL_BOARD)),
    ],
    (ArticleStatus.IN_REVIEW, ArticleStatus.NEEDS_REVISION): [
        (NotificationCase.ARTICLE_RETURNED_FOR_REVISION, _actor_in(Role.SECTION_HEAD)),
    ],
    (None, ArticleStatus.PUBLISHED): [
        (NotificationCase.ARTICLE_PUBLISHED_AUTHOR, _always),
        (NotificationCase.ARTICLE_PUBLISHED_ADVISER, _always),
        (NotificationCase.ARTICLE_PUBLISHED_BY_SECTION_HEAD, _author_is(Role.SECTION_HEAD)),
    ],
    (ArticleStatus.PUBLISHED, ArticleStatus.ARCHIVED): [
        (NotificationCase.ARTICLE_ARCHIVED, _always),
    ],
    (ArticleStatus.ARCHIVED, ArticleStatus.IN_REVIEW): [
        (NotificationCase.ARTICLE_RESTORED, _always),
    ],
}


# Keyed by the status the article was in when it was edited
UPDATE_CASES: Dict[ArticleStatus, List[Tuple[NotificationCase, CasePredicate]]] = {
    ArticleStatus.IN_REVIEW: [
        (NotificationCase.ARTICLE_UPDATED_IN_REVIEW, _always),
    ],
    ArticleStatus.PUBLISHED: [
        (NotificationCase.ARTICLE_UPDATED_AND_PUBLISHED, _actor_in(Role.SECTION_HEAD)),
    ],
}


def match_transition_cases(
    old_status: ArticleStatus,
    new_status: ArticleStatus,
    actor_role: Role,
    author_role: Optional[Role],
) -> List[NotificationCase]:
    """Specific cases for a transition, not including the author fallback"""
    candidates = TRANSITION_CASES.get((old_status, new_status), []) + TRANSITION_CASES.get((None, new_status), [])
    return [case for case, applies in candidates if applies(actor_role, author_role)]


def match_update_cases(status: ArticleStatus, actor_role: Role) -> List[NotificationCase]:
    """Cases for an edit; edits outside review and publication notify nobody"""
    return [case for case, applies in UPDATE_CASES.get(status, []) if applies(actor_role, None)]


def _feedback_suffix(feedback: Optional[str]) -> str:
    return f" Feedback: {feedback}" if feedback else ""


def _preview(content: str) -> str:
    if len(content) > COMMENT_PREVIEW_LENGTH:
        return content[:COMMENT_PREVIEW_LENGTH] + "..."
    return content


class RecipientResolver:
    """Turns notification events into cases and recipients"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.article_repo = ArticleRepository(db)
        self.comment_repo = CommentRepository(db)
        self.flipbook_repo = FlipbookRepository(db)

    async def resolve(self, event: NotificationEvent) -> List[ResolvedNotification]:
        """Resolve an event; cases whose audience is empty are dropped"""
        if isinstance(event, TransitionEvent):
            resolved = await self._resolve_transition(event)
        elif isinstance(event, ArticleUpdatedEvent):
            resolved = await self._resolve_article_updated(event)
        elif isinstance(event, CommentPostedEvent):
            resolved = await self._resolve_comment_posted(event)
        elif isinstance(event, CommentStatusEvent):
            resolved = await self._resolve_comment_status(event)
        elif isinstance(event, FlipbookEvent):
            resolved = await self._resolve_flipbook(event)
        else:
            raise TypeError(f"Unsupported notification event: {type(event).__name__}")

        delivered = []
        for notification in resolved:
            if not notification.recipients:
                logger.info(
                    "No recipients for notification case",
                    case=notification.case.value,
                )
                continue
            delivered.append(notification)
        return delivered

    async def _audience_members(
        self,
        audience: Audience,
        author: Optional[User] = None,
    ) -> List[User]:
        if audience.kind == AudienceKind.ROLE:
            return await self.user_repo.get_active_by_role(audience.role)
        return [author] if author is not None else []

    async def _build(
        self,
        case: NotificationCase,
        fields: Dict[str, str],
        data: Dict[str, Any],
        author: Optional[User] = None,
        override: Optional[Tuple[NotificationType, str, str]] = None,
    ) -> ResolvedNotification:
        template = CASE_TEMPLATES[case]
        notification_type, title, message = override or (
            template.type, template.title, template.message
        )
        return ResolvedNotification(
            case=case,
            type=notification_type,
            title=title,
            message=message.format(**fields),
            data=data,
            recipients=await self._audience_members(template.audience, author),
        )

    async def _get_actor(self, actor_id: UUID) -> Optional[User]:
        return await self.user_repo.get(actor_id)

    async def _resolve_transition(self, event: TransitionEvent) -> List[ResolvedNotification]:
        article: Optional[Article] = await self.article_repo.get(event.article_id)
        if not article:
            raise NotFoundError("Article not found")

        author = article.author
        actor = await self._get_actor(event.actor_id)
        author_name = author.full_name if author else "Unknown author"
        actor_name = actor.full_name if actor else "Unknown user"

        fields = {
            "article_title": article.title,
            "author_name": author_name,
            "actor_name": actor_name,
            "feedback_suffix": _feedback_suffix(event.feedback),
            "status": event.new_status.value,
        }
        data = {
            "articleId": str(article.id),
            "articleTitle": article.title,
            "authorName": author_name,
            "actorName": actor_name,
            "oldStatus": event.old_status.value,
            "newStatus": event.new_status.value,
            "feedback": event.feedback,
        }

        cases = match_transition_cases(
            event.old_status,
            event.new_status,
            event.actor_role,
            article.author_role,
        )

        resolved = [await self._build(case, fields, data, author) for case in cases]

        author_reached = author is not None and any(
            recipient.id == author.id
            for notification in resolved
            for recipient in notification.recipients
        )
        if not author_reached:
            resolved.append(await self._build(
                NotificationCase.ARTICLE_STATUS_CHANGED,
                fields,
                data,
                author,
                override=STATUS_CHANGE_VARIANTS.get(event.new_status),
            ))

        logger.debug(
            "Resolved transition notifications",
            article_id=str(article.id),
            cases=[n.case.value for n in resolved],
        )
        return resolved

    async def _resolve_article_updated(self, event: ArticleUpdatedEvent) -> List[ResolvedNotification]:
        cases = match_update_cases(event.status, event.actor_role)
        if not cases:
            return []

        article: Optional[Article] = await self.article_repo.get(event.article_id)
        if not article:
            raise NotFoundError("Article not found")

        author = article.author
        actor = await self._get_actor(event.actor_id)
        author_name = author.full_name if author else "Unknown author"
        actor_name = actor.full_name if actor else "Unknown user"

        fields = {
            "article_title": article.title,
            "author_name": author_name,
            "actor_name": actor_name,
        }
        data = {
            "articleId": str(article.id),
            "articleTitle": article.title,
            "authorName": author_name,
            "actorName": actor_name,
            "status": event.status.value,
        }
        return [await self._build(case, fields, data, author) for case in cases]

    async def _resolve_comment_posted(self, event: CommentPostedEvent) -> List[ResolvedNotification]:
        comment = await self.comment_repo.get(event.comment_id)
        if not comment:
            raise NotFoundError("Comment not found")
        article = comment.article

        comment_author = comment.author.full_name if comment.author else "Someone"
        fields = {
            "article_title": article.title,
            "comment_author": comment_author,
        }
        data = {
            "articleId": str(article.id),
            "articleTitle": article.title,
            "commentId": str(comment.id),
            "commentAuthor": comment_author,
            "commentContent": _preview(comment.content),
        }
        return [await self._build(NotificationCase.COMMENT_POSTED, fields, data, article.author)]

    async def _resolve_comment_status(self, event: CommentStatusEvent) -> List[ResolvedNotification]:
        comment = await self.comment_repo.get(event.comment_id)
        if not comment:
            raise NotFoundError("Comment not found")
        article = comment.article

        fields = {
            "article_title": article.title,
            "status": event.status.value,
            "feedback_suffix": _feedback_suffix(event.feedback),
        }
        data = {
            "articleId": str(article.id),
            "articleTitle": article.title,
            "commentId": str(comment.id),
            "commentContent": _preview(comment.content),
            "status": event.status.value,
            "feedback": event.feedback,
        }

        override = None
        if event.status in COMMENT_STATUS_VARIANTS:
            notification_type, title = COMMENT_STATUS_VARIANTS[event.status]
            override = (
                notification_type,
                title,
                CASE_TEMPLATES[NotificationCase.COMMENT_STATUS_CHANGED].message,
            )
        return [await self._build(
            NotificationCase.COMMENT_STATUS_CHANGED, fields, data, comment.author, override=override
        )]

    async def _resolve_flipbook(self, event: FlipbookEvent) -> List[ResolvedNotification]:
        flipbook = await self.flipbook_repo.get(event.flipbook_id)
        if not flipbook:
            raise NotFoundError("Flipbook not found")

        actor = await self._get_actor(event.actor_id)
        actor_name = actor.full_name if actor else "Unknown user"
        case = (
            NotificationCase.FLIPBOOK_CREATED
            if event.action == FlipbookAction.CREATED
            else NotificationCase.FLIPBOOK_UPDATED
        )
        fields = {"actor_name": actor_name, "flipbook_name": flipbook.name}
        data = {
            "flipbookId": str(flipbook.id),
            "flipbookName": flipbook.name,
            "actorName": actor_name,
            "action": event.action.value,
        }
        return [await self._build(case, fields, data)]
