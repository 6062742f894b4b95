from enum import Enum


class Role(str, Enum):
    """User roles, lowest to highest privilege"""
    STAFF = "staff"
    SECTION_HEAD = "section_head"
    EDITOR_IN_CHIEF = "editor_in_chief"
    ADVISER = "adviser"
    SYSTEM_ADMIN = "system_admin"

    # Legacy role names kept by older clients and seed data
    ADMIN_ASSISTANT = "editor_in_chief"
    ADMINISTRATOR = "adviser"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized in cls.__members__:
                return cls.__members__[normalized]
        return None


class ArticleStatus(str, Enum):
    """Article workflow status"""
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class NotificationType(str, Enum):
    """Notification types shown to the recipient"""
    ARTICLE_SUBMITTED = "article_submitted"
    ARTICLE_APPROVED = "article_approved"
    ARTICLE_REJECTED = "article_rejected"
    ARTICLE_PUBLISHED = "article_published"
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class CommentStatus(str, Enum):
    """Comment moderation status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FlipbookAction(str, Enum):
    """Flipbook (online issue) lifecycle events"""
    CREATED = "created"
    UPDATED = "updated"
