from newsroom.schemas.article import (
    ArticleStatusUpdate,
    ArticleStatusResponse,
    ArticleTransitionsResponse,
)
from newsroom.schemas.comment import (
    CommentStatusUpdate,
    CommentResponse,
)
from newsroom.schemas.events import (
    TransitionEvent,
    CommentPostedEvent,
    CommentStatusEvent,
    FlipbookEvent,
    NotificationEvent,
)
from newsroom.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    NotificationMarkReadRequest,
    NotificationSummary,
    RealtimeNotification,
)
from newsroom.schemas.user import (
    UserResponse,
    UserRoleUpdate,
)

__all__ = [
    # Article schemas
    "ArticleStatusUpdate",
    "ArticleStatusResponse",
    "ArticleTransitionsResponse",
    # Comment schemas
    "CommentStatusUpdate",
    "CommentResponse",
    # Events
    "TransitionEvent",
    "CommentPostedEvent",
    "CommentStatusEvent",
    "FlipbookEvent",
    "NotificationEvent",
    # Notification schemas
    "NotificationResponse",
    "NotificationListResponse",
    "NotificationMarkReadRequest",
    "NotificationSummary",
    "RealtimeNotification",
    # User schemas
    "UserResponse",
    "UserRoleUpdate",
]
