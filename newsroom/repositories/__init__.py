from newsroom.repositories.user import UserRepository
from newsroom.repositories.article import ArticleRepository
from newsroom.repositories.notification import NotificationRepository
from newsroom.repositories.comment import CommentRepository
from newsroom.repositories.flipbook import FlipbookRepository

__all__ = [
    "UserRepository",
    "ArticleRepository",
    "NotificationRepository",
    "CommentRepository",
    "FlipbookRepository",
]
