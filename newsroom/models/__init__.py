from newsroom.models.user import User
from newsroom.models.article import Article
from newsroom.models.notification import Notification
from newsroom.models.comment import Comment
from newsroom.models.flipbook import Flipbook

__all__ = [
    "User",
    "Article",
    "Notification",
    "Comment",
    "Flipbook",
]
