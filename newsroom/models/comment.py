from sqlalchemy import Column, ForeignKey, Text, Enum as SQLEnum, UUID
from sqlalchemy.orm import relationship

from newsroom.constants.enums import CommentStatus
from newsroom.db.base_model import BaseModel


class Comment(BaseModel):
    """Reader comment on an article"""

    __tablename__ = "comments"

    article_id = Column(UUID(as_uuid=True), ForeignKey("articles.id"), nullable=False, index=True)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(SQLEnum(CommentStatus), default=CommentStatus.PENDING, nullable=False)

    article = relationship("Article", back_populates="comments", lazy="joined")
    author = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<Comment(article={self.article_id}, status={self.status})>"
