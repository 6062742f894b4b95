from sqlalchemy import Column, DateTime, ForeignKey, String, Enum as SQLEnum, UUID
from sqlalchemy.orm import relationship

from newsroom.constants.enums import ArticleStatus
from newsroom.db.base_model import BaseModel


class Article(BaseModel):
    """Article as seen by the review workflow"""

    __tablename__ = "articles"

    title = Column(String(300), nullable=False)
    status = Column(SQLEnum(ArticleStatus), default=ArticleStatus.DRAFT, nullable=False, index=True)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Written once, on the first entry into PUBLISHED
    published_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)

    author = relationship("User", back_populates="articles", lazy="joined")
    comments = relationship("Comment", back_populates="article", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Article(title={self.title[:50]}, status={self.status})>"

    @property
    def author_role(self):
        return self.author.role if self.author else None
