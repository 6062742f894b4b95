from sqlalchemy import Boolean, Column, String, Text, DateTime, ForeignKey, JSON, Enum as SQLEnum, UUID
from sqlalchemy.orm import relationship

from newsroom.constants.enums import NotificationType
from newsroom.db.base_model import BaseModel, utcnow


class Notification(BaseModel):
    """In-app notification, owned by its recipient"""

    __tablename__ = "notifications"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)  # articleId, articleTitle, actor names, feedback...
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    recipient = relationship("User", back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification(type={self.type}, recipient={self.user_id}, read={self.is_read})>"

    def mark_as_read(self) -> None:
        """Mark notification as read"""
        self.is_read = True
        self.read_at = utcnow()
