from sqlalchemy import Boolean, Column, String, Enum as SQLEnum
from sqlalchemy.orm import relationship

from newsroom.constants.enums import Role
from newsroom.db.base_model import BaseModel


class User(BaseModel):
    """User model"""

    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    role = Column(SQLEnum(Role), default=Role.STAFF, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    articles = relationship("Article", back_populates="author")
    notifications = relationship(
        "Notification",
        back_populates="recipient",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(username={self.username}, role={self.role})>"

    @property
    def full_name(self) -> str:
        """First and last name, or the username when neither is set"""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username
