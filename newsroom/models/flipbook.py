from sqlalchemy import Column, ForeignKey, String, UUID
from sqlalchemy.orm import relationship

from newsroom.db.base_model import BaseModel


class Flipbook(BaseModel):
    """Online issue (flipbook) record"""

    __tablename__ = "flipbooks"

    name = Column(String(200), nullable=False)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    created_by = relationship("User", lazy="joined")
