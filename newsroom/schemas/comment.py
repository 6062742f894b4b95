from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from newsroom.constants.enums import CommentStatus


class CommentStatusUpdate(BaseModel):
    """Moderation decision"""
    status: CommentStatus = Field(..., description="New comment status")
    feedback: Optional[str] = Field(None, max_length=2000, description="Moderator feedback")


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    article_id: UUID
    author_id: UUID
    status: CommentStatus
