from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from newsroom.constants.enums import ArticleStatus


class ArticleStatusUpdate(BaseModel):
    """Requested workflow transition"""
    status: ArticleStatus = Field(..., description="Target status")
    feedback: Optional[str] = Field(None, max_length=5000, description="Reviewer feedback")
    scheduled_at: Optional[datetime] = Field(None, description="Publish time, required for SCHEDULED")


class ArticleStatusResponse(BaseModel):
    """Article state after a transition"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: ArticleStatus
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None


class ArticleTransitionsResponse(BaseModel):
    """Statuses the caller may move an article to"""
    id: UUID
    status: ArticleStatus
    allowed: List[ArticleStatus]


class ArticleUpdate(BaseModel):
    """Editable article content"""
    title: str = Field(..., min_length=1, max_length=300)


class ArticleResponse(BaseModel):
    """Article after an edit"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    status: ArticleStatus
    author_id: UUID
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
