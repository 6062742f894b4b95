from datetime import datetime
from typing import Optional, Dict, Any, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from newsroom.constants.enums import NotificationType


class NotificationResponse(BaseModel):
    """Schema for notification response"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str = Field(..., max_length=200, description="Notification title")
    message: str = Field(..., description="Notification body")
    data: Optional[Dict[str, Any]] = Field(None, description="Structured payload (articleId, feedback, ...)")
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """Schema for notification list response"""
    notifications: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    page_size: int
    total_pages: int


class NotificationMarkReadRequest(BaseModel):
    """Schema for marking notifications as read"""
    notification_ids: List[UUID] = Field(..., description="List of notification IDs to mark as read")


class NotificationSummary(BaseModel):
    """Schema for notification summary"""
    total_count: int
    unread_count: int
    latest_notification: Optional[NotificationResponse] = None


class RealtimeNotification(BaseModel):
    """Notification as pushed over the realtime stream"""
    id: UUID
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool = False
    created_at: datetime
