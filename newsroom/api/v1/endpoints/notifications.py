from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.api.v1.dependencies.auth import get_current_user
from newsroom.constants.enums import NotificationType
from newsroom.core.config import settings
from newsroom.db.session import get_db
from newsroom.models.user import User
from newsroom.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    NotificationMarkReadRequest,
    NotificationSummary
)
from newsroom.services.notification import NotificationService


router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def get_notifications(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Number of notifications per page"
    ),
    unread_only: bool = Query(False, description="Filter to unread notifications only"),
    notification_type: Optional[NotificationType] = Query(None, description="Filter by notification type"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get paginated notifications for the current user"""
    notification_service = NotificationService(db)

    return await notification_service.get_notifications(
        current_user.id,
        page=page,
        page_size=page_size,
        unread_only=unread_only,
        notification_type=notification_type
    )


@router.get("/summary", response_model=NotificationSummary)
async def get_notification_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get notification summary for the current user"""
    notification_service = NotificationService(db)

    return await notification_service.get_notification_summary(current_user.id)


@router.get("/unread-count")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get count of unread notifications for the current user"""
    notification_service = NotificationService(db)

    return {"unread_count": await notification_service.get_unread_count(current_user.id)}


@router.patch("/mark-read")
async def mark_notifications_as_read(
    request: NotificationMarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark several of the current user's notifications as read"""
    notification_service = NotificationService(db)

    updated_count = await notification_service.mark_multiple_as_read(
        request.notification_ids, current_user.id
    )
    return {"message": f"{updated_count} notifications marked as read", "updated_count": updated_count}


@router.patch("/mark-all-read")
async def mark_all_notifications_as_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark all of the current user's notifications as read"""
    notification_service = NotificationService(db)

    updated_count = await notification_service.mark_all_as_read(current_user.id)
    return {"message": f"{updated_count} notifications marked as read", "updated_count": updated_count}


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a specific notification"""
    notification_service = NotificationService(db)

    return await notification_service.get_notification(notification_id, current_user.id)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_as_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a notification as read"""
    notification_service = NotificationService(db)

    return await notification_service.mark_as_read(notification_id, current_user.id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a notification"""
    notification_service = NotificationService(db)

    await notification_service.delete_notification(notification_id, current_user.id)
