"""Notification API endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field

from social import (
    NotificationManager, SocialError, SocialValidationError, NotificationNotFoundError
)
from ..deps import get_notification_manager

router = APIRouter(prefix="/notifications", tags=["Notifications"])

class CreateNotificationRequest(BaseModel):
    """Request model for creating a notification."""
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    body: Optional[str] = None
    type: Optional[str] = None

@router.get("/{user_id}")
async def get_notifications(
    user_id: str,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Get the user's latest notifications and unread count."""
    try:
        return await manager.list_by_user(user_id)
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch notifications"
        )

@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Mark a notification as read."""
    try:
        await manager.mark_read(notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notification"
        )
    return {"message": "Notification marked as read"}

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(
    request: CreateNotificationRequest,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Create a notification for a user."""
    try:
        notification_id = await manager.create(
            request.user_id,
            request.title,
            request.body,
            type=request.type or 'general'
        )
    except SocialValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create notification"
        )
    return {"message": "Notification created", "id": notification_id}
