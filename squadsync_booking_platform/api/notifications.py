"""
In-app notification API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from ..services.notification_service import NotificationService
from ..utils.dependencies import get_current_active_user


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List the signed-in user's notifications, newest first."""
    notification_service = NotificationService(db)
    notifications, total = await notification_service.list_notifications(
        current_user.id, unread_only=unread_only, limit=limit, offset=offset
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread=await notification_service.get_unread_count(current_user.id)
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return UnreadCountResponse(unread=await NotificationService(db).get_unread_count(current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return MarkAllReadResponse(updated=await NotificationService(db).mark_all_as_read(current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark one of your notifications as read."""
    notification = await NotificationService(db).mark_as_read(notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)
