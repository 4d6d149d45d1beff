"""Notification center router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import NotificationList, NotificationResponse, NotificationStats
from .service import NotificationCenterService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationCenterService:
    """Dependency injection for NotificationCenterService"""
    return NotificationCenterService(db)


@router.get("", response_model=NotificationList)
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    type: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: NotificationCenterService = Depends(get_notification_service),
):
    return service.get_notifications(current_user, limit, offset, unread_only, type, priority)


@router.get("/stats", response_model=NotificationStats)
async def notification_stats(
    current_user: User = Depends(get_current_user),
    service: NotificationCenterService = Depends(get_notification_service),
):
    return service.get_stats(current_user)


@router.post("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationCenterService = Depends(get_notification_service),
):
    return service.mark_all_as_read(current_user)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationCenterService = Depends(get_notification_service),
):
    return service.mark_as_read(current_user, notification_id)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationCenterService = Depends(get_notification_service),
):
    return service.delete(current_user, notification_id)
