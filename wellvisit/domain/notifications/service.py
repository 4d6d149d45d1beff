"""Notification center service - listing, read state and stats"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_notifications import Notification
from ...realtime import ChangeType, change_feed, user_channel
from .repository import NotificationRepository
from .schemas import NotificationList, NotificationResponse, NotificationStats

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_WINDOW = timedelta(hours=24)


class NotificationCenterService:
    """Service layer for a user's own notifications"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def _owned(self, user: User, notification_id: int) -> Notification:
        notification = self.repo.get_by_id(self.db, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if notification.user_id != user.id:
            raise HTTPException(status_code=403, detail="You do not have access to this notification")
        return notification

    def get_notifications(
        self,
        user: User,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
        notification_type: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> NotificationList:
        items, total = self.repo.list_for_user(
            self.db, user.id, limit, offset, unread_only, notification_type, priority
        )
        return NotificationList(
            notifications=[NotificationResponse.model_validate(n) for n in items],
            total=total,
            unread_count=self.repo.count_unread(self.db, user.id),
        )

    def mark_as_read(self, user: User, notification_id: int) -> Notification:
        notification = self._owned(user, notification_id)
        if not notification.is_read:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
            change_feed.publish([user_channel(user.id)], "notifications", ChangeType.UPDATE, notification.id)
        return notification

    def mark_all_as_read(self, user: User) -> dict:
        updated = self.repo.mark_all_read(self.db, user.id)
        if updated:
            change_feed.publish([user_channel(user.id)], "notifications", ChangeType.UPDATE, None)
        logger.debug(f"🔔 Marked {updated} notifications read for user {user.id}")
        return {"updated": updated}

    def delete(self, user: User, notification_id: int) -> dict:
        notification = self._owned(user, notification_id)
        self.db.delete(notification)
        self.db.commit()
        change_feed.publish([user_channel(user.id)], "notifications", ChangeType.DELETE, notification_id)
        return {"message": "Notification deleted", "id": notification_id}

    def get_stats(self, user: User, now: Optional[datetime] = None) -> NotificationStats:
        now = now or datetime.utcnow()
        return NotificationStats(
            total=self.repo.count_all(self.db, user.id),
            unread=self.repo.count_unread(self.db, user.id),
            by_type=self.repo.counts_by(self.db, user.id, Notification.type),
            by_priority=self.repo.counts_by(self.db, user.id, Notification.priority),
            recent_activity=self.repo.count_since(self.db, user.id, now - RECENT_ACTIVITY_WINDOW),
        )
