"""Notification repository - Database operations for the notification center"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ...models_notifications import Notification


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def _for_user(
        db: Session,
        user_id: int,
        unread_only: bool = False,
        notification_type: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Query:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        if notification_type:
            query = query.filter(Notification.type == notification_type)
        if priority:
            query = query.filter(Notification.priority == priority)
        return query

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
        notification_type: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> tuple[list[Notification], int]:
        query = NotificationRepository._for_user(db, user_id, unread_only, notification_type, priority)
        total = query.count()
        items = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def count_unread(db: Session, user_id: int) -> int:
        return NotificationRepository._for_user(db, user_id, unread_only=True).count()

    @staticmethod
    def get_by_id(db: Session, notification_id: int) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.id == notification_id).first()

    @staticmethod
    def mark_all_read(db: Session, user_id: int) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def counts_by(db: Session, user_id: int, column) -> dict[str, int]:
        rows = (
            db.query(column, func.count(Notification.id))
            .filter(Notification.user_id == user_id)
            .group_by(column)
            .all()
        )
        return {key: count for key, count in rows}

    @staticmethod
    def count_since(db: Session, user_id: int, since: datetime) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.created_at >= since)
            .count()
        )

    @staticmethod
    def count_all(db: Session, user_id: int) -> int:
        return NotificationRepository._for_user(db, user_id).count()
