"""Messaging repository - messages, threads and presence"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import User
from ...models_messaging import Message, MessageThread, UserOnlineStatus


class MessageRepository:
    """Repository for messaging database operations"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_message(db: Session, **fields) -> Message:
        message = Message(**fields)
        db.add(message)
        db.flush()
        return message

    @staticmethod
    def conversation(
        db: Session,
        user_id: int,
        other_id: int,
        appointment_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        query = (
            db.query(Message)
            .options(joinedload(Message.sender), joinedload(Message.receiver))
            .filter(
                or_(
                    and_(Message.sender_id == user_id, Message.receiver_id == other_id),
                    and_(Message.sender_id == other_id, Message.receiver_id == user_id),
                )
            )
        )
        if appointment_id is not None:
            query = query.filter(Message.appointment_id == appointment_id)
        return query.order_by(Message.created_at.asc(), Message.id.asc()).offset(offset).limit(limit).all()

    @staticmethod
    def mark_read(db: Session, sender_id: int, receiver_id: int, read_at: datetime) -> int:
        updated = (
            db.query(Message)
            .filter(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.is_read.is_(False),
            )
            .update({Message.is_read: True, Message.read_at: read_at}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def unread_count(db: Session, sender_id: int, receiver_id: int) -> int:
        return (
            db.query(func.count(Message.id))
            .filter(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.is_read.is_(False),
            )
            .scalar()
            or 0
        )

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    @staticmethod
    def get_thread(db: Session, patient_id: int, doctor_id: int) -> Optional[MessageThread]:
        return (
            db.query(MessageThread)
            .filter(MessageThread.patient_id == patient_id, MessageThread.doctor_id == doctor_id)
            .first()
        )

    @staticmethod
    def create_thread(db: Session, **fields) -> MessageThread:
        thread = MessageThread(**fields)
        db.add(thread)
        db.flush()
        return thread

    @staticmethod
    def threads_for_user(db: Session, user_id: int) -> list[MessageThread]:
        return (
            db.query(MessageThread)
            .options(
                joinedload(MessageThread.patient),
                joinedload(MessageThread.doctor),
                joinedload(MessageThread.last_message),
            )
            .filter(
                or_(MessageThread.patient_id == user_id, MessageThread.doctor_id == user_id),
                MessageThread.is_active.is_(True),
            )
            .order_by(MessageThread.last_message_at.desc(), MessageThread.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Contacts and presence
    # ------------------------------------------------------------------

    @staticmethod
    def search_users(db: Session, exclude_user_id: int, roles: tuple, term: str, limit: int) -> list[User]:
        query = db.query(User).filter(
            User.id != exclude_user_id,
            User.is_active.is_(True),
            User.role.in_(roles),
        )
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return query.order_by(User.name.asc()).limit(limit).all()

    @staticmethod
    def get_online_status(db: Session, user_id: int) -> Optional[UserOnlineStatus]:
        return db.query(UserOnlineStatus).filter(UserOnlineStatus.user_id == user_id).first()

    @staticmethod
    def upsert_online_status(
        db: Session, user_id: int, is_online: bool, status_message: Optional[str], now: datetime
    ) -> UserOnlineStatus:
        status = MessageRepository.get_online_status(db, user_id)
        if status is None:
            status = UserOnlineStatus(user_id=user_id)
            db.add(status)
        status.is_online = is_online
        status.last_seen = now
        if status_message is not None:
            status.status_message = status_message
        db.commit()
        db.refresh(status)
        return status

    @staticmethod
    def online_users(db: Session) -> list[UserOnlineStatus]:
        return (
            db.query(UserOnlineStatus)
            .options(joinedload(UserOnlineStatus.user))
            .filter(UserOnlineStatus.is_online.is_(True))
            .order_by(UserOnlineStatus.last_seen.desc())
            .all()
        )
