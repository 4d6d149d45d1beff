"""Messaging service - direct messages, patient-doctor threads and presence"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF, ROLES, User
from ...models_messaging import Message, MessageThread
from ...realtime import ChangeType, change_feed, user_channel
from ...security_utils import sanitize_text
from .repository import MessageRepository
from .schemas import MAX_MESSAGE_LENGTH, MessageCreate, MessageResponse, ThreadResponse

logger = logging.getLogger(__name__)

# Who each role may start a conversation with
CONTACT_ROLES = {
    ROLE_PATIENT: (ROLE_DOCTOR, ROLE_STAFF),
    ROLE_DOCTOR: (ROLE_PATIENT, ROLE_STAFF),
    ROLE_STAFF: (ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF),
    ROLE_ADMIN: ROLES,
}
CONTACT_SEARCH_LIMIT = 20


def to_message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        appointment_id=message.appointment_id,
        message_text=message.message_text,
        message_type=message.message_type,
        is_read=message.is_read,
        read_at=message.read_at,
        created_at=message.created_at,
        sender_name=message.sender.name if message.sender else None,
        sender_role=message.sender.role if message.sender else None,
        receiver_name=message.receiver.name if message.receiver else None,
        receiver_role=message.receiver.role if message.receiver else None,
    )


class MessagingService:
    """Service layer for messaging business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def send_message(self, sender: User, data: MessageCreate) -> MessageResponse:
        text = sanitize_text(data.message_text, MAX_MESSAGE_LENGTH)
        if not text:
            raise HTTPException(status_code=400, detail="Message cannot be empty")
        if data.receiver_id == sender.id:
            raise HTTPException(status_code=400, detail="You cannot message yourself")

        receiver = self.repo.get_user(self.db, data.receiver_id)
        if not receiver or not receiver.is_active:
            raise HTTPException(status_code=404, detail="Recipient not found")

        message = self.repo.create_message(
            self.db,
            sender_id=sender.id,
            receiver_id=receiver.id,
            appointment_id=data.appointment_id,
            message_text=text,
            message_type=data.message_type,
            is_read=False,
        )
        self._touch_thread(sender, receiver, message)
        self.db.commit()
        self.db.refresh(message)

        change_feed.publish(
            [user_channel(receiver.id), user_channel(sender.id)],
            "messages",
            ChangeType.INSERT,
            message.id,
            {"sender_id": sender.id, "receiver_id": receiver.id},
        )
        logger.info(f"💬 Message {message.id} sent from user {sender.id} to user {receiver.id}")
        return to_message_response(message)

    def _touch_thread(self, sender: User, receiver: User, message: Message) -> None:
        """Keep the patient-doctor thread pointing at its latest message"""
        roles = {sender.role, receiver.role}
        if roles != {ROLE_PATIENT, ROLE_DOCTOR}:
            return

        patient_id = sender.id if sender.role == ROLE_PATIENT else receiver.id
        doctor_id = sender.id if sender.role == ROLE_DOCTOR else receiver.id
        now = datetime.utcnow()

        thread = self.repo.get_thread(self.db, patient_id, doctor_id)
        if thread is None:
            self.repo.create_thread(
                self.db,
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_id=message.appointment_id,
                last_message_id=message.id,
                last_message_at=now,
                is_active=True,
            )
            logger.debug(f"🧵 Thread created between patient {patient_id} and doctor {doctor_id}")
        else:
            thread.last_message_id = message.id
            thread.last_message_at = now
            thread.is_active = True

    def get_messages(
        self,
        user: User,
        other_user_id: int,
        appointment_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[MessageResponse]:
        messages = self.repo.conversation(self.db, user.id, other_user_id, appointment_id, limit, offset)
        return [to_message_response(m) for m in messages]

    def mark_read(self, user: User, sender_id: int) -> dict:
        """Mark everything sender_id sent to the current user as read"""
        updated = self.repo.mark_read(self.db, sender_id, user.id, datetime.utcnow())
        if updated:
            change_feed.publish(
                [user_channel(sender_id)], "messages", ChangeType.UPDATE, None, {"read_by": user.id}
            )
        return {"updated": updated}

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def get_threads(self, user: User) -> list[ThreadResponse]:
        threads = []
        for thread in self.repo.threads_for_user(self.db, user.id):
            other = thread.doctor if thread.patient_id == user.id else thread.patient
            threads.append(
                ThreadResponse(
                    id=thread.id,
                    patient_id=thread.patient_id,
                    doctor_id=thread.doctor_id,
                    appointment_id=thread.appointment_id,
                    other_user_id=other.id,
                    other_user_name=other.name,
                    other_user_role=other.role,
                    last_message_text=thread.last_message.message_text if thread.last_message else None,
                    last_message_at=thread.last_message_at,
                    unread_count=self.repo.unread_count(self.db, other.id, user.id),
                )
            )
        return threads

    def get_or_create_thread(
        self, user: User, patient_id: int, doctor_id: int, appointment_id: Optional[int] = None
    ) -> MessageThread:
        if user.id not in (patient_id, doctor_id) and user.role not in (ROLE_STAFF, ROLE_ADMIN):
            raise HTTPException(status_code=403, detail="You are not part of this conversation")

        thread = self.repo.get_thread(self.db, patient_id, doctor_id)
        if thread:
            return thread

        patient = self.repo.get_user(self.db, patient_id)
        doctor = self.repo.get_user(self.db, doctor_id)
        if not patient or patient.role != ROLE_PATIENT or not doctor or doctor.role != ROLE_DOCTOR:
            raise HTTPException(status_code=400, detail="Threads are between a patient and a doctor")

        thread = self.repo.create_thread(
            self.db, patient_id=patient_id, doctor_id=doctor_id, appointment_id=appointment_id, is_active=True
        )
        self.db.commit()
        self.db.refresh(thread)
        return thread

    # ------------------------------------------------------------------
    # Contacts and presence
    # ------------------------------------------------------------------

    def search_contacts(self, user: User, query: str = "", limit: int = CONTACT_SEARCH_LIMIT) -> list[User]:
        roles = CONTACT_ROLES.get(user.role, (ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF))
        return self.repo.search_users(self.db, user.id, roles, query.strip(), limit)

    def update_online_status(self, user: User, is_online: bool, status_message: Optional[str] = None):
        status = self.repo.upsert_online_status(
            self.db, user.id, is_online, sanitize_text(status_message, 255) or None, datetime.utcnow()
        )
        logger.debug(f"👤 User {user.id} is now {'online' if is_online else 'offline'}")
        return status

    def get_online_status(self, user_id: int):
        status = self.repo.get_online_status(self.db, user_id)
        if not status:
            raise HTTPException(status_code=404, detail="No presence recorded for this user")
        return status
