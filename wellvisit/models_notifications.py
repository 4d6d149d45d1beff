"""
Notification Models
In-app notifications and the SMS delivery log
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Notification(Base):
    """In-app notification shown in the user's notification center"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # appointment, payment, message, record, system, reminder, video_call
    type = Column(String(30), default="system", nullable=False)
    priority = Column(String(10), default="medium", nullable=False)  # low, medium, high, urgent
    is_read = Column(Boolean, default=False, nullable=False)
    related_appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    related_test_id = Column(Integer, ForeignKey("lab_tests.id"), nullable=True)
    # action_url, action_text, patient/doctor names
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    user = relationship("User")


class SMSLog(Base):
    """Track SMS messages sent (or scheduled) to patients"""

    __tablename__ = "sms_logs"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True, index=True)
    recipient = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    # appointment_confirmation, appointment_reminder, test_results,
    # payment_confirmation, appointment_update
    type = Column(String(50), nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, scheduled, sent, failed, cancelled
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    scheduled_for = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    provider_message_sid = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
