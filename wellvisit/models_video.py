"""
Video Consultation Models
One VideoSDK room per video appointment
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class VideoCall(Base):
    __tablename__ = "video_calls"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), unique=True, nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    room_id = Column(String(100), nullable=False)
    call_link = Column(String(500), nullable=True)
    status = Column(String(20), default="scheduled", nullable=False)  # scheduled, ongoing, ended
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    recording_enabled = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment")
