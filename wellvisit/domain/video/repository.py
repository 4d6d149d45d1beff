"""Video call repository - Database operations for video consultations"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Doctor, Patient
from ...models_video import VideoCall


class VideoCallRepository:
    """Repository for video call database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.patient).joinedload(Patient.user),
                joinedload(Appointment.doctor).joinedload(Doctor.user),
            )
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_for_appointment(db: Session, appointment_id: int) -> Optional[VideoCall]:
        return db.query(VideoCall).filter(VideoCall.appointment_id == appointment_id).first()

    @staticmethod
    def list_for_doctor(db: Session, doctor_id: int) -> list[VideoCall]:
        return (
            db.query(VideoCall)
            .filter(VideoCall.doctor_id == doctor_id)
            .order_by(VideoCall.created_at.desc(), VideoCall.id.desc())
            .all()
        )

    @staticmethod
    def list_for_patient(db: Session, patient_id: int) -> list[VideoCall]:
        return (
            db.query(VideoCall)
            .filter(VideoCall.patient_id == patient_id)
            .order_by(VideoCall.created_at.desc(), VideoCall.id.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, **fields) -> VideoCall:
        call = VideoCall(**fields)
        db.add(call)
        db.commit()
        db.refresh(call)
        return call

    @staticmethod
    def update(db: Session, call: VideoCall, **updates) -> VideoCall:
        for key, value in updates.items():
            setattr(call, key, value)
        db.commit()
        db.refresh(call)
        return call
