"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus, Doctor, Patient


def _with_people(query):
    return query.options(
        joinedload(Appointment.patient).joinedload(Patient.user),
        joinedload(Appointment.doctor).joinedload(Doctor.user),
    )


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return _with_people(db.query(Appointment)).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def list_for_patient(db: Session, patient_id: int) -> list[Appointment]:
        return (
            _with_people(db.query(Appointment))
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .all()
        )

    @staticmethod
    def list_for_doctor(db: Session, doctor_id: int, status: Optional[str] = None) -> list[Appointment]:
        query = _with_people(db.query(Appointment)).filter(Appointment.doctor_id == doctor_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()

    @staticmethod
    def list_all(
        db: Session,
        status: Optional[str] = None,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Appointment]:
        """All appointments with optional filters, newest first"""
        query = _with_people(db.query(Appointment))
        if status:
            query = query.filter(Appointment.status == status)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)
        return (
            query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def todays_for_doctor(db: Session, doctor_id: int, today: date) -> list[Appointment]:
        return (
            _with_people(db.query(Appointment))
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == today,
                Appointment.status == AppointmentStatus.CONFIRMED.value,
            )
            .order_by(Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def create(db: Session, **fields) -> Appointment:
        appointment = Appointment(**fields)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Apply updates, None values included so tracking fields can be cleared"""
        for key, value in updates.items():
            setattr(appointment, key, value)
        db.commit()
        db.refresh(appointment)
        return appointment
