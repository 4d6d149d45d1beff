"""Staff repository - clinic-wide queries for the front desk and admins"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import (
    Appointment,
    Doctor,
    LabTest,
    MedicalRecord,
    Patient,
    Payment,
    Prescription,
    User,
)


class StaffRepository:
    """Repository for staff and admin database operations"""

    @staticmethod
    def count_appointments(db: Session, status: Optional[str] = None, on_date: Optional[date] = None) -> int:
        query = db.query(func.count(Appointment.id))
        if status:
            query = query.filter(Appointment.status == status)
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        return query.scalar() or 0

    @staticmethod
    def count(db: Session, model) -> int:
        return db.query(func.count(model.id)).scalar() or 0

    @staticmethod
    def count_payments(db: Session, status: str) -> int:
        return db.query(func.count(Payment.id)).filter(Payment.status == status).scalar() or 0

    @staticmethod
    def paid_total(db: Session) -> float:
        return float(db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(Payment.status == "paid").scalar())

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def list_users(db: Session, role: Optional[str] = None) -> list[User]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    @staticmethod
    def list_doctors(db: Session) -> list[Doctor]:
        return db.query(Doctor).options(joinedload(Doctor.user)).join(User).order_by(User.name.asc()).all()

    @staticmethod
    def list_patients(db: Session) -> list[Patient]:
        return db.query(Patient).options(joinedload(Patient.user)).join(User).order_by(User.name.asc()).all()

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).options(joinedload(Doctor.user)).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).options(joinedload(Patient.user)).filter(Patient.id == patient_id).first()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @staticmethod
    def search_patients(db: Session, term: str, limit: int) -> list[Patient]:
        pattern = f"%{term}%"
        return (
            db.query(Patient)
            .join(User)
            .options(joinedload(Patient.user))
            .filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern)))
            .order_by(User.name.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def search_doctors(db: Session, term: str, limit: int) -> list[Doctor]:
        pattern = f"%{term}%"
        return (
            db.query(Doctor)
            .join(User)
            .options(joinedload(Doctor.user))
            .filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), Doctor.specialty.ilike(pattern)))
            .order_by(User.name.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def search_appointments(db: Session, term: str, limit: int) -> list[Appointment]:
        pattern = f"%{term}%"
        patient_ids = db.query(Patient.id).join(User).filter(User.name.ilike(pattern))
        doctor_ids = db.query(Doctor.id).join(User).filter(User.name.ilike(pattern))
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.patient).joinedload(Patient.user),
                joinedload(Appointment.doctor).joinedload(Doctor.user),
            )
            .filter(
                or_(
                    Appointment.service_type.ilike(pattern),
                    Appointment.reason.ilike(pattern),
                    Appointment.status.ilike(pattern),
                    Appointment.patient_id.in_(patient_ids),
                    Appointment.doctor_id.in_(doctor_ids),
                )
            )
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .limit(limit)
            .all()
        )

    # ------------------------------------------------------------------
    # Patient record
    # ------------------------------------------------------------------

    @staticmethod
    def patient_appointments(db: Session, patient_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.patient).joinedload(Patient.user),
                joinedload(Appointment.doctor).joinedload(Doctor.user),
            )
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .all()
        )

    @staticmethod
    def patient_rows(db: Session, model, patient_id: int) -> list:
        """Records, prescriptions, lab tests or payments of a patient, newest first"""
        return (
            db.query(model)
            .filter(model.patient_id == patient_id)
            .order_by(model.created_at.desc(), model.id.desc())
            .all()
        )


CLINICAL_MODELS = {
    "medical_records": MedicalRecord,
    "prescriptions": Prescription,
    "lab_tests": LabTest,
    "payments": Payment,
}
