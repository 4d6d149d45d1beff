"""Patient repository - Read models for the patient portal"""

from datetime import date

from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, HealthMetric, LabTest, MedicalRecord, Payment, Prescription
from ...models_notifications import Notification


class PatientRepository:
    """Repository for patient portal queries"""

    @staticmethod
    def upcoming_appointments(db: Session, patient_id: int, today: date) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.patient_id == patient_id,
                Appointment.appointment_date >= today,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def past_appointments(db: Session, patient_id: int, today: date, limit: int = 20) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.patient_id == patient_id, Appointment.appointment_date < today)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def unread_notifications(db: Session, user_id: int) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    @staticmethod
    def payments(db: Session, patient_id: int) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.patient_id == patient_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )

    @staticmethod
    def count_payments(db: Session, patient_id: int, status: str) -> int:
        return db.query(Payment).filter(Payment.patient_id == patient_id, Payment.status == status).count()

    @staticmethod
    def prescriptions(db: Session, patient_id: int) -> list[Prescription]:
        return (
            db.query(Prescription)
            .filter(Prescription.patient_id == patient_id)
            .order_by(Prescription.created_at.desc(), Prescription.id.desc())
            .all()
        )

    @staticmethod
    def medical_records(db: Session, patient_id: int) -> list[MedicalRecord]:
        return (
            db.query(MedicalRecord)
            .filter(MedicalRecord.patient_id == patient_id)
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .all()
        )

    @staticmethod
    def lab_tests(db: Session, patient_id: int) -> list[LabTest]:
        return (
            db.query(LabTest)
            .filter(LabTest.patient_id == patient_id)
            .order_by(LabTest.created_at.desc(), LabTest.id.desc())
            .all()
        )

    @staticmethod
    def health_metrics(db: Session, patient_id: int, limit: int) -> list[HealthMetric]:
        return (
            db.query(HealthMetric)
            .filter(HealthMetric.patient_id == patient_id)
            .order_by(HealthMetric.recorded_at.desc(), HealthMetric.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def add(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj
