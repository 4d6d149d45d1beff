"""Doctor repository - Database operations for doctors and their patients' records"""

from datetime import date
from typing import Optional

from sqlalchemy import distinct, func, or_
from sqlalchemy.orm import Session

from ...models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    DoctorSchedule,
    HealthMetric,
    LabTest,
    MedicalRecord,
    Patient,
    Payment,
    Prescription,
    User,
)


class DoctorRepository:
    """Repository for doctor database operations"""

    # ------------------------------------------------------------------
    # Doctors
    # ------------------------------------------------------------------

    @staticmethod
    def get_by_id(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def list_available(db: Session, specialty: Optional[str] = None) -> list[Doctor]:
        query = (
            db.query(Doctor)
            .join(User, Doctor.user_id == User.id)
            .filter(Doctor.is_available.is_(True), User.is_active.is_(True))
        )
        if specialty:
            query = query.filter(Doctor.specialty.ilike(f"%{specialty}%"))
        return query.order_by(User.name.asc()).all()

    @staticmethod
    def update(db: Session, obj, **updates):
        """Update a row with the provided non-None fields"""
        for key, value in updates.items():
            if value is not None and hasattr(obj, key):
                setattr(obj, key, value)
        db.commit()
        db.refresh(obj)
        return obj

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    @staticmethod
    def get_schedule(db: Session, doctor_id: int) -> list[DoctorSchedule]:
        return (
            db.query(DoctorSchedule)
            .filter(DoctorSchedule.doctor_id == doctor_id)
            .order_by(DoctorSchedule.day_of_week.asc())
            .all()
        )

    @staticmethod
    def get_schedule_day(db: Session, doctor_id: int, day_of_week: int) -> Optional[DoctorSchedule]:
        return (
            db.query(DoctorSchedule)
            .filter(DoctorSchedule.doctor_id == doctor_id, DoctorSchedule.day_of_week == day_of_week)
            .first()
        )

    @staticmethod
    def upsert_schedule_day(db: Session, doctor_id: int, **fields) -> DoctorSchedule:
        entry = DoctorRepository.get_schedule_day(db, doctor_id, fields["day_of_week"])
        if entry is None:
            entry = DoctorSchedule(doctor_id=doctor_id)
            db.add(entry)
        for key, value in fields.items():
            setattr(entry, key, value)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def delete_schedule_day(db: Session, entry: DoctorSchedule) -> None:
        db.delete(entry)
        db.commit()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    @staticmethod
    def count_unique_patients(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(distinct(Appointment.patient_id)))
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status == AppointmentStatus.COMPLETED.value,
            )
            .scalar()
            or 0
        )

    @staticmethod
    def count_appointments(
        db: Session,
        doctor_id: int,
        status: str,
        on_date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        query = db.query(func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor_id, Appointment.status == status
        )
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date < date_to)
        return query.scalar() or 0

    @staticmethod
    def paid_fees_between(db: Session, doctor_id: int, date_from: date, date_to: date) -> float:
        """Sum of fees of appointments in [date_from, date_to) that have a paid payment"""
        paid_appointment_ids = (
            db.query(Payment.appointment_id).filter(Payment.status == "paid").distinct()
        )
        total = (
            db.query(func.coalesce(func.sum(Appointment.fee), 0.0))
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date >= date_from,
                Appointment.appointment_date < date_to,
                Appointment.id.in_(paid_appointment_ids),
            )
            .scalar()
        )
        return float(total or 0.0)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    @staticmethod
    def has_treated(db: Session, doctor_id: int, patient_id: int) -> bool:
        return (
            db.query(Appointment.id)
            .filter(Appointment.doctor_id == doctor_id, Appointment.patient_id == patient_id)
            .first()
            is not None
        )

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def search_patients(db: Session, doctor_id: int, term: str) -> list[Patient]:
        """Distinct patients of a doctor whose name or email matches"""
        pattern = f"%{term}%"
        patient_ids = db.query(Appointment.patient_id).filter(Appointment.doctor_id == doctor_id).distinct()
        return (
            db.query(Patient)
            .join(User, Patient.user_id == User.id)
            .filter(Patient.id.in_(patient_ids), or_(User.name.ilike(pattern), User.email.ilike(pattern)))
            .order_by(User.name.asc())
            .all()
        )

    @staticmethod
    def patient_appointments(db: Session, doctor_id: int, patient_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id, Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
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
    def get_lab_test(db: Session, test_id: int) -> Optional[LabTest]:
        return db.query(LabTest).filter(LabTest.id == test_id).first()

    @staticmethod
    def prescriptions(db: Session, patient_id: int) -> list[Prescription]:
        return (
            db.query(Prescription)
            .filter(Prescription.patient_id == patient_id)
            .order_by(Prescription.created_at.desc(), Prescription.id.desc())
            .all()
        )

    @staticmethod
    def health_metrics(db: Session, patient_id: int, limit: int = 20) -> list[HealthMetric]:
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

    @staticmethod
    def add_all(db: Session, objs: list) -> list:
        db.add_all(objs)
        db.commit()
        for obj in objs:
            db.refresh(obj)
        return objs
