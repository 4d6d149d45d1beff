"""Doctor service - profile, schedule, stats and patient records"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import (
    ROLE_DOCTOR,
    AppointmentStatus,
    Doctor,
    HealthMetric,
    LabTest,
    MedicalRecord,
    Patient,
    Prescription,
    User,
)
from ...services.notification_service import create_lab_result_notification
from ...services.sms_service import send_test_results_sms
from ...shared.validators import time_to_minutes
from .repository import DoctorRepository
from .schemas import (
    DoctorProfileResponse,
    DoctorProfileUpdate,
    DoctorStats,
    HealthMetricCreate,
    LabResultUpdate,
    LabTestOrder,
    MedicalRecordCreate,
    PatientSummary,
    PrescriptionCreate,
    PublicDoctorResponse,
    ScheduleEntry,
)

logger = logging.getLogger(__name__)

HEALTH_METRICS_LIMIT = 20


def to_profile_response(doctor: Doctor) -> DoctorProfileResponse:
    return DoctorProfileResponse(
        id=doctor.id,
        user_id=doctor.user_id,
        name=doctor.user.name,
        email=doctor.user.email,
        phone=doctor.user.phone,
        specialty=doctor.specialty,
        license_number=doctor.license_number,
        consultation_fee=doctor.consultation_fee or 0.0,
        video_consultation_fee=doctor.video_consultation_fee,
        years_of_experience=doctor.years_of_experience,
        rating=doctor.rating,
        bio=doctor.bio,
        is_available=doctor.is_available,
    )


def to_public_doctor(doctor: Doctor) -> PublicDoctorResponse:
    return PublicDoctorResponse(
        id=doctor.id,
        name=doctor.user.name,
        specialty=doctor.specialty,
        consultation_fee=doctor.consultation_fee or 0.0,
        video_consultation_fee=doctor.video_consultation_fee,
        years_of_experience=doctor.years_of_experience,
        rating=doctor.rating,
        bio=doctor.bio,
    )


def to_patient_summary(patient: Patient) -> PatientSummary:
    return PatientSummary(
        id=patient.id,
        user_id=patient.user_id,
        name=patient.user.name,
        email=patient.user.email,
        phone=patient.user.phone,
        date_of_birth=patient.date_of_birth,
        gender=patient.gender,
        address=patient.address,
        emergency_contact=patient.emergency_contact,
        medical_history=patient.medical_history,
    )


def month_bounds(today: date) -> tuple[date, date]:
    """First day of this month and first day of the next"""
    start = today.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


class DoctorService:
    """Service layer for doctor operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def _doctor(self, user: User) -> Doctor:
        if user.role != ROLE_DOCTOR or user.doctor is None:
            raise HTTPException(status_code=403, detail="Only doctors can perform this action")
        return user.doctor

    def _patient_of(self, doctor: Doctor, patient_id: int) -> Patient:
        """A patient the doctor has at least one appointment with"""
        patient = self.repo.get_patient(self.db, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        if not self.repo.has_treated(self.db, doctor.id, patient.id):
            logger.warning(f"🚫 Doctor {doctor.id} tried to access patient {patient.id} without an appointment")
            raise HTTPException(status_code=403, detail="This patient has no appointments with you")
        return patient

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, user: User) -> Doctor:
        return self._doctor(user)

    def update_profile(self, user: User, data: DoctorProfileUpdate) -> Doctor:
        doctor = self._doctor(user)
        return self.repo.update(self.db, doctor, **data.model_dump(exclude_unset=True))

    def update_availability_status(self, user: User, is_available: bool) -> Doctor:
        doctor = self._doctor(user)
        doctor.is_available = is_available
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"🩺 Doctor {doctor.id} is now {'available' if is_available else 'unavailable'}")
        return doctor

    def list_public_doctors(self, specialty: Optional[str] = None) -> list[Doctor]:
        return self.repo.list_available(self.db, specialty)

    def get_public_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.repo.get_by_id(self.db, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def get_schedule(self, user: User):
        return self.repo.get_schedule(self.db, self._doctor(user).id)

    def save_schedule(self, user: User, entry: ScheduleEntry):
        """Create or replace the working hours of one weekday"""
        doctor = self._doctor(user)
        if time_to_minutes(entry.start_time) >= time_to_minutes(entry.end_time):
            raise HTTPException(status_code=400, detail="start_time must be before end_time")
        if bool(entry.break_start) != bool(entry.break_end):
            raise HTTPException(status_code=400, detail="break_start and break_end must be set together")
        if entry.break_start and time_to_minutes(entry.break_start) >= time_to_minutes(entry.break_end):
            raise HTTPException(status_code=400, detail="break_start must be before break_end")

        saved = self.repo.upsert_schedule_day(self.db, doctor.id, **entry.model_dump())
        logger.info(f"📅 Schedule saved for doctor {doctor.id}, day {entry.day_of_week}")
        return saved

    def delete_schedule(self, user: User, day_of_week: int) -> dict:
        doctor = self._doctor(user)
        entry = self.repo.get_schedule_day(self.db, doctor.id, day_of_week)
        if not entry:
            raise HTTPException(status_code=404, detail="No schedule for this day")
        self.repo.delete_schedule_day(self.db, entry)
        return {"message": "Schedule deleted", "day_of_week": day_of_week}

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self, user: User, today: Optional[date] = None) -> DoctorStats:
        doctor = self._doctor(user)
        today = today or date.today()
        month_start, next_month = month_bounds(today)

        return DoctorStats(
            total_patients=self.repo.count_unique_patients(self.db, doctor.id),
            today_appointments=self.repo.count_appointments(
                self.db, doctor.id, AppointmentStatus.CONFIRMED.value, on_date=today
            ),
            pending_requests=self.repo.count_appointments(self.db, doctor.id, AppointmentStatus.PENDING.value),
            completed_consultations=self.repo.count_appointments(
                self.db,
                doctor.id,
                AppointmentStatus.COMPLETED.value,
                date_from=month_start,
                date_to=next_month,
            ),
            monthly_revenue=self.repo.paid_fees_between(self.db, doctor.id, month_start, next_month),
            average_rating=doctor.rating or 0.0,
        )

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def search_patients(self, user: User, term: str) -> list[Patient]:
        return self.repo.search_patients(self.db, self._doctor(user).id, term.strip())

    def get_patient_info(self, user: User, patient_id: int) -> Patient:
        return self._patient_of(self._doctor(user), patient_id)

    def patient_appointment_history(self, user: User, patient_id: int):
        doctor = self._doctor(user)
        patient = self._patient_of(doctor, patient_id)
        return self.repo.patient_appointments(self.db, doctor.id, patient.id)

    def patient_medical_history(self, user: User, patient_id: int) -> list[MedicalRecord]:
        patient = self._patient_of(self._doctor(user), patient_id)
        return self.repo.medical_records(self.db, patient.id)

    def save_medical_record(self, user: User, patient_id: int, data: MedicalRecordCreate) -> MedicalRecord:
        doctor = self._doctor(user)
        patient = self._patient_of(doctor, patient_id)
        record = MedicalRecord(
            patient_id=patient.id,
            doctor_id=doctor.id,
            visit_date=data.visit_date or date.today(),
            **data.model_dump(exclude={"visit_date"}),
        )
        record = self.repo.add(self.db, record)
        logger.info(f"📋 Medical record {record.id} saved for patient {patient.id}")
        return record

    def patient_lab_tests(self, user: User, patient_id: int) -> list[LabTest]:
        patient = self._patient_of(self._doctor(user), patient_id)
        return self.repo.lab_tests(self.db, patient.id)

    def order_lab_test(self, user: User, patient_id: int, data: LabTestOrder) -> LabTest:
        doctor = self._doctor(user)
        patient = self._patient_of(doctor, patient_id)
        test = self.repo.add(
            self.db,
            LabTest(
                patient_id=patient.id,
                doctor_id=doctor.id,
                appointment_id=data.appointment_id,
                test_type=data.test_type,
                notes=data.notes,
                status="ordered",
            ),
        )
        logger.info(f"🧪 Lab test {test.id} ({test.test_type}) ordered for patient {patient.id}")
        return test

    async def record_lab_result(self, user: User, test_id: int, data: LabResultUpdate) -> LabTest:
        """Store a result and tell the patient it is ready, in-app and by SMS"""
        doctor = self._doctor(user)
        test = self.repo.get_lab_test(self.db, test_id)
        if not test:
            raise HTTPException(status_code=404, detail="Lab test not found")
        if test.doctor_id != doctor.id:
            raise HTTPException(status_code=403, detail="This lab test was ordered by another doctor")

        test.result = data.result
        test.abnormal_findings = data.abnormal_findings
        if data.notes:
            test.notes = data.notes
        test.status = "completed"
        test.completed_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(test)

        patient = self.repo.get_patient(self.db, test.patient_id)
        create_lab_result_notification(self.db, patient.user_id, test.id, test.test_type, user.name)
        try:
            await send_test_results_sms(self.db, patient, test.test_type)
        except Exception as e:
            logger.error(f"❌ Failed to send lab result SMS for test {test.id}: {e}")

        logger.info(f"🧪 Lab result recorded for test {test.id}")
        return test

    def patient_prescriptions(self, user: User, patient_id: int) -> list[Prescription]:
        patient = self._patient_of(self._doctor(user), patient_id)
        return self.repo.prescriptions(self.db, patient.id)

    def add_prescription(self, user: User, patient_id: int, data: PrescriptionCreate) -> Prescription:
        doctor = self._doctor(user)
        patient = self._patient_of(doctor, patient_id)
        prescription = self.repo.add(
            self.db, Prescription(patient_id=patient.id, doctor_id=doctor.id, **data.model_dump())
        )
        logger.info(f"💊 Prescription {prescription.id} added for patient {patient.id}")
        return prescription

    def patient_health_metrics(
        self, user: User, patient_id: int, limit: int = HEALTH_METRICS_LIMIT
    ) -> list[HealthMetric]:
        patient = self._patient_of(self._doctor(user), patient_id)
        return self.repo.health_metrics(self.db, patient.id, limit)

    def save_health_metrics(
        self, user: User, patient_id: int, metrics: list[HealthMetricCreate]
    ) -> list[HealthMetric]:
        patient = self._patient_of(self._doctor(user), patient_id)
        if not metrics:
            raise HTTPException(status_code=400, detail="No health metrics provided")
        rows = [HealthMetric(patient_id=patient.id, **m.model_dump()) for m in metrics]
        return self.repo.add_all(self.db, rows)
