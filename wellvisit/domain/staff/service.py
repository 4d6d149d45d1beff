"""Staff service - clinic dashboard, account management and patient records"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_DOCTOR, AppointmentStatus, Doctor, Patient, User
from ...services.notification_service import create_notification
from ...services.sms_service import get_pending_sms, get_sms_history, schedule_sms
from ..appointments.service import to_appointment_response
from ..auth.service import AuthService
from ..doctors.schemas import LabTestResponse, MedicalRecordResponse, PrescriptionResponse
from ..doctors.service import to_patient_summary, to_profile_response
from ..messaging.repository import MessageRepository
from ..payments.schemas import PaymentResponse
from .repository import CLINICAL_MODELS, StaffRepository
from .schemas import (
    SEARCH_TYPES,
    DashboardStats,
    DoctorCreate,
    DoctorUpdate,
    PatientFullRecord,
    ScheduleSMSRequest,
    SearchResults,
    StaffNotificationCreate,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
DOCTOR_FIELDS = (
    "specialty",
    "license_number",
    "consultation_fee",
    "video_consultation_fee",
    "years_of_experience",
    "bio",
    "is_available",
)


class StaffService:
    """Service layer for staff and admin operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StaffRepository()

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard_stats(self, today: Optional[date] = None) -> DashboardStats:
        today = today or date.today()
        count = self.repo.count_appointments
        return DashboardStats(
            total_appointments=count(self.db),
            pending_appointments=count(self.db, AppointmentStatus.PENDING.value),
            confirmed_appointments=count(self.db, AppointmentStatus.CONFIRMED.value),
            completed_appointments=count(self.db, AppointmentStatus.COMPLETED.value),
            cancelled_appointments=count(self.db, AppointmentStatus.CANCELLED.value),
            todays_appointments=count(self.db, on_date=today),
            total_patients=self.repo.count(self.db, Patient),
            total_doctors=self.repo.count(self.db, Doctor),
            total_revenue=self.repo.paid_total(self.db),
            paid_payments=self.repo.count_payments(self.db, "paid"),
            pending_payments=self.repo.count_payments(self.db, "pending"),
            total_medical_records=self.repo.count(self.db, CLINICAL_MODELS["medical_records"]),
            total_prescriptions=self.repo.count(self.db, CLINICAL_MODELS["prescriptions"]),
            total_lab_tests=self.repo.count(self.db, CLINICAL_MODELS["lab_tests"]),
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def list_users(self, role: Optional[str] = None) -> list[User]:
        return self.repo.list_users(self.db, role)

    def list_doctors(self):
        return [to_profile_response(d) for d in self.repo.list_doctors(self.db)]

    def list_patients(self):
        return [to_patient_summary(p) for p in self.repo.list_patients(self.db)]

    def add_doctor(self, data: DoctorCreate):
        user = AuthService(self.db).create_account(
            email=data.email,
            password=data.password,
            name=data.name,
            role=ROLE_DOCTOR,
            phone=data.phone,
            profile={
                "specialty": data.specialty,
                "license_number": data.license_number,
                "consultation_fee": data.consultation_fee,
                "video_consultation_fee": data.video_consultation_fee,
                "years_of_experience": data.years_of_experience,
                "bio": data.bio,
            },
        )
        logger.info(f"🩺 Doctor added: {user.email}")
        return to_profile_response(user.doctor)

    def update_doctor(self, doctor_id: int, data: DoctorUpdate):
        doctor = self.repo.get_doctor(self.db, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")

        updates = data.model_dump(exclude_unset=True)
        for field in DOCTOR_FIELDS:
            if field in updates and updates[field] is not None:
                setattr(doctor, field, updates[field])
        if updates.get("name"):
            doctor.user.name = updates["name"]
        if updates.get("phone"):
            doctor.user.phone = updates["phone"]

        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"✏️ Doctor {doctor.id} updated")
        return to_profile_response(doctor)

    def deactivate_user(self, admin: User, user_id: int) -> dict:
        if admin.role != ROLE_ADMIN:
            raise HTTPException(status_code=403, detail="Only admins can deactivate accounts")
        if admin.id == user_id:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        user.is_active = False
        self.db.commit()
        logger.warning(f"🚫 User {user.id} ({user.email}) deactivated by admin {admin.id}")
        return {"message": "User deactivated", "user_id": user.id}

    # ------------------------------------------------------------------
    # Search and records
    # ------------------------------------------------------------------

    def universal_search(self, term: str, search_type: str = "all") -> SearchResults:
        """Search patients, doctors and appointments by name, email or keyword"""
        if search_type not in SEARCH_TYPES:
            raise HTTPException(status_code=400, detail=f"type must be one of {', '.join(SEARCH_TYPES)}")

        term = term.strip()
        results = SearchResults()
        if not term:
            return results

        if search_type in ("all", "patients"):
            results.patients = [
                to_patient_summary(p).model_dump(mode="json")
                for p in self.repo.search_patients(self.db, term, SEARCH_LIMIT)
            ]
        if search_type in ("all", "doctors"):
            results.doctors = [
                to_profile_response(d).model_dump(mode="json")
                for d in self.repo.search_doctors(self.db, term, SEARCH_LIMIT)
            ]
        if search_type in ("all", "appointments"):
            results.appointments = [
                to_appointment_response(a).model_dump(mode="json")
                for a in self.repo.search_appointments(self.db, term, SEARCH_LIMIT)
            ]
        return results

    def patient_full_record(self, patient_id: int) -> PatientFullRecord:
        patient = self.repo.get_patient(self.db, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        def rows(name, schema):
            records = self.repo.patient_rows(self.db, CLINICAL_MODELS[name], patient.id)
            return [schema.model_validate(r) for r in records]

        return PatientFullRecord(
            patient=to_patient_summary(patient),
            appointments=[to_appointment_response(a) for a in self.repo.patient_appointments(self.db, patient.id)],
            medical_records=rows("medical_records", MedicalRecordResponse),
            prescriptions=rows("prescriptions", PrescriptionResponse),
            lab_tests=rows("lab_tests", LabTestResponse),
            payments=rows("payments", PaymentResponse),
        )

    # ------------------------------------------------------------------
    # Communication
    # ------------------------------------------------------------------

    def send_notification(self, staff_user: User, data: StaffNotificationCreate):
        recipient = self.repo.get_user(self.db, data.user_id)
        if not recipient:
            raise HTTPException(status_code=404, detail="User not found")

        notification = create_notification(
            self.db,
            user_id=recipient.id,
            title=data.title,
            message=data.message,
            notification_type=data.type,
            priority=data.priority,
            meta={"sent_by": staff_user.name},
        )
        logger.info(f"🔔 Staff {staff_user.id} notified user {recipient.id}: {data.title}")
        return notification

    def online_users(self) -> list[dict]:
        return [
            {
                "user_id": status.user_id,
                "name": status.user.name,
                "role": status.user.role,
                "last_seen": status.last_seen,
                "status_message": status.status_message,
            }
            for status in MessageRepository.online_users(self.db)
        ]

    def sms_history(self, patient_id: int):
        if not self.repo.get_patient(self.db, patient_id):
            raise HTTPException(status_code=404, detail="Patient not found")
        return get_sms_history(self.db, patient_id)

    def pending_sms(self):
        return get_pending_sms(self.db)

    async def schedule_sms(self, data: ScheduleSMSRequest):
        patient = self.repo.get_patient(self.db, data.patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        sms_log = await schedule_sms(
            self.db,
            patient.user.phone,
            data.message,
            data.type,
            data.send_at,
            patient_id=patient.id,
            appointment_id=data.appointment_id,
        )
        if sms_log is None:
            raise HTTPException(status_code=400, detail="Patient has no valid phone number")
        return sms_log
