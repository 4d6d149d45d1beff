"""Patient portal service - a patient's own appointments and records"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_PATIENT, HealthMetric, Patient, User
from ..appointments.service import to_appointment_response
from ..doctors.schemas import HealthMetricCreate
from .repository import PatientRepository
from .schemas import PatientDashboard

logger = logging.getLogger(__name__)


class PatientService:
    """Service layer for the patient portal"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def _patient(self, user: User) -> Patient:
        if user.role != ROLE_PATIENT or user.patient is None:
            raise HTTPException(status_code=403, detail="Only patients can access the patient portal")
        return user.patient

    def dashboard(self, user: User, today: Optional[date] = None) -> PatientDashboard:
        patient = self._patient(user)
        today = today or date.today()
        return PatientDashboard(
            patient_id=patient.id,
            name=user.name,
            upcoming_appointments=[
                to_appointment_response(a) for a in self.repo.upcoming_appointments(self.db, patient.id, today)
            ],
            past_appointments=[
                to_appointment_response(a) for a in self.repo.past_appointments(self.db, patient.id, today)
            ],
            unread_notifications=self.repo.unread_notifications(self.db, user.id),
            pending_payments=self.repo.count_payments(self.db, patient.id, "pending"),
        )

    def my_prescriptions(self, user: User):
        return self.repo.prescriptions(self.db, self._patient(user).id)

    def my_payments(self, user: User):
        return self.repo.payments(self.db, self._patient(user).id)

    def my_medical_records(self, user: User):
        return self.repo.medical_records(self.db, self._patient(user).id)

    def my_lab_tests(self, user: User):
        return self.repo.lab_tests(self.db, self._patient(user).id)

    def my_health_metrics(self, user: User, limit: int = 20):
        return self.repo.health_metrics(self.db, self._patient(user).id, limit)

    def add_health_metric(self, user: User, data: HealthMetricCreate) -> HealthMetric:
        patient = self._patient(user)
        metric = self.repo.add(self.db, HealthMetric(patient_id=patient.id, **data.model_dump()))
        logger.info(f"📈 Patient {patient.id} recorded {metric.metric_type}")
        return metric
