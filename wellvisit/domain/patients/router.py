"""Patient portal router"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import ROLE_PATIENT, User
from ..doctors.schemas import (
    HealthMetricCreate,
    HealthMetricResponse,
    LabTestResponse,
    MedicalRecordResponse,
    PrescriptionResponse,
)
from ..payments.schemas import PaymentResponse
from .schemas import PatientDashboard
from .service import PatientService

router = APIRouter(prefix="/patients/me", tags=["Patients"])

patient_only = require_roles(ROLE_PATIENT)


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


@router.get("/dashboard", response_model=PatientDashboard)
async def get_dashboard(
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    """Upcoming and past appointments plus unread notification count"""
    return service.dashboard(current_user)


@router.get("/prescriptions", response_model=list[PrescriptionResponse])
async def get_my_prescriptions(
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.my_prescriptions(current_user)


@router.get("/payments", response_model=list[PaymentResponse])
async def get_my_payments(
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.my_payments(current_user)


@router.get("/records", response_model=list[MedicalRecordResponse])
async def get_my_medical_records(
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.my_medical_records(current_user)


@router.get("/lab-tests", response_model=list[LabTestResponse])
async def get_my_lab_tests(
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.my_lab_tests(current_user)


@router.get("/health-metrics", response_model=list[HealthMetricResponse])
async def get_my_health_metrics(
    limit: int = Query(20, ge=1, le=200),
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.my_health_metrics(current_user, limit)


@router.post("/health-metrics", response_model=HealthMetricResponse, status_code=201)
async def add_health_metric(
    data: HealthMetricCreate,
    current_user: User = Depends(patient_only),
    service: PatientService = Depends(get_patient_service),
):
    return service.add_health_metric(current_user, data)
