"""Doctor router - doctor portal and the public doctor directory"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import ROLE_DOCTOR, User
from ..appointments.schemas import AppointmentResponse
from ..appointments.service import to_appointment_response
from .schemas import (
    AvailabilityStatusUpdate,
    DoctorProfileResponse,
    DoctorProfileUpdate,
    DoctorStats,
    HealthMetricCreate,
    HealthMetricResponse,
    LabResultUpdate,
    LabTestOrder,
    LabTestResponse,
    MedicalRecordCreate,
    MedicalRecordResponse,
    PatientSummary,
    PrescriptionCreate,
    PrescriptionResponse,
    PublicDoctorResponse,
    ScheduleEntry,
    ScheduleResponse,
)
from .service import DoctorService, to_patient_summary, to_profile_response, to_public_doctor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])

doctor_only = require_roles(ROLE_DOCTOR)


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


# ============================================================================
# PUBLIC DIRECTORY
# ============================================================================


@router.get("", response_model=list[PublicDoctorResponse])
async def list_doctors(
    specialty: Optional[str] = Query(None),
    service: DoctorService = Depends(get_doctor_service),
):
    """Doctors currently accepting appointments"""
    return [to_public_doctor(d) for d in service.list_public_doctors(specialty)]


# ============================================================================
# PROFILE AND SCHEDULE
# ============================================================================


@router.get("/me", response_model=DoctorProfileResponse)
async def get_my_profile(
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return to_profile_response(service.get_profile(current_user))


@router.put("/me", response_model=DoctorProfileResponse)
async def update_my_profile(
    data: DoctorProfileUpdate,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return to_profile_response(service.update_profile(current_user, data))


@router.patch("/me/availability", response_model=DoctorProfileResponse)
async def update_availability_status(
    data: AvailabilityStatusUpdate,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return to_profile_response(service.update_availability_status(current_user, data.is_available))


@router.get("/me/schedule", response_model=list[ScheduleResponse])
async def get_my_schedule(
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.get_schedule(current_user)


@router.put("/me/schedule", response_model=ScheduleResponse)
async def save_schedule_day(
    data: ScheduleEntry,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    """Create or replace the working hours for one weekday"""
    return service.save_schedule(current_user, data)


@router.delete("/me/schedule/{day_of_week}")
async def delete_schedule_day(
    day_of_week: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.delete_schedule(current_user, day_of_week)


@router.get("/me/stats", response_model=DoctorStats)
async def get_my_stats(
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.get_stats(current_user)


# ============================================================================
# PATIENTS
# ============================================================================


@router.get("/patients/search", response_model=list[PatientSummary])
async def search_patients(
    q: str = Query(..., min_length=1),
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    """Patients with appointments with this doctor, matched by name or email"""
    return [to_patient_summary(p) for p in service.search_patients(current_user, q)]


@router.get("/patients/{patient_id}", response_model=PatientSummary)
async def get_patient_info(
    patient_id: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return to_patient_summary(service.get_patient_info(current_user, patient_id))


@router.get("/patients/{patient_id}/appointments", response_model=list[AppointmentResponse])
async def get_patient_appointment_history(
    patient_id: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return [to_appointment_response(a) for a in service.patient_appointment_history(current_user, patient_id)]


@router.get("/patients/{patient_id}/records", response_model=list[MedicalRecordResponse])
async def get_patient_medical_history(
    patient_id: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.patient_medical_history(current_user, patient_id)


@router.post("/patients/{patient_id}/records", response_model=MedicalRecordResponse, status_code=201)
async def save_medical_record(
    patient_id: int,
    data: MedicalRecordCreate,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.save_medical_record(current_user, patient_id, data)


@router.get("/patients/{patient_id}/lab-tests", response_model=list[LabTestResponse])
async def get_patient_lab_tests(
    patient_id: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.patient_lab_tests(current_user, patient_id)


@router.post("/patients/{patient_id}/lab-tests", response_model=LabTestResponse, status_code=201)
async def order_lab_test(
    patient_id: int,
    data: LabTestOrder,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.order_lab_test(current_user, patient_id, data)


@router.put("/lab-tests/{test_id}/result", response_model=LabTestResponse)
async def record_lab_result(
    test_id: int,
    data: LabResultUpdate,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    """Store a lab result and notify the patient"""
    return await service.record_lab_result(current_user, test_id, data)


@router.get("/patients/{patient_id}/prescriptions", response_model=list[PrescriptionResponse])
async def get_patient_prescriptions(
    patient_id: int,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.patient_prescriptions(current_user, patient_id)


@router.post("/patients/{patient_id}/prescriptions", response_model=PrescriptionResponse, status_code=201)
async def add_prescription(
    patient_id: int,
    data: PrescriptionCreate,
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.add_prescription(current_user, patient_id, data)


@router.get("/patients/{patient_id}/health-metrics", response_model=list[HealthMetricResponse])
async def get_patient_health_metrics(
    patient_id: int,
    limit: int = Query(20, ge=1, le=200),
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.patient_health_metrics(current_user, patient_id, limit)


@router.post("/patients/{patient_id}/health-metrics", response_model=list[HealthMetricResponse], status_code=201)
async def save_health_metrics(
    patient_id: int,
    data: list[HealthMetricCreate],
    current_user: User = Depends(doctor_only),
    service: DoctorService = Depends(get_doctor_service),
):
    return service.save_health_metrics(current_user, patient_id, data)


@router.get("/{doctor_id}", response_model=PublicDoctorResponse)
async def get_doctor(
    doctor_id: int,
    service: DoctorService = Depends(get_doctor_service),
):
    return to_public_doctor(service.get_public_doctor(doctor_id))
