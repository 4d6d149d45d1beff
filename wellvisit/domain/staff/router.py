"""Staff router - front desk and admin management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import ROLE_ADMIN, ROLE_STAFF, User
from ..doctors.schemas import DoctorProfileResponse, PatientSummary
from ..notifications.schemas import NotificationResponse
from .schemas import (
    DashboardStats,
    DoctorCreate,
    DoctorUpdate,
    OnlineUserResponse,
    PatientFullRecord,
    ScheduleSMSRequest,
    SearchResults,
    SMSLogResponse,
    StaffNotificationCreate,
    StaffUserResponse,
)
from .service import StaffService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])

staff_only = require_roles(ROLE_STAFF, ROLE_ADMIN)
admin_only = require_roles(ROLE_ADMIN)


def get_staff_service(db: Session = Depends(get_db)) -> StaffService:
    """Dependency injection for StaffService"""
    return StaffService(db)


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.dashboard_stats()


@router.get("/search", response_model=SearchResults)
async def universal_search(
    q: str = Query(..., min_length=1),
    type: str = Query("all"),
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    """Search across patients, doctors and appointments"""
    return service.universal_search(q, type)


# ============================================================================
# ACCOUNTS
# ============================================================================


@router.get("/users", response_model=list[StaffUserResponse])
async def list_users(
    role: Optional[str] = Query(None),
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.list_users(role)


@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: int,
    current_user: User = Depends(admin_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.deactivate_user(current_user, user_id)


@router.get("/doctors", response_model=list[DoctorProfileResponse])
async def list_doctors(
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.list_doctors()


@router.post("/doctors", response_model=DoctorProfileResponse, status_code=201)
async def add_doctor(
    data: DoctorCreate,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    logger.info(f"🩺 Staff {current_user.id} adding doctor {data.email}")
    return service.add_doctor(data)


@router.put("/doctors/{doctor_id}", response_model=DoctorProfileResponse)
async def update_doctor(
    doctor_id: int,
    data: DoctorUpdate,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.update_doctor(doctor_id, data)


@router.get("/patients", response_model=list[PatientSummary])
async def list_patients(
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.list_patients()


@router.get("/patients/{patient_id}/record", response_model=PatientFullRecord)
async def patient_full_record(
    patient_id: int,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.patient_full_record(patient_id)


# ============================================================================
# COMMUNICATION
# ============================================================================


@router.post("/notifications", response_model=NotificationResponse, status_code=201)
async def send_notification(
    data: StaffNotificationCreate,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.send_notification(current_user, data)


@router.get("/online-users", response_model=list[OnlineUserResponse])
async def online_users(
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.online_users()


@router.get("/sms/pending", response_model=list[SMSLogResponse])
async def pending_sms(
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.pending_sms()


@router.get("/sms/patients/{patient_id}", response_model=list[SMSLogResponse])
async def sms_history(
    patient_id: int,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    return service.sms_history(patient_id)


@router.post("/sms/schedule", response_model=SMSLogResponse, status_code=201)
async def schedule_sms(
    data: ScheduleSMSRequest,
    current_user: User = Depends(staff_only),
    service: StaffService = Depends(get_staff_service),
):
    """Queue an SMS to a patient for later delivery"""
    return await service.schedule_sms(data)
