"""Appointment router - FastAPI endpoints for booking and the appointment workflow"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF, User
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    CancelRequest,
    CompleteRequest,
    DoctorAvailabilityResponse,
    FollowUpCreate,
    NextSlotResponse,
    RescheduleDecision,
    RescheduleRequest,
    ServiceAvailabilityResponse,
    StaffReschedule,
    StaffStatusUpdate,
    StatusUpdate,
)
from .service import AppointmentService, to_appointment_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

patient_only = require_roles(ROLE_PATIENT)
doctor_only = require_roles(ROLE_DOCTOR)
staff_only = require_roles(ROLE_STAFF, ROLE_ADMIN)


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# AVAILABILITY (PUBLIC)
# ============================================================================


@router.get("/availability/doctors/{doctor_id}", response_model=DoctorAvailabilityResponse)
async def get_doctor_availability(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Time slots of a doctor for one day, booked slots marked unavailable"""
    return service.doctor_availability(doctor_id, on_date)


@router.get("/availability/next", response_model=NextSlotResponse)
async def get_next_available_slot(
    doctor_id: Optional[int] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.next_available_slot(doctor_id)


@router.get("/availability/services/{service_id}", response_model=ServiceAvailabilityResponse)
async def get_service_availability(
    service_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.service_availability(service_id)


# ============================================================================
# PATIENT
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(patient_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a new appointment, pending until the doctor confirms"""
    return to_appointment_response(service.book(current_user, data))


@router.get("/mine", response_model=list[AppointmentResponse])
async def get_my_appointments(
    current_user: User = Depends(patient_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    return [to_appointment_response(a) for a in service.list_for_patient(current_user)]


# ============================================================================
# DOCTOR
# ============================================================================


@router.get("/doctor", response_model=list[AppointmentResponse])
async def get_doctor_appointments(
    status: Optional[str] = Query(None),
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    return [to_appointment_response(a) for a in service.list_for_doctor(current_user, status)]


@router.get("/doctor/today", response_model=list[AppointmentResponse])
async def get_todays_appointments(
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Confirmed appointments for today ordered by time"""
    return [to_appointment_response(a) for a in service.todays_appointments(current_user)]


@router.post("/follow-up", response_model=AppointmentResponse, status_code=201)
async def schedule_follow_up(
    data: FollowUpCreate,
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_appointment_response(service.schedule_follow_up(current_user, data))


# ============================================================================
# STAFF
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    status: Optional[str] = Query(None),
    doctor_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(staff_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    """All appointments with optional filters (staff only)"""
    appointments = service.list_all(
        status=status,
        doctor_id=doctor_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return [to_appointment_response(a) for a in appointments]


# ============================================================================
# SINGLE APPOINTMENT
# ============================================================================


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_appointment_response(service.get_appointment(current_user, appointment_id))


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: StatusUpdate,
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Doctor accepts or rejects an appointment request"""
    appointment = await service.update_status(current_user, appointment_id, data)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    data: CompleteRequest,
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.complete(current_user, appointment_id, data.consultation_notes)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    data: CancelRequest,
    current_user: User = Depends(patient_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel(current_user, appointment_id, data.reason)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def request_reschedule(
    appointment_id: int,
    data: RescheduleRequest,
    current_user: User = Depends(patient_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Patient proposes a new slot, the doctor has to approve it"""
    return to_appointment_response(service.request_reschedule(current_user, appointment_id, data))


@router.post("/{appointment_id}/reschedule/decision", response_model=AppointmentResponse)
async def confirm_reschedule(
    appointment_id: int,
    data: RescheduleDecision,
    current_user: User = Depends(doctor_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.confirm_reschedule(current_user, appointment_id, data)
    return to_appointment_response(appointment)


@router.put("/{appointment_id}/staff-reschedule", response_model=AppointmentResponse)
async def staff_reschedule(
    appointment_id: int,
    data: StaffReschedule,
    current_user: User = Depends(staff_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.staff_reschedule(appointment_id, data)
    return to_appointment_response(appointment)


@router.patch("/{appointment_id}/staff-status", response_model=AppointmentResponse)
async def staff_update_status(
    appointment_id: int,
    data: StaffStatusUpdate,
    current_user: User = Depends(staff_only),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.staff_update_status(appointment_id, data)
    return to_appointment_response(appointment)


@router.post("/{appointment_id}/reminder")
async def send_appointment_reminder(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Send an immediate reminder to the patient (doctor or staff)"""
    return await service.send_reminder(current_user, appointment_id)
