"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_time_hhmm

CONSULTATION_TYPES = ("in-person", "video", "phone")


class AppointmentCreate(BaseModel):
    """Schema for a patient booking an appointment"""

    doctor_id: int
    appointment_date: date
    appointment_time: str
    service_type: Optional[str] = None
    reason: Optional[str] = None
    consultation_type: str = "in-person"

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_hhmm(v)

    @field_validator("consultation_type")
    @classmethod
    def validate_consultation_type(cls, v):
        if v not in CONSULTATION_TYPES:
            raise ValueError(f"consultation_type must be one of {', '.join(CONSULTATION_TYPES)}")
        return v


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    public_id: Optional[str] = None
    patient_id: int
    doctor_id: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    service_type: Optional[str] = None
    reason: Optional[str] = None
    appointment_date: date
    appointment_time: str
    consultation_type: str
    status: str
    fee: float
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    meeting_link: Optional[str] = None
    meeting_code: Optional[str] = None
    is_follow_up: bool = False
    cancellation_reason: Optional[str] = None
    reschedule_requested_by: Optional[str] = None
    reschedule_reason: Optional[str] = None
    original_date: Optional[date] = None
    original_time: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    """Doctor accepting or rejecting a request"""

    status: str
    notes: Optional[str] = None
    meeting_link: Optional[str] = None
    meeting_code: Optional[str] = None


class CompleteRequest(BaseModel):
    consultation_notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Cancellation reason is required")
        return v.strip()


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: str
    reason: Optional[str] = None

    @field_validator("new_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_hhmm(v)


class RescheduleDecision(BaseModel):
    approved: bool
    doctor_notes: Optional[str] = None


class StaffReschedule(BaseModel):
    appointment_date: date
    appointment_time: str
    notes: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_hhmm(v)


class StaffStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class FollowUpCreate(BaseModel):
    patient_id: int
    follow_up_date: date
    notes: Optional[str] = None


# ============================================================================
# AVAILABILITY
# ============================================================================


class TimeSlotResponse(BaseModel):
    time: str
    available: bool
    appointment_id: Optional[int] = None

    class Config:
        from_attributes = True


class DoctorAvailabilityResponse(BaseModel):
    doctor_id: int
    doctor_name: str
    date: date
    time_slots: list[TimeSlotResponse]


class NextSlotResponse(BaseModel):
    doctor_id: int
    doctor_name: str
    date: date
    time: str


class ServiceAvailabilityResponse(BaseModel):
    service_id: int
    service_name: str
    status: str  # available, limited, booked, maintenance
    available_doctors: list[int]
    next_available_date: Optional[date] = None
    estimated_wait_time: Optional[str] = None
