"""Staff and admin schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import MIN_PASSWORD_LENGTH
from ...services.notification_service import NOTIFICATION_TYPES, PRIORITIES
from ...services.sms_service import SMS_TYPES
from ...shared.validators import validate_email, validate_ph_phone
from ..appointments.schemas import AppointmentResponse
from ..doctors.schemas import LabTestResponse, MedicalRecordResponse, PatientSummary, PrescriptionResponse
from ..payments.schemas import PaymentResponse

SEARCH_TYPES = ("all", "patients", "doctors", "appointments")


class DashboardStats(BaseModel):
    total_appointments: int
    pending_appointments: int
    confirmed_appointments: int
    completed_appointments: int
    cancelled_appointments: int
    todays_appointments: int
    total_patients: int
    total_doctors: int
    total_revenue: float
    paid_payments: int
    pending_payments: int
    total_medical_records: int
    total_prescriptions: int
    total_lab_tests: int


class StaffUserResponse(BaseModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorCreate(BaseModel):
    """New doctor account added by staff"""

    email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: float = Field(0.0, ge=0)
    video_consultation_fee: Optional[float] = Field(None, ge=0)
    years_of_experience: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_ph_phone(v)
        return v


class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    video_consultation_fee: Optional[float] = Field(None, ge=0)
    years_of_experience: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    is_available: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_ph_phone(v)
        return v


class StaffNotificationCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: str = "system"
    priority: str = "medium"

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in NOTIFICATION_TYPES:
            raise ValueError(f"type must be one of {', '.join(NOTIFICATION_TYPES)}")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v not in PRIORITIES:
            raise ValueError(f"priority must be one of {', '.join(PRIORITIES)}")
        return v


class SearchResults(BaseModel):
    patients: list[dict] = []
    doctors: list[dict] = []
    appointments: list[dict] = []


class SMSLogResponse(BaseModel):
    id: int
    patient_id: Optional[int] = None
    recipient: str
    message: str
    type: str
    status: str
    appointment_id: Optional[int] = None
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleSMSRequest(BaseModel):
    patient_id: int
    message: str = Field(min_length=1, max_length=1600)
    send_at: datetime
    appointment_id: Optional[int] = None
    type: str = "appointment_reminder"

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in SMS_TYPES:
            raise ValueError(f"type must be one of {', '.join(SMS_TYPES)}")
        return v


class OnlineUserResponse(BaseModel):
    user_id: int
    name: str
    role: str
    last_seen: Optional[datetime] = None
    status_message: Optional[str] = None


class PatientFullRecord(BaseModel):
    """Everything the clinic holds about one patient"""

    patient: PatientSummary
    appointments: list[AppointmentResponse]
    medical_records: list[MedicalRecordResponse]
    prescriptions: list[PrescriptionResponse]
    lab_tests: list[LabTestResponse]
    payments: list[PaymentResponse]
