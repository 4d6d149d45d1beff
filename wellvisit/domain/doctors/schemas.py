"""Doctor domain schemas - profiles, schedules and clinical records"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_time_hhmm


class DoctorProfileResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    phone: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: float
    video_consultation_fee: Optional[float] = None
    years_of_experience: Optional[int] = None
    rating: Optional[float] = None
    bio: Optional[str] = None
    is_available: bool


class DoctorProfileUpdate(BaseModel):
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    video_consultation_fee: Optional[float] = Field(None, ge=0)
    years_of_experience: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None


class AvailabilityStatusUpdate(BaseModel):
    is_available: bool


class PublicDoctorResponse(BaseModel):
    """Doctor card shown to patients when booking"""

    id: int
    name: str
    specialty: Optional[str] = None
    consultation_fee: float
    video_consultation_fee: Optional[float] = None
    years_of_experience: Optional[int] = None
    rating: Optional[float] = None
    bio: Optional[str] = None


# ============================================================================
# SCHEDULE
# ============================================================================


class ScheduleEntry(BaseModel):
    """Working hours for one weekday (0 = Monday)"""

    day_of_week: int = Field(ge=0, le=6)
    start_time: str = "09:00"
    end_time: str = "17:00"
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    is_available: bool = True
    max_patients_per_day: Optional[int] = Field(None, ge=1)

    @field_validator("start_time", "end_time", "break_start", "break_end")
    @classmethod
    def validate_times(cls, v):
        return validate_time_hhmm(v)


class ScheduleResponse(ScheduleEntry):
    id: int
    doctor_id: int

    class Config:
        from_attributes = True


class DoctorStats(BaseModel):
    total_patients: int
    today_appointments: int
    pending_requests: int
    completed_consultations: int
    monthly_revenue: float
    average_rating: float


# ============================================================================
# PATIENTS AND CLINICAL RECORDS
# ============================================================================


class PatientSummary(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    medical_history: Optional[str] = None


class MedicalRecordCreate(BaseModel):
    appointment_id: Optional[int] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    notes: Optional[str] = None
    visit_date: Optional[date] = None
    follow_up_required: bool = False
    follow_up_date: Optional[date] = None


class MedicalRecordResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_id: Optional[int] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    notes: Optional[str] = None
    visit_date: Optional[date] = None
    follow_up_required: Optional[bool] = False
    follow_up_date: Optional[date] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LabTestOrder(BaseModel):
    test_type: str = Field(min_length=1, max_length=255)
    appointment_id: Optional[int] = None
    notes: Optional[str] = None


class LabResultUpdate(BaseModel):
    result: str
    abnormal_findings: Optional[str] = None
    notes: Optional[str] = None


class LabTestResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_id: Optional[int] = None
    test_type: str
    status: str
    result: Optional[str] = None
    abnormal_findings: Optional[str] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PrescriptionCreate(BaseModel):
    medication_name: str = Field(min_length=1, max_length=255)
    medical_record_id: Optional[int] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None


class PrescriptionResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    medical_record_id: Optional[int] = None
    medication_name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    instructions: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthMetricCreate(BaseModel):
    metric_type: str = Field(min_length=1, max_length=50)  # blood_pressure, heart_rate, weight ...
    value: str = Field(min_length=1, max_length=50)
    unit: Optional[str] = None
    notes: Optional[str] = None


class HealthMetricResponse(BaseModel):
    id: int
    patient_id: int
    metric_type: str
    value: str
    unit: Optional[str] = None
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
