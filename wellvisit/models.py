import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Role values stored on users.role
ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_PATIENT, ROLE_DOCTOR, ROLE_STAFF, ROLE_ADMIN)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PENDING_RESCHEDULE = "pending_reschedule_confirmation"


# Statuses that hold a doctor's time slot
ACTIVE_APPOINTMENT_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.PENDING_RESCHEDULE.value,
)


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)  # Stored in E.164 (+63...)
    role = Column(String(20), nullable=False, default=ROLE_PATIENT, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="user", uselist=False)
    doctor = relationship("Doctor", back_populates="user", uselist=False)
    staff = relationship("Staff", back_populates="user", uselist=False)


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    emergency_contact = Column(String(255), nullable=True)
    medical_history = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="patient")
    appointments = relationship("Appointment", back_populates="patient")


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    specialty = Column(String(255), nullable=True)
    license_number = Column(String(100), nullable=True)
    consultation_fee = Column(Float, default=0.0, nullable=False)  # PHP
    video_consultation_fee = Column(Float, nullable=True)  # Falls back to consultation_fee
    years_of_experience = Column(Integer, nullable=True)
    rating = Column(Float, nullable=True)
    bio = Column(Text, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="doctor")
    schedules = relationship(
        "DoctorSchedule", back_populates="doctor", cascade="all, delete-orphan"
    )
    appointments = relationship("Appointment", back_populates="doctor")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    position = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="staff")


class DoctorSchedule(Base):
    """Weekly working hours of a doctor, one row per weekday"""

    __tablename__ = "doctor_schedules"
    __table_args__ = (UniqueConstraint("doctor_id", "day_of_week", name="uq_doctor_schedule_day"),)

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday ... 6 = Sunday
    start_time = Column(String(5), nullable=False, default="09:00")  # HH:MM
    end_time = Column(String(5), nullable=False, default="17:00")
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    max_patients_per_day = Column(Integer, nullable=True)

    doctor = relationship("Doctor", back_populates="schedules")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    service_type = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)  # HH:MM
    consultation_type = Column(String(20), default="in-person", nullable=False)  # in-person, video, phone
    # pending, confirmed, cancelled, completed, pending_reschedule_confirmation
    status = Column(String(40), default="pending", nullable=False, index=True)
    fee = Column(Float, default=0.0, nullable=False)
    notes = Column(Text, nullable=True)
    doctor_notes = Column(Text, nullable=True)
    meeting_link = Column(String(500), nullable=True)
    meeting_code = Column(String(100), nullable=True)
    is_follow_up = Column(Boolean, default=False, nullable=False)
    cancellation_reason = Column(Text, nullable=True)
    # Reschedule tracking, cleared once the doctor answers the request
    reschedule_requested_by = Column(String(20), nullable=True)  # patient, doctor, staff
    reschedule_reason = Column(Text, nullable=True)
    original_date = Column(Date, nullable=True)
    original_time = Column(String(5), nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    payments = relationship("Payment", back_populates="appointment")


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    visit_date = Column(Date, nullable=True)
    follow_up_required = Column(Boolean, default=False)
    follow_up_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("Doctor")
    prescriptions = relationship("Prescription", back_populates="medical_record")


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    medical_record_id = Column(Integer, ForeignKey("medical_records.id"), nullable=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    medication_name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=True)
    frequency = Column(String(100), nullable=True)
    duration = Column(String(100), nullable=True)
    instructions = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    medical_record = relationship("MedicalRecord", back_populates="prescriptions")
    doctor = relationship("Doctor")


class LabTest(Base):
    __tablename__ = "lab_tests"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    test_type = Column(String(255), nullable=False)
    status = Column(String(20), default="ordered", nullable=False)  # ordered, completed
    result = Column(Text, nullable=True)
    abnormal_findings = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("Doctor")


class HealthMetric(Base):
    __tablename__ = "health_metrics"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    metric_type = Column(String(50), nullable=False)  # blood_pressure, heart_rate, weight ...
    value = Column(String(50), nullable=False)
    unit = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime, server_default=func.now())


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)  # Total charged, PHP
    processing_fee = Column(Float, default=0.0, nullable=False)
    currency = Column(String(3), default="PHP", nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, paid, failed, refunded
    provider = Column(String(30), default="paymongo", nullable=False)  # paymongo, cash, bank_transfer, insurance
    payment_method = Column(String(50), nullable=True)  # gcash, card, paymaya ...
    description = Column(String(500), nullable=True)
    checkout_url = Column(String(500), nullable=True)
    provider_link_id = Column(String(255), nullable=True, index=True)
    transaction_ref = Column(String(255), nullable=True)
    payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment", back_populates="payments")
    patient = relationship("Patient")


class Service(Base):
    """Clinic service catalog entry"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, default=30)
    price = Column(Float, default=0.0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, inactive
    popular = Column(Boolean, default=False)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())


class ServicePackage(Base):
    __tablename__ = "service_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    original_price = Column(Float, default=0.0, nullable=False)
    package_price = Column(Float, default=0.0, nullable=False)
    savings = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    popular = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())
