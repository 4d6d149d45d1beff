"""
Doctor and service availability

Doctors work in 30 minute slots. A doctor's weekly schedule defines the
working window for each weekday (09:00-17:00 when no schedule row exists) and
an optional break. A slot is booked when an active appointment holds it.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..models import (
    ACTIVE_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
    Doctor,
    DoctorSchedule,
    Service,
)
from ..shared.validators import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30
DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "17:00"
# 30 minute slots across an 8 hour day
DAILY_APPOINTMENTS_PER_DOCTOR = 16
LOOKAHEAD_DAYS = 7


@dataclass
class TimeSlot:
    """One bookable slot of a doctor's day"""

    time: str
    available: bool
    appointment_id: Optional[int] = None


def generate_time_slots(
    start_time: str,
    end_time: str,
    booked_slots: dict[str, int],
    slot_minutes: int = SLOT_MINUTES,
    break_start: Optional[str] = None,
    break_end: Optional[str] = None,
) -> list[TimeSlot]:
    """
    Build the slots in [start_time, end_time).

    Args:
        booked_slots: HH:MM -> id of the appointment holding the slot
        break_start/break_end: slots starting inside the break are skipped
    """
    slots = []
    current = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    break_window = None
    if break_start and break_end:
        break_window = (time_to_minutes(break_start), time_to_minutes(break_end))

    while current < end:
        if break_window and break_window[0] <= current < break_window[1]:
            current += slot_minutes
            continue

        time_str = minutes_to_time(current)
        appointment_id = booked_slots.get(time_str)
        slots.append(
            TimeSlot(time=time_str, available=appointment_id is None, appointment_id=appointment_id)
        )
        current += slot_minutes

    return slots


def get_booked_slots(
    db: Session, doctor_id: int, on_date: date, exclude_appointment_id: Optional[int] = None
) -> dict[str, int]:
    """Times already held by active appointments of a doctor on a date"""
    query = db.query(Appointment.appointment_time, Appointment.id).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == on_date,
        Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
    )
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return {row.appointment_time: row.id for row in query.all()}


def is_slot_taken(
    db: Session,
    doctor_id: int,
    on_date: date,
    time_str: str,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    return time_str in get_booked_slots(db, doctor_id, on_date, exclude_appointment_id)


def get_doctor_availability(db: Session, doctor: Doctor, on_date: date) -> dict:
    """Slots for a doctor on a date, with booked slots marked"""
    schedule = (
        db.query(DoctorSchedule)
        .filter(
            DoctorSchedule.doctor_id == doctor.id,
            DoctorSchedule.day_of_week == on_date.weekday(),
        )
        .first()
    )

    if schedule and not schedule.is_available:
        time_slots: list[TimeSlot] = []
    else:
        time_slots = generate_time_slots(
            schedule.start_time if schedule else DEFAULT_START_TIME,
            schedule.end_time if schedule else DEFAULT_END_TIME,
            get_booked_slots(db, doctor.id, on_date),
            break_start=schedule.break_start if schedule else None,
            break_end=schedule.break_end if schedule else None,
        )

    return {
        "doctor_id": doctor.id,
        "doctor_name": doctor.user.name,
        "date": on_date,
        "time_slots": time_slots,
    }


def get_next_available_slot(
    db: Session, doctor_id: Optional[int] = None, now: Optional[datetime] = None
) -> Optional[dict]:
    """
    First free slot over the next week, scanning day by day and doctor by doctor.

    Slots earlier than `now` on the current day are skipped. When nothing is
    free the first doctor's 09:00 slot tomorrow is suggested. Returns None when
    there are no available doctors.
    """
    now = now or datetime.now()
    query = db.query(Doctor).filter(Doctor.is_available.is_(True))
    if doctor_id:
        query = query.filter(Doctor.id == doctor_id)
    doctors = query.order_by(Doctor.id.asc()).all()

    if not doctors:
        return None

    for offset in range(LOOKAHEAD_DAYS):
        day = now.date() + timedelta(days=offset)
        for doctor in doctors:
            availability = get_doctor_availability(db, doctor, day)
            for slot in availability["time_slots"]:
                if not slot.available:
                    continue
                if day == now.date() and time_to_minutes(slot.time) <= now.hour * 60 + now.minute:
                    continue
                return {
                    "doctor_id": doctor.id,
                    "doctor_name": doctor.user.name,
                    "date": day,
                    "time": slot.time,
                }

    logger.info("⚠️ No free slot within a week, suggesting tomorrow morning")
    return {
        "doctor_id": doctors[0].id,
        "doctor_name": doctors[0].user.name,
        "date": now.date() + timedelta(days=1),
        "time": DEFAULT_START_TIME,
    }


def get_service_availability(db: Session, service: Service, today: Optional[date] = None) -> dict:
    """Capacity based status of a clinic service for today"""
    today = today or date.today()
    doctors = db.query(Doctor).filter(Doctor.is_available.is_(True)).all()

    if not service.is_available or service.status != "active" or not doctors:
        return {
            "service_id": service.id,
            "service_name": service.name,
            "status": "maintenance",
            "available_doctors": [d.id for d in doctors],
            "next_available_date": None,
            "estimated_wait_time": None,
        }

    todays_appointments = (
        db.query(Appointment)
        .filter(
            Appointment.appointment_date == today,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        .count()
    )

    max_daily_appointments = len(doctors) * DAILY_APPOINTMENTS_PER_DOCTOR
    capacity_ratio = todays_appointments / max_daily_appointments
    has_availability = todays_appointments < max_daily_appointments

    if capacity_ratio >= 1.0:
        status = "booked"
    elif capacity_ratio >= 0.8:
        status = "limited"
    else:
        status = "available"

    if not has_availability:
        estimated_wait_time = "1-3 days"
    elif capacity_ratio > 0.5:
        estimated_wait_time = "30-60 minutes"
    else:
        estimated_wait_time = "0-30 minutes"

    return {
        "service_id": service.id,
        "service_name": service.name,
        "status": status,
        "available_doctors": [d.id for d in doctors],
        "next_available_date": today if has_availability else today + timedelta(days=1),
        "estimated_wait_time": estimated_wait_time,
    }
