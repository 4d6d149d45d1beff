"""
Automated appointment confirmation and reminders
Pending appointments that nobody acted on are confirmed once they are old
enough, unless another confirmed appointment already holds the slot.
Should be run as a scheduled job (see worker.py)
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import AUTO_CONFIRM_DELAY_HOURS
from ..models import Appointment, AppointmentStatus
from ..realtime import publish_appointment_change
from ..shared.validators import format_display_date
from .notification_service import create_appointment_notification, create_notification, notify_staff

logger = logging.getLogger(__name__)

AUTO_CONFIRM_NOTE = "Auto-confirmed by system after 2 hours (no conflicts detected)"
STAFF_SUCCESS_NOTIFY_LIMIT = 3
STAFF_CONFLICT_NOTIFY_LIMIT = 5


def find_conflict(db: Session, appointment: Appointment) -> Optional[Appointment]:
    """Another confirmed appointment holding the same doctor, date and time"""
    return (
        db.query(Appointment)
        .filter(
            Appointment.doctor_id == appointment.doctor_id,
            Appointment.appointment_date == appointment.appointment_date,
            Appointment.appointment_time == appointment.appointment_time,
            Appointment.status == AppointmentStatus.CONFIRMED.value,
            Appointment.id != appointment.id,
        )
        .first()
    )


def _notify_auto_confirmed(db: Session, appointment: Appointment) -> None:
    patient_name = appointment.patient.user.name
    doctor_name = appointment.doctor.user.name
    when = f"{appointment.appointment_date.isoformat()} at {appointment.appointment_time}"

    create_notification(
        db,
        user_id=appointment.patient.user_id,
        title="✅ Appointment Auto-Confirmed",
        message=(
            f"Good news! Your {appointment.service_type or 'consultation'} appointment with "
            f"Dr. {doctor_name} on {when} has been automatically confirmed. "
            f"Please arrive 15 minutes early."
        ),
        notification_type="appointment",
        priority="high",
        related_appointment_id=appointment.id,
    )
    create_notification(
        db,
        user_id=appointment.doctor.user_id,
        title="🤖 Appointment Auto-Confirmed",
        message=(
            f"System has automatically confirmed your appointment with {patient_name} on {when}. "
            f"No conflicts detected."
        ),
        notification_type="appointment",
        priority="medium",
        related_appointment_id=appointment.id,
    )
    notify_staff(
        db,
        title="🤖 Auto-Confirmation Completed",
        message=(
            f"System auto-confirmed appointment: {patient_name} → Dr. {doctor_name} on "
            f"{appointment.appointment_date.isoformat()}. No conflicts detected."
        ),
        priority="low",
        related_appointment_id=appointment.id,
        limit=STAFF_SUCCESS_NOTIFY_LIMIT,
    )


def _notify_conflict(db: Session, appointment: Appointment) -> None:
    notify_staff(
        db,
        title="⚠️ Auto-Confirmation Blocked - Conflict Detected",
        message=(
            f"Cannot auto-confirm appointment for {appointment.patient.user.name} with "
            f"Dr. {appointment.doctor.user.name} on {appointment.appointment_date.isoformat()}. "
            f"Manual review required due to scheduling conflicts."
        ),
        priority="high",
        related_appointment_id=appointment.id,
        limit=STAFF_CONFLICT_NOTIFY_LIMIT,
    )


def check_pending_appointments(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Confirm pending appointments older than AUTO_CONFIRM_DELAY_HOURS

    Returns:
        dict: Summary of what was checked, confirmed and blocked
    """
    # created_at comes from the database clock, which runs on clinic time
    now = now or datetime.now()
    cutoff = now - timedelta(hours=AUTO_CONFIRM_DELAY_HOURS)
    summary = {"checked": 0, "confirmed": 0, "conflicts": 0, "confirmed_ids": []}

    try:
        pending = (
            db.query(Appointment)
            .filter(
                Appointment.status == AppointmentStatus.PENDING.value,
                Appointment.created_at <= cutoff,
            )
            .order_by(Appointment.created_at.asc(), Appointment.id.asc())
            .all()
        )

        for appointment in pending:
            summary["checked"] += 1

            if find_conflict(db, appointment):
                summary["conflicts"] += 1
                logger.warning(f"⚠️ Appointment {appointment.id} not auto-confirmed: slot conflict")
                _notify_conflict(db, appointment)
                continue

            appointment.status = AppointmentStatus.CONFIRMED.value
            appointment.confirmed_at = now
            appointment.doctor_notes = AUTO_CONFIRM_NOTE
            db.commit()
            db.refresh(appointment)

            summary["confirmed"] += 1
            summary["confirmed_ids"].append(appointment.id)
            logger.info(f"✅ Appointment {appointment.id} auto-confirmed: pending → confirmed")

            publish_appointment_change(appointment)
            _notify_auto_confirmed(db, appointment)

        if summary["checked"]:
            logger.info(
                f"📊 Auto-confirmation complete: {summary['confirmed']} confirmed, "
                f"{summary['conflicts']} conflicts out of {summary['checked']}"
            )
        return summary

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error during auto-confirmation: {str(e)}")
        raise


def send_upcoming_reminders(db: Session, today: Optional[date] = None) -> dict:
    """
    In-app reminders for confirmed appointments taking place tomorrow.
    The reminder SMS is scheduled separately when the appointment is confirmed.
    """
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    summary = {"reminded": 0}

    appointments = (
        db.query(Appointment)
        .filter(
            Appointment.appointment_date == tomorrow,
            Appointment.status == AppointmentStatus.CONFIRMED.value,
        )
        .order_by(Appointment.appointment_time.asc())
        .all()
    )

    for appointment in appointments:
        create_appointment_notification(
            db,
            appointment.patient.user_id,
            appointment.id,
            "reminder",
            doctor_name=appointment.doctor.user.name,
            patient_name=appointment.patient.user.name,
            date=format_display_date(appointment.appointment_date),
            time=appointment.appointment_time,
        )
        summary["reminded"] += 1

    logger.info(f"⏰ Sent {summary['reminded']} reminders for {tomorrow.isoformat()}")
    return summary
