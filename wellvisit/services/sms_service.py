"""
SMS Service
Sends patient SMS notifications through Twilio and keeps an SMS log.

When Twilio credentials are not configured the message is written to the
application log instead and recorded as sent, so clinics can run without an
SMS provider.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import (
    CLINIC_LOCATION,
    CLINIC_NAME,
    SMS_ENABLED,
    TWILIO_ACCOUNT_SID,
    TWILIO_AUTH_TOKEN,
    TWILIO_FROM_NUMBER,
)
from ..models_notifications import SMSLog
from ..security_utils import mask_sensitive_data
from ..shared.validators import format_display_date, format_peso, validate_ph_phone

logger = logging.getLogger(__name__)

SMS_TYPES = (
    "appointment_confirmation",
    "appointment_reminder",
    "test_results",
    "payment_confirmation",
    "appointment_update",
)

# Reminder SMS go out this long before the appointment
REMINDER_LEAD_TIME = timedelta(hours=24)


def twilio_configured() -> bool:
    return bool(TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER)


def format_phone_number(phone: Optional[str]) -> Optional[str]:
    """Normalize a Philippine number to E.164, or None when it cannot be parsed"""
    try:
        return validate_ph_phone(phone)
    except ValueError:
        return None


# ============================================================================
# MESSAGE TEMPLATES
# ============================================================================


def build_appointment_confirmation_message(
    patient_name: str,
    service_type: str,
    doctor_name: str,
    appointment_date: date,
    appointment_time: str,
    location: Optional[str] = None,
    preparation_instructions: Optional[str] = None,
) -> str:
    message = (
        f"Hi {patient_name}! Your appointment for {service_type} with Dr. {doctor_name} "
        f"is confirmed for {format_display_date(appointment_date)} at {appointment_time}. "
        f"Location: {location or CLINIC_LOCATION}."
    )
    if preparation_instructions:
        message += f" Preparation: {preparation_instructions}"
    return message + f" - {CLINIC_NAME}"


def build_appointment_reminder_message(
    patient_name: str,
    doctor_name: str,
    appointment_date: date,
    appointment_time: str,
    location: Optional[str] = None,
) -> str:
    return (
        f"Reminder: Hi {patient_name}, you have an appointment with Dr. {doctor_name} "
        f"tomorrow, {format_display_date(appointment_date)} at {appointment_time}. "
        f"Location: {location or CLINIC_LOCATION}. Reply or call us if you need to reschedule. "
        f"- {CLINIC_NAME}"
    )


def build_test_results_message(patient_name: str, test_type: str) -> str:
    return (
        f"Hi {patient_name}, your {test_type} results are now available. "
        f"Please log in to your patient portal to view them or contact your doctor. - {CLINIC_NAME}"
    )


def build_payment_confirmation_message(
    patient_name: str, amount: float, payment_method: str, transaction_id: str
) -> str:
    return (
        f"Hi {patient_name}, we received your payment of {format_peso(amount)} via "
        f"{payment_method}. Transaction ID: {transaction_id}. Thank you! - {CLINIC_NAME}"
    )


def build_appointment_update_message(
    patient_name: str,
    update_type: str,
    doctor_name: str,
    appointment_date: date,
    appointment_time: str,
    reason: Optional[str] = None,
) -> str:
    """update_type is 'cancelled' or 'rescheduled'"""
    if update_type == "cancelled":
        message = (
            f"Hi {patient_name}, your appointment with Dr. {doctor_name} on "
            f"{format_display_date(appointment_date)} at {appointment_time} has been cancelled."
        )
        if reason:
            message += f" Reason: {reason}."
        return message + f" Please contact us to book a new schedule. - {CLINIC_NAME}"

    return (
        f"Hi {patient_name}, your appointment with Dr. {doctor_name} has been rescheduled to "
        f"{format_display_date(appointment_date)} at {appointment_time}. - {CLINIC_NAME}"
    )


# ============================================================================
# DELIVERY
# ============================================================================


async def deliver_sms(db: Session, sms_log: SMSLog) -> tuple[bool, Optional[str]]:
    """
    Send a logged SMS and record the outcome on the log row

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not twilio_configured():
        logger.info(
            f"📱 SMS (no provider configured) to {mask_sensitive_data(sms_log.recipient)}: {sms_log.message}"
        )
        sms_log.status = "sent"
        sms_log.sent_at = datetime.utcnow()
        db.commit()
        return True, None

    try:
        logger.info(f"🚀 Sending {sms_log.type} SMS to Twilio API for {mask_sensitive_data(sms_log.recipient)}")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"https://api.twilio.com/2010-04-01/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data={"To": sms_log.recipient, "From": TWILIO_FROM_NUMBER, "Body": sms_log.message},
                timeout=10.0,
            )

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            sms_log.status = "sent"
            sms_log.sent_at = datetime.utcnow()
            sms_log.provider_message_sid = response.json().get("sid")
            db.commit()
            logger.info(f"✅ SMS sent successfully: {sms_log.type} (SID: {sms_log.provider_message_sid})")
            return True, None

        error_data = response.json()
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        sms_log.status = "failed"
        sms_log.error_message = f"[{error_code}] {error_message}" if error_code else error_message
        db.commit()
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        return False, error_message

    except httpx.HTTPError as e:
        logger.error(f"Twilio API error: {str(e)}")
        sms_log.status = "failed"
        sms_log.error_message = str(e)
        db.commit()
        return False, str(e)


async def send_sms(
    db: Session,
    to_phone: Optional[str],
    message: str,
    sms_type: str,
    patient_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
) -> tuple[bool, Optional[str]]:
    """
    Log and send an SMS immediately

    Args:
        db: Database session
        to_phone: Recipient phone number (any Philippine format)
        message: SMS message content
        sms_type: One of SMS_TYPES
        patient_id: Optional patient the message concerns
        appointment_id: Optional related appointment

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not SMS_ENABLED:
        logger.debug(f"SMS disabled, skipping {sms_type}")
        return False, "SMS disabled"

    if not to_phone:
        logger.debug(f"No phone number provided for {sms_type} SMS")
        return False, "No phone number provided"

    formatted_phone = format_phone_number(to_phone)
    if not formatted_phone:
        logger.warning(f"⚠️ Invalid phone number for {sms_type} SMS: {mask_sensitive_data(to_phone)}")
        return False, "Invalid phone number format"

    sms_log = SMSLog(
        patient_id=patient_id,
        appointment_id=appointment_id,
        recipient=formatted_phone,
        message=message,
        type=sms_type,
        status="pending",
    )
    db.add(sms_log)
    db.commit()

    return await deliver_sms(db, sms_log)


async def enqueue_sms_job(sms_log_id: int, send_at: datetime) -> Optional[str]:
    """Queue a deferred send on the background worker, returns the job id"""
    from arq import create_pool

    from ..worker import get_redis_settings

    pool = await create_pool(get_redis_settings())
    try:
        job = await pool.enqueue_job("send_scheduled_sms_task", sms_log_id, _defer_until=send_at)
        return job.job_id if job else None
    finally:
        await pool.close()


async def schedule_sms(
    db: Session,
    to_phone: Optional[str],
    message: str,
    sms_type: str,
    send_at: datetime,
    patient_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
) -> Optional[SMSLog]:
    """
    Persist an SMS for later delivery and hand it to the background worker.

    Returns the SMS log row, or None when the recipient has no usable number.
    """
    formatted_phone = format_phone_number(to_phone)
    if not formatted_phone:
        logger.debug(f"⚠️ Not scheduling {sms_type} SMS - no valid phone number")
        return None

    sms_log = SMSLog(
        patient_id=patient_id,
        appointment_id=appointment_id,
        recipient=formatted_phone,
        message=message,
        type=sms_type,
        status="scheduled",
        scheduled_for=send_at,
    )
    db.add(sms_log)
    db.commit()
    db.refresh(sms_log)

    try:
        job_id = await enqueue_sms_job(sms_log.id, send_at)
        logger.info(f"📋 SMS {sms_log.id} scheduled for {send_at.isoformat()} (job {job_id})")
    except Exception as e:
        logger.error(f"❌ Failed to queue scheduled SMS {sms_log.id}: {e}")
        sms_log.status = "failed"
        sms_log.error_message = f"Could not queue SMS: {e}"
        db.commit()

    return sms_log


def get_sms_history(db: Session, patient_id: int) -> list[SMSLog]:
    return (
        db.query(SMSLog)
        .filter(SMSLog.patient_id == patient_id)
        .order_by(SMSLog.created_at.desc(), SMSLog.id.desc())
        .all()
    )


def get_pending_sms(db: Session) -> list[SMSLog]:
    """SMS still waiting to be delivered, soonest first"""
    return (
        db.query(SMSLog)
        .filter(SMSLog.status.in_(["pending", "scheduled"]))
        .order_by(SMSLog.scheduled_for.asc(), SMSLog.id.asc())
        .all()
    )


# ============================================================================
# APPOINTMENT SMS
# ============================================================================


async def send_appointment_confirmation_sms(db: Session, appointment) -> tuple[bool, Optional[str]]:
    patient_user = appointment.patient.user
    return await send_sms(
        db,
        patient_user.phone,
        build_appointment_confirmation_message(
            patient_user.name,
            appointment.service_type or "Consultation",
            appointment.doctor.user.name,
            appointment.appointment_date,
            appointment.appointment_time,
        ),
        "appointment_confirmation",
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
    )


async def send_appointment_update_sms(
    db: Session, appointment, update_type: str, reason: Optional[str] = None
) -> tuple[bool, Optional[str]]:
    patient_user = appointment.patient.user
    return await send_sms(
        db,
        patient_user.phone,
        build_appointment_update_message(
            patient_user.name,
            update_type,
            appointment.doctor.user.name,
            appointment.appointment_date,
            appointment.appointment_time,
            reason,
        ),
        "appointment_update",
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
    )


async def send_appointment_reminder_sms(db: Session, appointment) -> tuple[bool, Optional[str]]:
    patient_user = appointment.patient.user
    return await send_sms(
        db,
        patient_user.phone,
        build_appointment_reminder_message(
            patient_user.name,
            appointment.doctor.user.name,
            appointment.appointment_date,
            appointment.appointment_time,
        ),
        "appointment_reminder",
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
    )


def reminder_send_time(appointment) -> datetime:
    """Clinic-local time the reminder for this appointment should go out"""
    starts_at = datetime.combine(
        appointment.appointment_date,
        datetime.strptime(appointment.appointment_time, "%H:%M").time(),
    )
    return starts_at - REMINDER_LEAD_TIME


def cancel_scheduled_reminders(
    db: Session, appointment_id: int, reason: str = "Appointment was rescheduled"
) -> int:
    """Cancel reminder SMS still waiting to go out for an appointment"""
    cancelled = (
        db.query(SMSLog)
        .filter(
            SMSLog.appointment_id == appointment_id,
            SMSLog.type == "appointment_reminder",
            SMSLog.status == "scheduled",
        )
        .update({"status": "cancelled", "error_message": reason}, synchronize_session="fetch")
    )
    db.commit()
    if cancelled:
        logger.info(f"🚫 Cancelled {cancelled} scheduled reminder SMS for appointment {appointment_id}")
    return cancelled


async def schedule_appointment_reminder_sms(
    db: Session, appointment, now: Optional[datetime] = None
) -> Optional[SMSLog]:
    """Schedule the 24 hour reminder for a confirmed appointment, if it is still ahead"""
    # Appointment slots are clinic wall-clock times
    now = now or datetime.now()
    send_at = reminder_send_time(appointment)
    if send_at <= now:
        logger.debug(f"Appointment {appointment.id} is less than 24h away, no reminder scheduled")
        return None

    patient_user = appointment.patient.user
    return await schedule_sms(
        db,
        patient_user.phone,
        build_appointment_reminder_message(
            patient_user.name,
            appointment.doctor.user.name,
            appointment.appointment_date,
            appointment.appointment_time,
        ),
        "appointment_reminder",
        send_at,
        patient_id=appointment.patient_id,
        appointment_id=appointment.id,
    )


async def send_test_results_sms(db: Session, patient, test_type: str) -> tuple[bool, Optional[str]]:
    return await send_sms(
        db,
        patient.user.phone,
        build_test_results_message(patient.user.name, test_type),
        "test_results",
        patient_id=patient.id,
    )


async def send_payment_confirmation_sms(db: Session, payment) -> tuple[bool, Optional[str]]:
    patient_user = payment.patient.user
    return await send_sms(
        db,
        patient_user.phone,
        build_payment_confirmation_message(
            patient_user.name,
            payment.amount,
            payment.payment_method or payment.provider,
            payment.transaction_ref or payment.public_id,
        ),
        "payment_confirmation",
        patient_id=payment.patient_id,
        appointment_id=payment.appointment_id,
    )
