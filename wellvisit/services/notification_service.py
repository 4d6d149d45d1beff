"""
Unified Notification Service
Creates in-app notifications and fans workflow events out to email and SMS.
Every channel is triggered from the same event source; a failing channel is
logged and never fails the workflow that raised the event.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ROLE_ADMIN, ROLE_STAFF, Appointment, User
from ..models_notifications import Notification
from ..realtime import ChangeType, change_feed, user_channel
from ..shared.validators import format_display_date, format_peso

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("appointment", "payment", "message", "record", "system", "reminder", "video_call")
PRIORITIES = ("low", "medium", "high", "urgent")


# ============================================================================
# IN-APP NOTIFICATIONS
# ============================================================================


def create_notification(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    notification_type: str = "system",
    priority: str = "medium",
    related_appointment_id: Optional[int] = None,
    related_test_id: Optional[int] = None,
    meta: Optional[dict] = None,
) -> Notification:
    """Insert a notification and push it to the user's live channel"""
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        priority=priority,
        is_read=False,
        related_appointment_id=related_appointment_id,
        related_test_id=related_test_id,
        meta=meta,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    change_feed.publish(
        [user_channel(user_id)],
        "notifications",
        ChangeType.INSERT,
        notification.id,
        {"title": title, "type": notification_type, "priority": priority},
    )
    logger.debug(f"🔔 Notification {notification.id} created for user {user_id}: {title}")
    return notification


def create_appointment_notification(
    db: Session,
    user_id: int,
    appointment_id: int,
    event: str,
    doctor_name: Optional[str] = None,
    patient_name: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
) -> Notification:
    """Create one of the standard appointment lifecycle notifications"""
    notification_map = {
        "created": {
            "title": "New Appointment Booked",
            "message": f"Your appointment with Dr. {doctor_name} on {date} at {time} has been scheduled.",
            "priority": "medium",
            "type": "appointment",
        },
        "confirmed": {
            "title": "Appointment Confirmed",
            "message": f"Your appointment with Dr. {doctor_name} on {date} has been confirmed.",
            "priority": "high",
            "type": "appointment",
        },
        "reminder": {
            "title": "Appointment Reminder",
            "message": f"Reminder: You have an appointment with Dr. {doctor_name} tomorrow at {time}.",
            "priority": "high",
            "type": "reminder",
        },
        "cancelled": {
            "title": "Appointment Cancelled",
            "message": f"Your appointment with Dr. {doctor_name} on {date} has been cancelled.",
            "priority": "urgent",
            "type": "appointment",
        },
        "completed": {
            "title": "Appointment Completed",
            "message": f"Your appointment with Dr. {doctor_name} has been completed. Medical records are now available.",
            "priority": "medium",
            "type": "appointment",
        },
    }

    if event not in notification_map:
        raise ValueError(f"Unknown appointment notification event: {event}")

    data = notification_map[event]
    return create_notification(
        db,
        user_id=user_id,
        title=data["title"],
        message=data["message"],
        notification_type=data["type"],
        priority=data["priority"],
        related_appointment_id=appointment_id,
        meta={
            "appointment_id": appointment_id,
            "doctor_name": doctor_name,
            "patient_name": patient_name,
            "action_url": f"/appointments/{appointment_id}",
            "action_text": "View Details",
        },
    )


def create_lab_result_notification(
    db: Session, user_id: int, test_id: int, test_type: str, doctor_name: Optional[str] = None
) -> Notification:
    return create_notification(
        db,
        user_id=user_id,
        title="Lab Results Available",
        message=f"Your {test_type} results are now available for review.",
        notification_type="record",
        priority="high",
        related_test_id=test_id,
        meta={
            "result_type": test_type,
            "doctor_name": doctor_name,
            "action_url": f"/lab-results/{test_id}",
            "action_text": "View Results",
        },
    )


def create_payment_notification(
    db: Session, user_id: int, appointment_id: Optional[int], status: str, amount: float
) -> Notification:
    """status is one of success, failed, pending"""
    notification_map = {
        "success": {
            "title": "Payment Successful",
            "message": f"Your payment of {format_peso(amount)} has been processed successfully.",
            "priority": "medium",
        },
        "failed": {
            "title": "Payment Failed",
            "message": f"Your payment of {format_peso(amount)} could not be processed. Please try again.",
            "priority": "urgent",
        },
        "pending": {
            "title": "Payment Pending",
            "message": f"Your payment of {format_peso(amount)} is being processed.",
            "priority": "low",
        },
    }

    if status not in notification_map:
        raise ValueError(f"Unknown payment notification status: {status}")

    data = notification_map[status]
    return create_notification(
        db,
        user_id=user_id,
        title=data["title"],
        message=data["message"],
        notification_type="payment",
        priority=data["priority"],
        related_appointment_id=appointment_id,
        meta={
            "appointment_id": appointment_id,
            "action_url": "/payments",
            "action_text": "View Payment",
        },
    )


def create_system_notification(
    db: Session, user_id: int, title: str, message: str, priority: str = "medium"
) -> Notification:
    return create_notification(
        db, user_id=user_id, title=title, message=message, notification_type="system", priority=priority
    )


def notify_staff(
    db: Session,
    title: str,
    message: str,
    priority: str = "medium",
    notification_type: str = "system",
    related_appointment_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> int:
    """Send the same notification to active staff users, returns how many were notified"""
    query = (
        db.query(User)
        .filter(User.role.in_([ROLE_STAFF, ROLE_ADMIN]), User.is_active.is_(True))
        .order_by(User.id.asc())
    )
    if limit:
        query = query.limit(limit)

    staff_users = query.all()
    for staff_user in staff_users:
        create_notification(
            db,
            user_id=staff_user.id,
            title=title,
            message=message,
            notification_type=notification_type,
            priority=priority,
            related_appointment_id=related_appointment_id,
        )
    return len(staff_users)


# ============================================================================
# MULTI-CHANNEL DISPATCH
# ============================================================================


async def send_notification(
    db: Session,
    recipient_email: Optional[str],
    recipient_phone: Optional[str],
    recipient_name: str,
    notification_type: str,
    email_func,
    sms_func,
    email_kwargs: dict,
    sms_kwargs: dict,
) -> dict:
    """
    Unified notification sender that handles both email and SMS

    Args:
        db: Database session
        recipient_email: Recipient email address
        recipient_phone: Recipient phone number
        recipient_name: Recipient name for logging
        notification_type: Type of notification (for logging)
        email_func: Email function to call
        sms_func: SMS function to call
        email_kwargs: Kwargs for email function
        sms_kwargs: Kwargs for SMS function

    Returns:
        Dict with email_sent and sms_sent status
    """
    result = {"email_sent": False, "sms_sent": False, "email_error": None, "sms_error": None}

    # Send Email
    if recipient_email and email_func:
        try:
            logger.info(f"📧 Sending {notification_type} email to {recipient_email}")
            await email_func(**email_kwargs)
            result["email_sent"] = True
            logger.info(f"✅ {notification_type} email sent successfully to {recipient_email}")
        except Exception as e:
            result["email_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} email to {recipient_email}: {e}")
    else:
        logger.debug(f"⚠️ No email for {notification_type} notification to {recipient_name}")

    # Send SMS
    if recipient_phone and sms_func:
        try:
            logger.info(f"📱 Attempting to send {notification_type} SMS to {recipient_name}")
            success, error = await sms_func(**sms_kwargs)

            if success:
                result["sms_sent"] = True
                logger.info(f"✅ {notification_type} SMS sent successfully to {recipient_name}")
            else:
                result["sms_error"] = error
                if error and "disabled" not in error.lower():
                    logger.warning(f"⚠️ {notification_type} SMS not sent to {recipient_name}: {error}")
                else:
                    logger.debug(f"ℹ️ {notification_type} SMS skipped: {error}")
        except Exception as e:
            result["sms_error"] = str(e)
            logger.error(f"❌ Failed to send {notification_type} SMS to {recipient_name}: {e}")
    else:
        logger.debug(f"⚠️ No phone number for {notification_type} SMS to {recipient_name}")

    return result


def _appointment_details(appointment: Appointment) -> dict:
    return {
        "doctor_name": appointment.doctor.user.name,
        "patient_name": appointment.patient.user.name,
        "date": format_display_date(appointment.appointment_date),
        "time": appointment.appointment_time,
    }


async def send_appointment_confirmed_notification(db: Session, appointment: Appointment) -> dict:
    """Confirmation to the patient in-app, by email and by SMS"""
    from ..email_service import send_appointment_confirmed_email
    from .sms_service import send_appointment_confirmation_sms

    patient_user = appointment.patient.user
    create_appointment_notification(
        db, patient_user.id, appointment.id, "confirmed", **_appointment_details(appointment)
    )

    return await send_notification(
        db=db,
        recipient_email=patient_user.email,
        recipient_phone=patient_user.phone,
        recipient_name=patient_user.name,
        notification_type="appointment_confirmation",
        email_func=send_appointment_confirmed_email,
        sms_func=send_appointment_confirmation_sms,
        email_kwargs={
            "to": patient_user.email,
            "patient_name": patient_user.name,
            "doctor_name": appointment.doctor.user.name,
            "appointment_date": appointment.appointment_date,
            "appointment_time": appointment.appointment_time,
            "consultation_type": appointment.consultation_type,
            "meeting_link": appointment.meeting_link,
        },
        sms_kwargs={"db": db, "appointment": appointment},
    )


async def send_appointment_cancelled_notification(
    db: Session, appointment: Appointment, reason: Optional[str] = None, notify_doctor: bool = False
) -> dict:
    """Cancellation to the patient in-app, by email and by SMS, optionally to the doctor in-app"""
    from ..email_service import send_appointment_cancelled_email
    from .sms_service import send_appointment_update_sms

    details = _appointment_details(appointment)
    patient_user = appointment.patient.user
    create_appointment_notification(db, patient_user.id, appointment.id, "cancelled", **details)

    if notify_doctor:
        create_notification(
            db,
            user_id=appointment.doctor.user_id,
            title="Appointment Cancelled",
            message=(
                f"{patient_user.name} cancelled the appointment on {details['date']} at {details['time']}."
                + (f" Reason: {reason}" if reason else "")
            ),
            notification_type="appointment",
            priority="high",
            related_appointment_id=appointment.id,
        )

    return await send_notification(
        db=db,
        recipient_email=patient_user.email,
        recipient_phone=patient_user.phone,
        recipient_name=patient_user.name,
        notification_type="appointment_cancelled",
        email_func=send_appointment_cancelled_email,
        sms_func=send_appointment_update_sms,
        email_kwargs={
            "to": patient_user.email,
            "patient_name": patient_user.name,
            "doctor_name": appointment.doctor.user.name,
            "appointment_date": appointment.appointment_date,
            "appointment_time": appointment.appointment_time,
            "reason": reason,
        },
        sms_kwargs={"db": db, "appointment": appointment, "update_type": "cancelled", "reason": reason},
    )


async def send_appointment_rescheduled_notification(db: Session, appointment: Appointment) -> dict:
    """Tell the patient about a new date/time in-app and by SMS"""
    from .sms_service import send_appointment_update_sms

    details = _appointment_details(appointment)
    patient_user = appointment.patient.user
    create_notification(
        db,
        user_id=patient_user.id,
        title="Appointment Rescheduled",
        message=f"Your appointment with Dr. {details['doctor_name']} has been moved to {details['date']} at {details['time']}.",
        notification_type="appointment",
        priority="high",
        related_appointment_id=appointment.id,
        meta={"action_url": f"/appointments/{appointment.id}", "action_text": "View Details"},
    )

    return await send_notification(
        db=db,
        recipient_email=None,
        recipient_phone=patient_user.phone,
        recipient_name=patient_user.name,
        notification_type="appointment_rescheduled",
        email_func=None,
        sms_func=send_appointment_update_sms,
        email_kwargs={},
        sms_kwargs={"db": db, "appointment": appointment, "update_type": "rescheduled"},
    )


async def send_appointment_reminder_notification(db: Session, appointment: Appointment) -> dict:
    """Reminder to the patient in-app and by SMS"""
    from .sms_service import send_appointment_reminder_sms

    patient_user = appointment.patient.user
    create_appointment_notification(
        db, patient_user.id, appointment.id, "reminder", **_appointment_details(appointment)
    )

    return await send_notification(
        db=db,
        recipient_email=None,
        recipient_phone=patient_user.phone,
        recipient_name=patient_user.name,
        notification_type="appointment_reminder",
        email_func=None,
        sms_func=send_appointment_reminder_sms,
        email_kwargs={},
        sms_kwargs={"db": db, "appointment": appointment},
    )


async def send_payment_success_notification(db: Session, payment) -> dict:
    """Payment receipt to the patient in-app, by email and by SMS"""
    from ..email_service import send_payment_receipt_email
    from .sms_service import send_payment_confirmation_sms

    patient_user = payment.patient.user
    create_payment_notification(db, patient_user.id, payment.appointment_id, "success", payment.amount)

    return await send_notification(
        db=db,
        recipient_email=patient_user.email,
        recipient_phone=patient_user.phone,
        recipient_name=patient_user.name,
        notification_type="payment_confirmation",
        email_func=send_payment_receipt_email,
        sms_func=send_payment_confirmation_sms,
        email_kwargs={
            "to": patient_user.email,
            "patient_name": patient_user.name,
            "amount": payment.amount,
            "payment_method": payment.payment_method or payment.provider,
            "transaction_ref": payment.transaction_ref or payment.public_id,
            "description": payment.description or "Consultation",
        },
        sms_kwargs={"db": db, "payment": payment},
    )
