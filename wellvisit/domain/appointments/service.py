"""Appointment service - Booking, status workflow and rescheduling"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import (
    ROLE_DOCTOR,
    ROLE_PATIENT,
    Appointment,
    AppointmentStatus,
    Doctor,
    Patient,
    Service,
    User,
)
from ...realtime import ChangeType, publish_appointment_change
from ...services.availability import (
    get_doctor_availability,
    get_next_available_slot,
    get_service_availability,
    is_slot_taken,
)
from ...services.notification_service import (
    create_appointment_notification,
    create_notification,
    send_appointment_cancelled_notification,
    send_appointment_confirmed_notification,
    send_appointment_reminder_notification,
    send_appointment_rescheduled_notification,
)
from ...services.sms_service import cancel_scheduled_reminders, schedule_appointment_reminder_sms
from ...shared.validators import format_display_date
from .repository import AppointmentRepository
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    FollowUpCreate,
    RescheduleDecision,
    RescheduleRequest,
    StaffReschedule,
    StaffStatusUpdate,
    StatusUpdate,
)

logger = logging.getLogger(__name__)

PENDING = AppointmentStatus.PENDING.value
CONFIRMED = AppointmentStatus.CONFIRMED.value
CANCELLED = AppointmentStatus.CANCELLED.value
COMPLETED = AppointmentStatus.COMPLETED.value
PENDING_RESCHEDULE = AppointmentStatus.PENDING_RESCHEDULE.value

# Manual status changes; cancelled and completed are terminal
ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {COMPLETED, CANCELLED, PENDING_RESCHEDULE, PENDING},
    PENDING_RESCHEDULE: {CONFIRMED, CANCELLED},
    CANCELLED: set(),
    COMPLETED: set(),
}

FOLLOW_UP_TIME = "09:00"
DEFAULT_DENY_NOTE = "Please contact office to reschedule"
DEFAULT_APPROVE_NOTE = "Reschedule approved by doctor"


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    if appointment.patient is not None and appointment.patient.user is not None:
        response.patient_name = appointment.patient.user.name
    if appointment.doctor is not None and appointment.doctor.user is not None:
        response.doctor_name = appointment.doctor.user.name
        response.doctor_specialty = appointment.doctor.specialty
    return response


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _patient_profile(self, user: User) -> Patient:
        if user.role != ROLE_PATIENT or user.patient is None:
            raise HTTPException(status_code=403, detail="Only patients can perform this action")
        return user.patient

    def _doctor_profile(self, user: User) -> Doctor:
        if user.role != ROLE_DOCTOR or user.doctor is None:
            raise HTTPException(status_code=403, detail="Only doctors can perform this action")
        return user.doctor

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def _get_for_doctor(self, user: User, appointment_id: int) -> Appointment:
        doctor = self._doctor_profile(user)
        appointment = self._get_or_404(appointment_id)
        if appointment.doctor_id != doctor.id:
            raise HTTPException(status_code=403, detail="This appointment belongs to another doctor")
        return appointment

    def _get_for_patient(self, user: User, appointment_id: int) -> Appointment:
        patient = self._patient_profile(user)
        appointment = self._get_or_404(appointment_id)
        if appointment.patient_id != patient.id:
            raise HTTPException(status_code=403, detail="This appointment belongs to another patient")
        return appointment

    def _check_transition(self, appointment: Appointment, new_status: str) -> None:
        if not can_transition(appointment.status, new_status):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change appointment from {appointment.status} to {new_status}",
            )

    def get_appointment(self, user: User, appointment_id: int) -> Appointment:
        """Fetch an appointment the user is allowed to see"""
        appointment = self._get_or_404(appointment_id)
        if is_staff(user):
            return appointment
        if user.role == ROLE_PATIENT and user.patient and appointment.patient_id == user.patient.id:
            return appointment
        if user.role == ROLE_DOCTOR and user.doctor and appointment.doctor_id == user.doctor.id:
            return appointment
        raise HTTPException(status_code=403, detail="You do not have access to this appointment")

    def list_for_patient(self, user: User) -> list[Appointment]:
        return self.repo.list_for_patient(self.db, self._patient_profile(user).id)

    def list_for_doctor(self, user: User, status: Optional[str] = None) -> list[Appointment]:
        return self.repo.list_for_doctor(self.db, self._doctor_profile(user).id, status)

    def list_all(self, **filters) -> list[Appointment]:
        return self.repo.list_all(self.db, **filters)

    def todays_appointments(self, user: User, today: Optional[date] = None) -> list[Appointment]:
        return self.repo.todays_for_doctor(self.db, self._doctor_profile(user).id, today or date.today())

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book(self, user: User, data: AppointmentCreate, today: Optional[date] = None) -> Appointment:
        """Create a pending appointment for the signed in patient"""
        patient = self._patient_profile(user)
        today = today or date.today()

        doctor = self.repo.get_doctor(self.db, data.doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        if not doctor.is_available:
            raise HTTPException(status_code=400, detail="This doctor is not accepting appointments")

        if data.appointment_date < today:
            raise HTTPException(status_code=400, detail="Appointments cannot be booked in the past")

        if is_slot_taken(self.db, doctor.id, data.appointment_date, data.appointment_time):
            logger.warning(
                f"⚠️ Slot conflict for doctor {doctor.id} on {data.appointment_date} {data.appointment_time}"
            )
            raise HTTPException(status_code=409, detail="This time slot is already booked")

        fee = doctor.consultation_fee or 0.0
        if data.consultation_type == "video" and doctor.video_consultation_fee is not None:
            fee = doctor.video_consultation_fee

        appointment = self.repo.create(
            self.db,
            patient_id=patient.id,
            doctor_id=doctor.id,
            service_type=data.service_type,
            reason=data.reason,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            consultation_type=data.consultation_type,
            status=PENDING,
            fee=fee,
        )
        logger.info(f"✅ Appointment {appointment.id} booked by patient {patient.id} with doctor {doctor.id}")

        publish_appointment_change(appointment, ChangeType.INSERT)

        display_date = format_display_date(appointment.appointment_date)
        create_appointment_notification(
            self.db,
            user.id,
            appointment.id,
            "created",
            doctor_name=doctor.user.name,
            patient_name=user.name,
            date=display_date,
            time=appointment.appointment_time,
        )
        create_notification(
            self.db,
            user_id=doctor.user_id,
            title="New Appointment Request",
            message=f"{user.name} requested an appointment on {display_date} at {appointment.appointment_time}.",
            notification_type="appointment",
            priority="medium",
            related_appointment_id=appointment.id,
            meta={"action_url": f"/appointments/{appointment.id}", "action_text": "Review Request"},
        )
        return appointment

    # ------------------------------------------------------------------
    # Doctor workflow
    # ------------------------------------------------------------------

    async def update_status(self, user: User, appointment_id: int, data: StatusUpdate) -> Appointment:
        """Doctor accepts (confirmed) or rejects (cancelled) an appointment"""
        appointment = self._get_for_doctor(user, appointment_id)

        if data.status not in (CONFIRMED, CANCELLED):
            raise HTTPException(status_code=400, detail="Status must be confirmed or cancelled")
        self._check_transition(appointment, data.status)

        if data.status == CONFIRMED:
            updates = {"status": CONFIRMED, "confirmed_at": datetime.utcnow()}
            if data.notes:
                updates["doctor_notes"] = data.notes
            if data.meeting_link:
                updates["meeting_link"] = data.meeting_link
            if data.meeting_code:
                updates["meeting_code"] = data.meeting_code
            appointment = self.repo.update(self.db, appointment, **updates)
            logger.info(f"✅ Appointment {appointment.id} confirmed by doctor {appointment.doctor_id}")

            publish_appointment_change(appointment)
            await send_appointment_confirmed_notification(self.db, appointment)
            cancel_scheduled_reminders(self.db, appointment.id)
            await schedule_appointment_reminder_sms(self.db, appointment)
        else:
            appointment = self.repo.update(
                self.db, appointment, status=CANCELLED, cancellation_reason=data.notes
            )
            logger.info(f"🚫 Appointment {appointment.id} rejected by doctor {appointment.doctor_id}")

            publish_appointment_change(appointment)
            await send_appointment_cancelled_notification(self.db, appointment, reason=data.notes)

        return appointment

    def complete(self, user: User, appointment_id: int, consultation_notes: Optional[str]) -> Appointment:
        appointment = self._get_for_doctor(user, appointment_id)
        self._check_transition(appointment, COMPLETED)

        updates = {"status": COMPLETED, "completed_at": datetime.utcnow()}
        if consultation_notes:
            updates["doctor_notes"] = consultation_notes
        appointment = self.repo.update(self.db, appointment, **updates)
        logger.info(f"✅ Appointment {appointment.id} completed")

        publish_appointment_change(appointment)
        create_appointment_notification(
            self.db,
            appointment.patient.user_id,
            appointment.id,
            "completed",
            doctor_name=appointment.doctor.user.name,
            patient_name=appointment.patient.user.name,
            date=format_display_date(appointment.appointment_date),
            time=appointment.appointment_time,
        )
        return appointment

    async def confirm_reschedule(self, user: User, appointment_id: int, data: RescheduleDecision) -> Appointment:
        """
        Doctor answers a patient's reschedule request.

        Approving keeps the requested slot. Denying moves the appointment back
        to its original date and time. Either way the appointment ends up
        confirmed and the reschedule tracking fields are cleared. The 24 hour
        reminder is scheduled again for the slot it ends up in.
        """
        appointment = self._get_for_doctor(user, appointment_id)
        if appointment.status != PENDING_RESCHEDULE:
            raise HTTPException(status_code=400, detail="This appointment has no pending reschedule request")

        updates = {
            "status": CONFIRMED,
            "original_date": None,
            "original_time": None,
            "reschedule_requested_by": None,
            "reschedule_reason": None,
        }
        if data.approved:
            updates["notes"] = data.doctor_notes or DEFAULT_APPROVE_NOTE
        else:
            if appointment.original_date and appointment.original_time:
                updates["appointment_date"] = appointment.original_date
                updates["appointment_time"] = appointment.original_time
            updates["notes"] = f"Reschedule denied: {data.doctor_notes or DEFAULT_DENY_NOTE}"

        appointment = self.repo.update(self.db, appointment, **updates)
        logger.info(
            f"📅 Reschedule of appointment {appointment.id} {'approved' if data.approved else 'denied'}"
        )

        publish_appointment_change(appointment)
        display_date = format_display_date(appointment.appointment_date)
        create_notification(
            self.db,
            user_id=appointment.patient.user_id,
            title="Reschedule Approved" if data.approved else "Reschedule Declined",
            message=(
                f"Your appointment with Dr. {appointment.doctor.user.name} is confirmed for "
                f"{display_date} at {appointment.appointment_time}."
            ),
            notification_type="appointment",
            priority="high",
            related_appointment_id=appointment.id,
            meta={"action_url": f"/appointments/{appointment.id}", "action_text": "View Details"},
        )
        cancel_scheduled_reminders(self.db, appointment.id)
        await schedule_appointment_reminder_sms(self.db, appointment)
        return appointment

    def schedule_follow_up(self, user: User, data: FollowUpCreate, today: Optional[date] = None) -> Appointment:
        """Book a free confirmed in-person follow-up at 09:00 on the given day"""
        doctor = self._doctor_profile(user)
        patient = self.repo.get_patient(self.db, data.patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        if data.follow_up_date < (today or date.today()):
            raise HTTPException(status_code=400, detail="Follow-up date cannot be in the past")
        if is_slot_taken(self.db, doctor.id, data.follow_up_date, FOLLOW_UP_TIME):
            raise HTTPException(status_code=409, detail="This time slot is already booked")

        appointment = self.repo.create(
            self.db,
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=data.follow_up_date,
            appointment_time=FOLLOW_UP_TIME,
            consultation_type="in-person",
            service_type="Follow-up Consultation",
            status=CONFIRMED,
            confirmed_at=datetime.utcnow(),
            fee=0.0,
            is_follow_up=True,
            notes=f"Follow-up appointment: {data.notes or ''}".strip(),
        )
        logger.info(f"✅ Follow-up {appointment.id} scheduled for patient {patient.id}")

        publish_appointment_change(appointment, ChangeType.INSERT)
        create_appointment_notification(
            self.db,
            patient.user_id,
            appointment.id,
            "confirmed",
            doctor_name=user.name,
            patient_name=patient.user.name,
            date=format_display_date(appointment.appointment_date),
            time=appointment.appointment_time,
        )
        return appointment

    # ------------------------------------------------------------------
    # Patient workflow
    # ------------------------------------------------------------------

    async def cancel(self, user: User, appointment_id: int, reason: str) -> Appointment:
        appointment = self._get_for_patient(user, appointment_id)
        self._check_transition(appointment, CANCELLED)

        appointment = self.repo.update(
            self.db,
            appointment,
            status=CANCELLED,
            cancellation_reason=reason,
            notes=f"Cancelled by patient: {reason}",
        )
        logger.info(f"🚫 Appointment {appointment.id} cancelled by patient {appointment.patient_id}")

        publish_appointment_change(appointment)
        await send_appointment_cancelled_notification(self.db, appointment, reason=reason, notify_doctor=True)
        return appointment

    def request_reschedule(
        self, user: User, appointment_id: int, data: RescheduleRequest, today: Optional[date] = None
    ) -> Appointment:
        """Move a confirmed appointment to a new slot pending the doctor's approval"""
        appointment = self._get_for_patient(user, appointment_id)
        self._check_transition(appointment, PENDING_RESCHEDULE)

        if data.new_date < (today or date.today()):
            raise HTTPException(status_code=400, detail="Appointments cannot be moved into the past")
        if is_slot_taken(
            self.db, appointment.doctor_id, data.new_date, data.new_time, exclude_appointment_id=appointment.id
        ):
            raise HTTPException(status_code=409, detail="This time slot is already booked")

        appointment = self.repo.update(
            self.db,
            appointment,
            original_date=appointment.appointment_date,
            original_time=appointment.appointment_time,
            appointment_date=data.new_date,
            appointment_time=data.new_time,
            status=PENDING_RESCHEDULE,
            reschedule_requested_by=ROLE_PATIENT,
            reschedule_reason=data.reason or "Patient requested reschedule",
        )
        logger.info(f"📅 Reschedule requested for appointment {appointment.id}")
        cancel_scheduled_reminders(self.db, appointment.id)

        publish_appointment_change(appointment)
        create_notification(
            self.db,
            user_id=appointment.doctor.user_id,
            title="Reschedule Request",
            message=(
                f"{user.name} asked to move their appointment to "
                f"{format_display_date(data.new_date)} at {data.new_time}."
            ),
            notification_type="appointment",
            priority="high",
            related_appointment_id=appointment.id,
            meta={"action_url": f"/appointments/{appointment.id}", "action_text": "Review Request"},
        )
        return appointment

    # ------------------------------------------------------------------
    # Staff workflow
    # ------------------------------------------------------------------

    async def staff_reschedule(self, appointment_id: int, data: StaffReschedule) -> Appointment:
        """Move an appointment and send it back to the doctor for confirmation"""
        appointment = self._get_or_404(appointment_id)
        if appointment.status in (CANCELLED, COMPLETED):
            raise HTTPException(status_code=400, detail=f"Cannot reschedule a {appointment.status} appointment")
        if is_slot_taken(
            self.db,
            appointment.doctor_id,
            data.appointment_date,
            data.appointment_time,
            exclude_appointment_id=appointment.id,
        ):
            raise HTTPException(status_code=409, detail="This time slot is already booked")

        updates = {
            "appointment_date": data.appointment_date,
            "appointment_time": data.appointment_time,
            "status": PENDING,
        }
        if data.notes:
            updates["notes"] = data.notes
        appointment = self.repo.update(self.db, appointment, **updates)
        logger.info(f"📅 Staff moved appointment {appointment.id} to {data.appointment_date} {data.appointment_time}")
        cancel_scheduled_reminders(self.db, appointment.id)

        publish_appointment_change(appointment)
        await send_appointment_rescheduled_notification(self.db, appointment)
        return appointment

    async def staff_update_status(self, appointment_id: int, data: StaffStatusUpdate) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        self._check_transition(appointment, data.status)

        updates = {"status": data.status}
        if data.notes:
            updates["notes"] = data.notes
        if data.status == CONFIRMED:
            updates["confirmed_at"] = datetime.utcnow()
        elif data.status == COMPLETED:
            updates["completed_at"] = datetime.utcnow()
        elif data.status == CANCELLED:
            updates["cancellation_reason"] = data.notes
        appointment = self.repo.update(self.db, appointment, **updates)
        logger.info(f"✅ Staff set appointment {appointment.id} to {data.status}")

        publish_appointment_change(appointment)
        if data.status == CONFIRMED:
            await send_appointment_confirmed_notification(self.db, appointment)
            cancel_scheduled_reminders(self.db, appointment.id)
            await schedule_appointment_reminder_sms(self.db, appointment)
        elif data.status == CANCELLED:
            await send_appointment_cancelled_notification(
                self.db, appointment, reason=data.notes, notify_doctor=True
            )
        return appointment

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def doctor_availability(self, doctor_id: int, on_date: date) -> dict:
        doctor = self.repo.get_doctor(self.db, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return get_doctor_availability(self.db, doctor, on_date)

    def next_available_slot(self, doctor_id: Optional[int] = None) -> dict:
        slot = get_next_available_slot(self.db, doctor_id)
        if slot is None:
            raise HTTPException(status_code=404, detail="No doctors are currently available")
        return slot

    def service_availability(self, service_id: int) -> dict:
        service = self.db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return get_service_availability(self.db, service)

    async def send_reminder(self, user: User, appointment_id: int) -> dict:
        """Immediate reminder to the patient, in-app and by SMS"""
        appointment = self.get_appointment(user, appointment_id)
        if user.role == ROLE_PATIENT:
            raise HTTPException(status_code=403, detail="Patients cannot send reminders")
        if appointment.status not in (PENDING, CONFIRMED):
            raise HTTPException(status_code=400, detail="Reminders are only sent for upcoming appointments")

        result = await send_appointment_reminder_notification(self.db, appointment)
        logger.info(f"⏰ Reminder sent for appointment {appointment.id}")
        return {"message": "Reminder sent", "appointment_id": appointment.id, **result}
