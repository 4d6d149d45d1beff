import asyncio
from datetime import date, datetime, timedelta

from wellvisit.models import Appointment
from wellvisit.models_notifications import SMSLog
from wellvisit.services import sms_service
from wellvisit.worker import send_scheduled_sms_task


def test_message_builders():
    confirmation = sms_service.build_appointment_confirmation_message(
        "Maria", "General Consultation", "Jose Rizal", date(2026, 3, 9), "10:00", preparation_instructions="Fast 8h"
    )
    assert confirmation.startswith("Hi Maria! Your appointment for General Consultation with Dr. Jose Rizal")
    assert "March 9, 2026" in confirmation
    assert "Preparation: Fast 8h" in confirmation
    assert confirmation.endswith("- WellVisit Clinic")

    cancelled = sms_service.build_appointment_update_message(
        "Maria", "cancelled", "Jose Rizal", date(2026, 3, 9), "10:00", reason="Doctor on leave"
    )
    assert "has been cancelled. Reason: Doctor on leave." in cancelled

    moved = sms_service.build_appointment_update_message("Maria", "rescheduled", "Jose Rizal", date(2026, 3, 10), "14:00")
    assert "rescheduled to March 10, 2026 at 14:00" in moved

    payment = sms_service.build_payment_confirmation_message("Maria", 1025, "gcash", "pay_1")
    assert "₱1,025.00 via gcash" in payment


def test_send_sms_without_provider_is_logged_as_sent(db):
    success, error = asyncio.run(sms_service.send_sms(db, "0917 123 4567", "Hello", "appointment_update"))
    assert (success, error) == (True, None)

    log = db.query(SMSLog).one()
    assert log.recipient == "+639171234567"
    assert log.status == "sent"
    assert log.sent_at is not None


def test_send_sms_rejects_missing_or_bad_numbers(db):
    assert asyncio.run(sms_service.send_sms(db, None, "Hi", "test_results")) == (False, "No phone number provided")
    assert asyncio.run(sms_service.send_sms(db, "12345", "Hi", "test_results")) == (
        False,
        "Invalid phone number format",
    )
    assert db.query(SMSLog).count() == 0


def test_send_sms_disabled(db, monkeypatch):
    monkeypatch.setattr(sms_service, "SMS_ENABLED", False)
    assert asyncio.run(sms_service.send_sms(db, "09171234567", "Hi", "test_results")) == (False, "SMS disabled")


def test_schedule_sms_queues_job(db, queued_sms):
    send_at = datetime(2030, 1, 1, 9, 0)
    log = asyncio.run(sms_service.schedule_sms(db, "+639171234567", "Reminder", "appointment_reminder", send_at))

    assert log.status == "scheduled"
    assert log.scheduled_for == send_at
    assert queued_sms == [(log.id, send_at)]
    assert [s.id for s in sms_service.get_pending_sms(db)] == [log.id]


def test_schedule_sms_without_phone(db, queued_sms):
    assert asyncio.run(sms_service.schedule_sms(db, "", "Reminder", "appointment_reminder", datetime(2030, 1, 1))) is None
    assert queued_sms == []


def test_schedule_sms_marks_failure_when_queue_is_down(db, monkeypatch):
    async def redis_down(sms_log_id, send_at):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(sms_service, "enqueue_sms_job", redis_down)
    log = asyncio.run(
        sms_service.schedule_sms(db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 1))
    )
    assert log.status == "failed"
    assert "redis unavailable" in log.error_message


def test_reminder_not_scheduled_inside_lead_time(db, queued_sms, patient, doctor):
    appointment = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        appointment_date=date(2030, 1, 2),
        appointment_time="10:00",
        status="confirmed",
    )
    db.add(appointment)
    db.commit()

    too_late = datetime(2030, 1, 1, 11, 0)
    assert asyncio.run(sms_service.schedule_appointment_reminder_sms(db, appointment, now=too_late)) is None

    log = asyncio.run(sms_service.schedule_appointment_reminder_sms(db, appointment, now=datetime(2029, 12, 30)))
    assert log.scheduled_for == datetime(2030, 1, 1, 10, 0)
    assert log.appointment_id == appointment.id


def test_worker_delivers_scheduled_sms(db, queued_sms):
    log = asyncio.run(
        sms_service.schedule_sms(db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 1))
    )

    result = asyncio.run(send_scheduled_sms_task({"job_id": "job-1"}, log.id))
    assert result == {"success": True, "error": None}

    again = asyncio.run(send_scheduled_sms_task({}, log.id))
    assert again == {"success": False, "error": "SMS already sent"}
    assert asyncio.run(send_scheduled_sms_task({}, 999))["error"] == "SMS not found"


def test_worker_drops_reminder_for_cancelled_appointment(db, queued_sms, patient, doctor):
    appointment = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        appointment_date=date.today() + timedelta(days=5),
        appointment_time="10:00",
        status="cancelled",
    )
    db.add(appointment)
    db.commit()
    log = asyncio.run(
        sms_service.schedule_sms(
            db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 1), appointment_id=appointment.id
        )
    )

    result = asyncio.run(send_scheduled_sms_task({}, log.id))
    assert result["success"] is False
    db.refresh(log)
    assert log.status == "cancelled"


def test_worker_drops_reminder_for_moved_or_unconfirmed_appointment(db, patient, doctor):
    appointment = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        appointment_date=date(2030, 1, 5),
        appointment_time="10:00",
        status="confirmed",
    )
    db.add(appointment)
    db.commit()

    old_slot = asyncio.run(
        sms_service.schedule_sms(
            db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 1, 10, 0),
            appointment_id=appointment.id,
        )
    )
    result = asyncio.run(send_scheduled_sms_task({}, old_slot.id))
    assert result == {"success": False, "error": "Appointment was moved or is not confirmed"}

    appointment.status = "pending"
    db.commit()
    current_slot = asyncio.run(
        sms_service.schedule_sms(
            db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 4, 10, 0),
            appointment_id=appointment.id,
        )
    )
    assert asyncio.run(send_scheduled_sms_task({}, current_slot.id))["success"] is False
    db.refresh(current_slot)
    assert current_slot.status == "cancelled"


def test_reminder_lead_time_uses_clinic_clock(db, queued_sms, patient, doctor):
    starts_at = datetime.now() + timedelta(hours=20)
    appointment = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        appointment_date=starts_at.date(),
        appointment_time=starts_at.strftime("%H:%M"),
        status="confirmed",
    )
    db.add(appointment)
    db.commit()

    assert asyncio.run(sms_service.schedule_appointment_reminder_sms(db, appointment)) is None
    assert queued_sms == []


def test_cancel_scheduled_reminders_leaves_other_sms(db, patient, doctor):
    appointment = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        appointment_date=date(2030, 1, 5),
        appointment_time="10:00",
        status="confirmed",
    )
    db.add(appointment)
    db.commit()
    reminder = asyncio.run(
        sms_service.schedule_sms(
            db, "09171234567", "Reminder", "appointment_reminder", datetime(2030, 1, 4, 10, 0),
            appointment_id=appointment.id,
        )
    )
    update = asyncio.run(
        sms_service.schedule_sms(
            db, "09171234567", "See you soon", "appointment_update", datetime(2030, 1, 3, 9, 0),
            appointment_id=appointment.id,
        )
    )

    assert sms_service.cancel_scheduled_reminders(db, appointment.id) == 1
    db.refresh(reminder)
    db.refresh(update)
    assert reminder.status == "cancelled"
    assert update.status == "scheduled"
