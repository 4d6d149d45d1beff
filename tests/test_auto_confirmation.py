from datetime import date, datetime, timedelta

import pytest

from wellvisit.models import Appointment
from wellvisit.models_notifications import Notification
from wellvisit.services.auto_confirmation import (
    AUTO_CONFIRM_NOTE,
    check_pending_appointments,
    send_upcoming_reminders,
)

NOW = datetime(2030, 6, 3, 12, 0)


@pytest.fixture
def add_appointment(db, patient, doctor):
    def _add(status="pending", created_at=NOW - timedelta(hours=3), on=date(2030, 6, 10), at="10:00"):
        appointment = Appointment(
            patient_id=patient.patient.id,
            doctor_id=doctor.doctor.id,
            appointment_date=on,
            appointment_time=at,
            status=status,
            created_at=created_at,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _add


def test_old_pending_appointment_is_confirmed(db, add_appointment, patient, staff):
    appointment = add_appointment()

    summary = check_pending_appointments(db, now=NOW)
    assert summary == {"checked": 1, "confirmed": 1, "conflicts": 0, "confirmed_ids": [appointment.id]}

    db.refresh(appointment)
    assert appointment.status == "confirmed"
    assert appointment.confirmed_at == NOW
    assert appointment.doctor_notes == AUTO_CONFIRM_NOTE

    titles = {n.title for n in db.query(Notification).filter(Notification.user_id == patient.id)}
    assert "✅ Appointment Auto-Confirmed" in titles
    assert db.query(Notification).filter(Notification.user_id == staff.id).count() == 1


def test_recent_requests_wait_for_the_doctor(db, add_appointment):
    appointment = add_appointment(created_at=NOW - timedelta(minutes=30))

    summary = check_pending_appointments(db, now=NOW)
    assert summary["checked"] == 0
    db.refresh(appointment)
    assert appointment.status == "pending"


def test_conflicting_slot_is_left_for_staff(db, add_appointment, staff):
    add_appointment(status="confirmed")
    pending = add_appointment()

    summary = check_pending_appointments(db, now=NOW)
    assert summary["conflicts"] == 1
    assert summary["confirmed_ids"] == []

    db.refresh(pending)
    assert pending.status == "pending"
    alert = db.query(Notification).filter(Notification.user_id == staff.id).one()
    assert alert.priority == "high"
    assert alert.related_appointment_id == pending.id


def test_reminders_for_tomorrow_only(db, add_appointment, patient):
    today = date(2030, 6, 9)
    add_appointment(status="confirmed", on=date(2030, 6, 10), at="09:00")
    add_appointment(status="pending", on=date(2030, 6, 10), at="11:00")
    add_appointment(status="confirmed", on=date(2030, 6, 12), at="09:00")

    assert send_upcoming_reminders(db, today=today) == {"reminded": 1}
    reminder = db.query(Notification).filter(Notification.user_id == patient.id).one()
    assert reminder.type == "reminder"
    assert "09:00" in reminder.message
