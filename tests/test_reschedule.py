import asyncio
from datetime import date, datetime, time, timedelta

import pytest
from conftest import auth_headers

from wellvisit.models_notifications import SMSLog
from wellvisit.worker import send_scheduled_sms_task


@pytest.fixture
def confirmed(client, book, patient, doctor):
    on_date = date.today() + timedelta(days=2)
    appointment = book(patient, doctor, on_date, at="10:00")
    response = client.patch(
        f"/appointments/{appointment['id']}/status", json={"status": "confirmed"}, headers=auth_headers(doctor)
    )
    assert response.status_code == 200
    return response.json()


def request_move(client, patient, appointment, new_date, new_time="15:00"):
    return client.post(
        f"/appointments/{appointment['id']}/reschedule",
        json={"new_date": new_date.isoformat(), "new_time": new_time, "reason": "Work trip"},
        headers=auth_headers(patient),
    )


def test_patient_request_moves_appointment_pending_doctor(client, patient, confirmed):
    new_date = date.today() + timedelta(days=5)
    response = request_move(client, patient, confirmed, new_date)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending_reschedule_confirmation"
    assert body["appointment_date"] == new_date.isoformat()
    assert body["appointment_time"] == "15:00"
    assert body["original_date"] == confirmed["appointment_date"]
    assert body["original_time"] == "10:00"
    assert body["reschedule_requested_by"] == "patient"
    assert body["reschedule_reason"] == "Work trip"


def test_only_confirmed_appointments_can_be_rescheduled(client, book, patient, doctor, tomorrow):
    pending = book(patient, doctor, tomorrow)
    response = request_move(client, patient, pending, date.today() + timedelta(days=5))
    assert response.status_code == 400


def test_reschedule_into_the_past_is_rejected(client, patient, confirmed):
    response = request_move(client, patient, confirmed, date.today() - timedelta(days=1))
    assert response.status_code == 400


def test_reschedule_into_taken_slot_is_rejected(client, book, make_user, patient, doctor, confirmed):
    new_date = date.today() + timedelta(days=5)
    book(make_user("patient"), doctor, new_date, at="15:00")

    response = request_move(client, patient, confirmed, new_date)
    assert response.status_code == 409


def test_doctor_approves_reschedule(client, patient, doctor, confirmed):
    new_date = date.today() + timedelta(days=5)
    request_move(client, patient, confirmed, new_date)

    response = client.post(
        f"/appointments/{confirmed['id']}/reschedule/decision",
        json={"approved": True},
        headers=auth_headers(doctor),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["appointment_date"] == new_date.isoformat()
    assert body["original_date"] is None
    assert body["reschedule_requested_by"] is None
    assert body["notes"] == "Reschedule approved by doctor"


def test_doctor_denies_reschedule_restores_original_slot(client, patient, doctor, confirmed):
    request_move(client, patient, confirmed, date.today() + timedelta(days=5))

    response = client.post(
        f"/appointments/{confirmed['id']}/reschedule/decision",
        json={"approved": False, "doctor_notes": "Fully booked that week"},
        headers=auth_headers(doctor),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["appointment_date"] == confirmed["appointment_date"]
    assert body["appointment_time"] == "10:00"
    assert body["notes"] == "Reschedule denied: Fully booked that week"


def test_decision_without_pending_request_is_rejected(client, doctor, confirmed):
    response = client.post(
        f"/appointments/{confirmed['id']}/reschedule/decision",
        json={"approved": True},
        headers=auth_headers(doctor),
    )
    assert response.status_code == 400


def test_staff_reschedule_sends_back_to_pending(client, staff, confirmed):
    new_date = date.today() + timedelta(days=6)
    response = client.put(
        f"/appointments/{confirmed['id']}/staff-reschedule",
        json={"appointment_date": new_date.isoformat(), "appointment_time": "13:30", "notes": "Doctor on leave"},
        headers=auth_headers(staff),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"
    assert body["appointment_date"] == new_date.isoformat()
    assert body["appointment_time"] == "13:30"


def test_staff_cannot_reschedule_cancelled_appointment(client, patient, staff, confirmed):
    client.post(
        f"/appointments/{confirmed['id']}/cancel", json={"reason": "Travel"}, headers=auth_headers(patient)
    )
    response = client.put(
        f"/appointments/{confirmed['id']}/staff-reschedule",
        json={"appointment_date": (date.today() + timedelta(days=6)).isoformat(), "appointment_time": "13:30"},
        headers=auth_headers(staff),
    )
    assert response.status_code == 400


def reminders(db, appointment):
    db.expire_all()
    return (
        db.query(SMSLog)
        .filter(SMSLog.appointment_id == appointment["id"], SMSLog.type == "appointment_reminder")
        .order_by(SMSLog.id)
        .all()
    )


def test_approved_reschedule_moves_the_reminder(client, db, queued_sms, patient, doctor, confirmed):
    old_reminder = reminders(db, confirmed)[0]
    new_date = date.today() + timedelta(days=5)

    request_move(client, patient, confirmed, new_date)
    assert reminders(db, confirmed)[0].status == "cancelled"

    client.post(
        f"/appointments/{confirmed['id']}/reschedule/decision",
        json={"approved": True},
        headers=auth_headers(doctor),
    )

    old, new = reminders(db, confirmed)
    assert old.status == "cancelled"
    assert new.status == "scheduled"
    assert new.scheduled_for == datetime.combine(new_date, time(15, 0)) - timedelta(days=1)
    assert queued_sms[-1] == (new.id, new.scheduled_for)

    stale = asyncio.run(send_scheduled_sms_task({}, old_reminder.id))
    assert stale == {"success": False, "error": "SMS already cancelled"}
    assert asyncio.run(send_scheduled_sms_task({}, new.id)) == {"success": True, "error": None}


def test_denied_reschedule_restores_the_reminder(client, db, patient, doctor, confirmed):
    request_move(client, patient, confirmed, date.today() + timedelta(days=5))
    client.post(
        f"/appointments/{confirmed['id']}/reschedule/decision",
        json={"approved": False},
        headers=auth_headers(doctor),
    )

    old, new = reminders(db, confirmed)
    assert old.status == "cancelled"
    assert new.status == "scheduled"
    assert new.scheduled_for == old.scheduled_for


def test_staff_reschedule_cancels_reminder_until_confirmed(client, db, staff, confirmed):
    new_date = date.today() + timedelta(days=6)
    client.put(
        f"/appointments/{confirmed['id']}/staff-reschedule",
        json={"appointment_date": new_date.isoformat(), "appointment_time": "13:30"},
        headers=auth_headers(staff),
    )
    assert [r.status for r in reminders(db, confirmed)] == ["cancelled"]

    client.patch(
        f"/appointments/{confirmed['id']}/staff-status", json={"status": "confirmed"}, headers=auth_headers(staff)
    )
    statuses = [r.status for r in reminders(db, confirmed)]
    assert statuses == ["cancelled", "scheduled"]
    assert reminders(db, confirmed)[-1].scheduled_for.date() == new_date - timedelta(days=1)
