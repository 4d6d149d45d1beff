import asyncio

import pytest
from conftest import auth_headers

from wellvisit.services.notification_service import (
    create_appointment_notification,
    create_notification,
    create_payment_notification,
    notify_staff,
    send_notification,
)


def test_list_filter_and_read_state(client, db, patient):
    create_notification(db, patient.id, "Welcome", "Thanks for joining", priority="low")
    create_payment_notification(db, patient.id, None, "failed", 1025.0)
    headers = auth_headers(patient)

    listing = client.get("/notifications", headers=headers).json()
    assert listing["total"] == 2
    assert listing["unread_count"] == 2

    payments = client.get("/notifications", params={"type": "payment"}, headers=headers).json()
    assert [n["title"] for n in payments["notifications"]] == ["Payment Failed"]
    assert payments["notifications"][0]["priority"] == "urgent"
    assert "₱1,025.00" in payments["notifications"][0]["message"]

    notification_id = payments["notifications"][0]["id"]
    read = client.patch(f"/notifications/{notification_id}/read", headers=headers)
    assert read.json()["is_read"] is True

    unread = client.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert [n["title"] for n in unread["notifications"]] == ["Welcome"]

    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 1}


def test_cannot_touch_someone_elses_notification(client, db, patient, doctor):
    notification = create_notification(db, patient.id, "Private", "Only for Maria")
    headers = auth_headers(doctor)

    assert client.patch(f"/notifications/{notification.id}/read", headers=headers).status_code == 403
    assert client.delete(f"/notifications/{notification.id}", headers=headers).status_code == 403
    assert client.delete("/notifications/999", headers=headers).status_code == 404


def test_delete_notification(client, db, patient):
    notification = create_notification(db, patient.id, "Old news", "Delete me")
    response = client.delete(f"/notifications/{notification.id}", headers=auth_headers(patient))
    assert response.status_code == 200
    assert client.get("/notifications", headers=auth_headers(patient)).json()["total"] == 0


def test_stats(client, db, patient):
    create_appointment_notification(db, patient.id, 1, "reminder", doctor_name="Jose Rizal", time="10:00")
    create_appointment_notification(db, patient.id, 1, "cancelled", doctor_name="Jose Rizal", date="May 1, 2026")

    stats = client.get("/notifications/stats", headers=auth_headers(patient)).json()
    assert stats["total"] == 2
    assert stats["unread"] == 2
    assert stats["by_type"] == {"reminder": 1, "appointment": 1}
    assert stats["by_priority"] == {"high": 1, "urgent": 1}
    assert stats["recent_activity"] == 2


def test_unknown_events_are_rejected(db, patient):
    with pytest.raises(ValueError):
        create_appointment_notification(db, patient.id, 1, "teleported")
    with pytest.raises(ValueError):
        create_payment_notification(db, patient.id, None, "refunded", 10.0)


def test_notify_staff_honours_limit(db, make_user, staff, admin):
    make_user("staff")
    assert notify_staff(db, "Walk-in", "Patient waiting at the front desk") == 3
    assert notify_staff(db, "Walk-in", "Second patient", limit=1) == 1


def test_send_notification_survives_failing_channel():
    async def broken_email(**kwargs):
        raise RuntimeError("mail server down")

    async def sms(**kwargs):
        return True, None

    result = asyncio.run(
        send_notification(
            None,
            recipient_email="maria@example.com",
            recipient_phone="+639171234567",
            recipient_name="Maria",
            notification_type="appointment_confirmed",
            email_func=broken_email,
            sms_func=sms,
            email_kwargs={},
            sms_kwargs={},
        )
    )
    assert result["email_sent"] is False
    assert result["email_error"] == "mail server down"
    assert result["sms_sent"] is True


def test_send_notification_skips_missing_contacts():
    async def never(**kwargs):
        raise AssertionError("should not be called")

    result = asyncio.run(
        send_notification(None, None, None, "Nobody", "reminder", never, never, {}, {})
    )
    assert result == {"email_sent": False, "sms_sent": False, "email_error": None, "sms_error": None}
