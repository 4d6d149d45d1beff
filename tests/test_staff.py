from datetime import datetime, timedelta

from conftest import PASSWORD, auth_headers

from wellvisit.models import MedicalRecord, Payment
from wellvisit.models_messaging import UserOnlineStatus


def test_dashboard_counts(client, db, book, patient, doctor, staff, tomorrow):
    first = book(patient, doctor, tomorrow, at="09:00")
    book(patient, doctor, tomorrow, at="09:30")
    client.patch(f"/appointments/{first['id']}/status", json={"status": "confirmed"}, headers=auth_headers(doctor))
    db.add(Payment(patient_id=patient.patient.id, appointment_id=first["id"], amount=1025.0, status="paid"))
    db.add(Payment(patient_id=patient.patient.id, amount=300.0, status="pending"))
    db.add(MedicalRecord(patient_id=patient.patient.id, doctor_id=doctor.doctor.id, diagnosis="Flu"))
    db.commit()

    response = client.get("/staff/dashboard", headers=auth_headers(staff))
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_appointments"] == 2
    assert stats["pending_appointments"] == 1
    assert stats["confirmed_appointments"] == 1
    assert stats["total_patients"] == 1
    assert stats["total_doctors"] == 1
    assert stats["total_revenue"] == 1025.0
    assert stats["paid_payments"] == 1
    assert stats["pending_payments"] == 1
    assert stats["total_medical_records"] == 1


def test_admin_shares_staff_access(client, admin):
    assert client.get("/staff/dashboard", headers=auth_headers(admin)).status_code == 200


def test_universal_search(client, book, patient, doctor, staff, tomorrow):
    book(patient, doctor, tomorrow)
    headers = auth_headers(staff)

    everything = client.get("/staff/search", params={"q": "rizal"}, headers=headers).json()
    assert [d["name"] for d in everything["doctors"]] == ["Jose Rizal"]
    assert len(everything["appointments"]) == 1
    assert everything["patients"] == []

    patients_only = client.get("/staff/search", params={"q": "maria", "type": "patients"}, headers=headers).json()
    assert [p["name"] for p in patients_only["patients"]] == ["Maria Santos"]
    assert patients_only["appointments"] == []

    assert client.get("/staff/search", params={"q": "x", "type": "invoices"}, headers=headers).status_code == 400


def test_staff_adds_and_updates_doctor(client, staff):
    headers = auth_headers(staff)
    created = client.post(
        "/staff/doctors",
        json={
            "email": "Dr.Reyes@Example.com",
            "password": "Welcome123!",
            "name": "Ana Reyes",
            "phone": "09191234567",
            "specialty": "Pediatrics",
            "consultation_fee": 700,
        },
        headers=headers,
    )
    assert created.status_code == 201
    doctor = created.json()
    assert doctor["email"] == "dr.reyes@example.com"
    assert doctor["phone"] == "+639191234567"

    duplicate = client.post(
        "/staff/doctors",
        json={"email": "dr.reyes@example.com", "password": "Welcome123!", "name": "Ana Reyes"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    updated = client.put(
        f"/staff/doctors/{doctor['id']}",
        json={"name": "Ana M. Reyes", "consultation_fee": 900, "is_available": False},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Ana M. Reyes"
    assert updated.json()["consultation_fee"] == 900.0
    assert updated.json()["is_available"] is False

    assert client.put("/staff/doctors/999", json={"bio": "x"}, headers=headers).status_code == 404

    login = client.post("/auth/login", json={"email": "dr.reyes@example.com", "password": "Welcome123!"})
    assert login.json()["user"]["role"] == "doctor"


def test_list_users_by_role(client, patient, doctor, staff):
    response = client.get("/staff/users", params={"role": "doctor"}, headers=auth_headers(staff))
    assert [u["email"] for u in response.json()] == [doctor.email]


def test_only_admin_deactivates(client, patient, staff, admin):
    assert client.post(f"/staff/users/{patient.id}/deactivate", headers=auth_headers(staff)).status_code == 403
    assert client.post(f"/staff/users/{admin.id}/deactivate", headers=auth_headers(admin)).status_code == 400
    assert client.post("/staff/users/999/deactivate", headers=auth_headers(admin)).status_code == 404

    response = client.post(f"/staff/users/{patient.id}/deactivate", headers=auth_headers(admin))
    assert response.status_code == 200

    assert client.get("/auth/me", headers=auth_headers(patient)).status_code == 401
    login = client.post("/auth/login", json={"email": patient.email, "password": PASSWORD})
    assert login.status_code == 403


def test_patient_full_record(client, book, patient, doctor, staff, tomorrow):
    book(patient, doctor, tomorrow)
    client.post(
        f"/doctors/patients/{patient.patient.id}/records",
        json={"diagnosis": "Asthma"},
        headers=auth_headers(doctor),
    )

    response = client.get(f"/staff/patients/{patient.patient.id}/record", headers=auth_headers(staff))
    assert response.status_code == 200
    record = response.json()
    assert record["patient"]["name"] == "Maria Santos"
    assert len(record["appointments"]) == 1
    assert [r["diagnosis"] for r in record["medical_records"]] == ["Asthma"]
    assert record["payments"] == []

    assert client.get("/staff/patients/999/record", headers=auth_headers(staff)).status_code == 404


def test_staff_sends_notification(client, patient, staff):
    response = client.post(
        "/staff/notifications",
        json={"user_id": patient.id, "title": "Clinic closed", "message": "Closed on Friday", "priority": "high"},
        headers=auth_headers(staff),
    )
    assert response.status_code == 201
    assert response.json()["metadata"] == {"sent_by": "Front Desk"}

    inbox = client.get("/notifications", headers=auth_headers(patient)).json()
    assert inbox["notifications"][0]["title"] == "Clinic closed"

    invalid = client.post(
        "/staff/notifications",
        json={"user_id": patient.id, "title": "x", "message": "y", "priority": "whenever"},
        headers=auth_headers(staff),
    )
    assert invalid.status_code == 422


def test_schedule_sms_for_patient(client, patient, staff, queued_sms):
    send_at = datetime.utcnow() + timedelta(days=1)
    response = client.post(
        "/staff/sms/schedule",
        json={"patient_id": patient.patient.id, "message": "Bring your lab results", "send_at": send_at.isoformat()},
        headers=auth_headers(staff),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "scheduled"
    assert body["recipient"] == "+639171234567"
    assert queued_sms[0][0] == body["id"]

    pending = client.get("/staff/sms/pending", headers=auth_headers(staff)).json()
    assert [s["id"] for s in pending] == [body["id"]]
    history = client.get(f"/staff/sms/patients/{patient.patient.id}", headers=auth_headers(staff)).json()
    assert [s["id"] for s in history] == [body["id"]]


def test_schedule_sms_requires_phone(client, make_user, staff):
    no_phone = make_user("patient", phone=None)
    response = client.post(
        "/staff/sms/schedule",
        json={
            "patient_id": no_phone.patient.id,
            "message": "Hello",
            "send_at": (datetime.utcnow() + timedelta(hours=2)).isoformat(),
        },
        headers=auth_headers(staff),
    )
    assert response.status_code == 400


def test_online_users(client, db, patient, staff):
    db.add(UserOnlineStatus(user_id=patient.id, is_online=True, status_message="In the waiting room"))
    db.commit()

    response = client.get("/staff/online-users", headers=auth_headers(staff))
    assert response.status_code == 200
    assert response.json()[0]["name"] == "Maria Santos"
    assert response.json()[0]["status_message"] == "In the waiting room"
