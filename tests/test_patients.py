from datetime import date, timedelta

from conftest import auth_headers

from wellvisit.models import Appointment, Payment


def test_dashboard_splits_upcoming_and_past(client, db, book, patient, doctor, tomorrow):
    book(patient, doctor, tomorrow)
    db.add(
        Appointment(
            patient_id=patient.patient.id,
            doctor_id=doctor.doctor.id,
            appointment_date=date.today() - timedelta(days=10),
            appointment_time="09:00",
            status="completed",
        )
    )
    db.add(Payment(patient_id=patient.patient.id, amount=500.0, status="pending"))
    db.commit()

    response = client.get("/patients/me/dashboard", headers=auth_headers(patient))
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Maria Santos"
    assert len(body["upcoming_appointments"]) == 1
    assert len(body["past_appointments"]) == 1
    assert body["pending_payments"] == 1
    # Booking confirmation notification is still unread
    assert body["unread_notifications"] >= 1


def test_portal_is_patients_only(client, doctor):
    assert client.get("/patients/me/dashboard", headers=auth_headers(doctor)).status_code == 403


def test_patient_records_own_health_metric(client, patient):
    headers = auth_headers(patient)
    created = client.post(
        "/patients/me/health-metrics",
        json={"metric_type": "weight", "value": "62", "unit": "kg"},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["patient_id"] == patient.patient.id

    listed = client.get("/patients/me/health-metrics", headers=headers).json()
    assert [m["metric_type"] for m in listed] == ["weight"]


def test_empty_portal_lists(client, patient):
    headers = auth_headers(patient)
    for path in ("prescriptions", "payments", "records", "lab-tests"):
        response = client.get(f"/patients/me/{path}", headers=headers)
        assert response.status_code == 200
        assert response.json() == []
