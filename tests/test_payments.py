import asyncio
import json
import time

import pytest
from conftest import auth_headers

from wellvisit import config
from wellvisit.domain.payments.paymongo_service import PayMongoError, PayMongoService, to_centavos
from wellvisit.models import Payment
from wellvisit.webhook_security import sign_paymongo_payload, verify_paymongo_signature

WEBHOOK_SECRET = "whsk_test_secret"


@pytest.fixture
def paymongo(monkeypatch):
    """Configured PayMongo with link creation recorded instead of sent"""
    links = []

    async def fake_create_payment_link(self, amount, description, reference=None, email=None, metadata=None):
        links.append({"amount": amount, "description": description, "reference": reference, "metadata": metadata})
        return {"id": f"link_{len(links)}", "checkout_url": f"https://pm.link/checkout/{len(links)}"}

    monkeypatch.setattr(config, "PAYMONGO_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(config, "PAYMONGO_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(PayMongoService, "create_payment_link", fake_create_payment_link)
    return links


def signed_headers(body: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> dict:
    timestamp = str(timestamp or int(time.time()))
    signature = sign_paymongo_payload(secret, timestamp, body)
    return {"Paymongo-Signature": f"t={timestamp},te={signature},li=", "Content-Type": "application/json"}


def paid_event(link_id: str, source: str = "gcash") -> bytes:
    return json.dumps(
        {
            "data": {
                "id": "evt_1",
                "attributes": {
                    "type": "link.payment.paid",
                    "data": {
                        "id": link_id,
                        "attributes": {
                            "payments": [{"data": {"id": "pay_abc", "attributes": {"source": {"type": source}}}}]
                        },
                    },
                },
            }
        }
    ).encode()


def test_to_centavos():
    assert to_centavos(1025.5) == 102550
    assert to_centavos(0.1 + 0.2) == 30


def test_link_payload_carries_reference_and_redirects():
    payload = PayMongoService(secret_key="sk").build_link_payload(
        1025.0, "Consultation", reference="ref-1", email="a@b.com", metadata={"appointment_id": 4}
    )
    attributes = payload["data"]["attributes"]
    assert attributes["amount"] == 102500
    assert attributes["metadata"]["reference"] == "ref-1"
    assert attributes["metadata"]["appointment_id"] == 4
    assert attributes["redirect"]["success"].endswith("/payment-success?reference=ref-1")


def test_unconfigured_gateway_raises_503():
    with pytest.raises(PayMongoError) as exc:
        asyncio.run(PayMongoService(secret_key="").create_payment_link(100, "Test"))
    assert exc.value.status_code == 503


def test_appointment_payment_adds_processing_fee(client, paymongo, book, patient, doctor, tomorrow):
    appointment = book(patient, doctor, tomorrow)

    response = client.post(
        "/payments/appointments",
        json={"appointment_id": appointment["id"], "payment_method": "gcash"},
        headers=auth_headers(patient),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["checkout_url"] == "https://pm.link/checkout/1"
    assert body["payment"]["status"] == "pending"
    assert body["payment"]["processing_fee"] == 25.0
    assert body["payment"]["amount"] == 1025.0
    assert paymongo[0]["reference"] == body["payment"]["public_id"]


def test_payment_requires_configuration(client, book, patient, doctor, tomorrow):
    appointment = book(patient, doctor, tomorrow)
    response = client.post(
        "/payments/appointments", json={"appointment_id": appointment["id"]}, headers=auth_headers(patient)
    )
    assert response.status_code == 503


def test_gateway_failure_marks_payment_failed(client, db, monkeypatch, book, patient, doctor, tomorrow):
    async def failing_link(self, *args, **kwargs):
        raise PayMongoError("boom", 500)

    monkeypatch.setattr(config, "PAYMONGO_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(PayMongoService, "create_payment_link", failing_link)
    appointment = book(patient, doctor, tomorrow)

    response = client.post(
        "/payments/appointments", json={"appointment_id": appointment["id"]}, headers=auth_headers(patient)
    )
    assert response.status_code == 502
    assert db.query(Payment).one().status == "failed"


def test_cannot_pay_for_someone_elses_appointment(client, paymongo, book, make_user, patient, doctor, tomorrow):
    appointment = book(patient, doctor, tomorrow)
    response = client.post(
        "/payments/appointments",
        json={"appointment_id": appointment["id"]},
        headers=auth_headers(make_user("patient")),
    )
    assert response.status_code == 403


def test_webhook_marks_payment_paid_once(client, db, paymongo, book, patient, doctor, tomorrow):
    appointment = book(patient, doctor, tomorrow)
    created = client.post(
        "/payments/appointments", json={"appointment_id": appointment["id"]}, headers=auth_headers(patient)
    ).json()

    body = paid_event("link_1")
    response = client.post("/payments/webhook", content=body, headers=signed_headers(body))
    assert response.status_code == 200
    assert response.json()["handled"] is True
    assert response.json()["status"] == "paid"

    payment = db.get(Payment, created["payment"]["id"])
    assert payment.status == "paid"
    assert payment.transaction_ref == "pay_abc"
    assert payment.payment_method == "gcash"

    replay = client.post("/payments/webhook", content=body, headers=signed_headers(body))
    assert replay.json()["handled"] is False

    status = client.get(f"/payments/appointments/{appointment['id']}/status", headers=auth_headers(patient))
    assert status.json()["status"] == "paid"

    again = client.post(
        "/payments/appointments", json={"appointment_id": appointment["id"]}, headers=auth_headers(patient)
    )
    assert again.status_code == 409


def test_webhook_rejects_bad_signature(client, paymongo):
    body = paid_event("link_1")
    response = client.post("/payments/webhook", content=body, headers=signed_headers(body, secret="wrong"))
    assert response.status_code == 401


def test_webhook_rejects_stale_timestamp(client, paymongo):
    body = paid_event("link_1")
    stale = int(time.time()) - 3600
    response = client.post("/payments/webhook", content=body, headers=signed_headers(body, timestamp=stale))
    assert response.status_code == 401


def test_webhook_without_secret_is_unavailable(client):
    body = paid_event("link_1")
    response = client.post("/payments/webhook", content=body, headers=signed_headers(body))
    assert response.status_code == 503


def test_unrelated_events_are_acknowledged(client, paymongo):
    body = json.dumps({"data": {"id": "evt_2", "attributes": {"type": "source.chargeable", "data": {}}}}).encode()
    response = client.post("/payments/webhook", content=body, headers=signed_headers(body))
    assert response.status_code == 200
    assert response.json() == {"received": True, "handled": False}


def test_signature_prefers_live_component():
    body = b'{"ok": true}'
    now = time.time()
    timestamp = str(int(now))
    signature = sign_paymongo_payload("secret", timestamp, body)

    assert verify_paymongo_signature(body, f"t={timestamp},te=,li={signature}", "secret", now=now)
    assert not verify_paymongo_signature(body, f"t={timestamp},te=,li=deadbeef", "secret", now=now)
    assert not verify_paymongo_signature(body, None, "secret", now=now)


def test_staff_confirms_manual_payment(client, db, staff, patient):
    payment = Payment(patient_id=patient.patient.id, amount=500.0, status="pending", provider="paymongo")
    db.add(payment)
    db.commit()

    bad = client.post(
        f"/payments/{payment.id}/confirm-manual", json={"method": "crypto"}, headers=auth_headers(staff)
    )
    assert bad.status_code == 400

    response = client.post(
        f"/payments/{payment.id}/confirm-manual", json={"method": "cash"}, headers=auth_headers(staff)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "paid"
    assert body["provider"] == "cash"
    assert body["transaction_ref"].startswith("MANUAL-")

    twice = client.post(
        f"/payments/{payment.id}/confirm-manual", json={"method": "cash"}, headers=auth_headers(staff)
    )
    assert twice.status_code == 409

    listed = client.get("/payments", params={"status": "paid"}, headers=auth_headers(staff)).json()
    assert [p["id"] for p in listed] == [payment.id]


def test_retry_failed_payment(client, db, paymongo, patient):
    payment = Payment(patient_id=patient.patient.id, amount=500.0, status="failed", description="Consultation")
    db.add(payment)
    db.commit()

    response = client.post(f"/payments/{payment.id}/retry", headers=auth_headers(patient))
    assert response.status_code == 200
    assert response.json()["payment"]["status"] == "pending"
    assert response.json()["checkout_url"].startswith("https://pm.link/checkout/")


def test_adhoc_checkout_validates_amount(client, paymongo, patient):
    headers = auth_headers(patient)
    assert client.post("/payments/checkout", json={"amount": 0, "description": "X"}, headers=headers).status_code == 400
    ok = client.post("/payments/checkout", json={"amount": 250, "description": "Medical certificate"}, headers=headers)
    assert ok.status_code == 200
    assert ok.json() == {"url": "https://pm.link/checkout/1", "id": "link_1"}


def test_gateway_outage_is_not_reported_as_missing_configuration(
    client, monkeypatch, book, patient, doctor, tomorrow
):
    async def unavailable_link(self, *args, **kwargs):
        raise PayMongoError("Service Unavailable", 503)

    monkeypatch.setattr(config, "PAYMONGO_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(PayMongoService, "create_payment_link", unavailable_link)
    appointment = book(patient, doctor, tomorrow)

    response = client.post(
        "/payments/appointments", json={"appointment_id": appointment["id"]}, headers=auth_headers(patient)
    )
    assert response.status_code == 502
    assert response.json()["detail"] == "Payment gateway error, please try again"
