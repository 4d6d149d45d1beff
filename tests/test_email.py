import asyncio
from datetime import date

import pytest
import resend

from wellvisit import email_service
from wellvisit.email_templates import appointment_cancelled_template, appointment_confirmed_template


def test_templates_carry_visit_details():
    confirmed = appointment_confirmed_template(
        "Maria Santos", "Jose Rizal", "Monday, March 9, 2026", "10:00", "video", "https://meet.example/room-1"
    )
    assert "Maria Santos" in confirmed
    assert "Dr. Jose Rizal" in confirmed
    assert "https://meet.example/room-1" in confirmed

    cancelled = appointment_cancelled_template("Maria Santos", "Jose Rizal", "Monday, March 9, 2026", "10:00", "Typhoon")
    assert "Typhoon" in cancelled


def test_send_email_requires_api_key(monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)
    with pytest.raises(Exception, match="not configured"):
        asyncio.run(email_service.send_email("maria@example.com", "Hello", "<mjml></mjml>"))


def test_confirmation_email_is_sent_through_resend(monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda content: "<html>ok</html>")
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "email_1"})

    response = asyncio.run(
        email_service.send_appointment_confirmed_email(
            "maria@example.com", "Maria Santos", "Jose Rizal", date(2026, 3, 9), "10:00", "in-person"
        )
    )

    assert response == {"id": "email_1"}
    assert sent[0]["to"] == ["maria@example.com"]
    assert sent[0]["subject"] == "Appointment Confirmed - WellVisit Clinic"
    assert sent[0]["html"] == "<html>ok</html>"
