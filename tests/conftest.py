import os
from datetime import date, timedelta

# Configure the app for an in-memory database before anything from wellvisit is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["SMS_ENABLED"] = "true"
for key in (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "RESEND_API_KEY",
    "PAYMONGO_SECRET_KEY",
    "PAYMONGO_WEBHOOK_SECRET",
    "VIDEOSDK_API_KEY",
    "VIDEOSDK_SECRET_KEY",
):
    os.environ[key] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from wellvisit.auth import create_access_token  # noqa: E402
from wellvisit.database import Base, SessionLocal, engine  # noqa: E402
from wellvisit.domain.auth.repository import UserRepository  # noqa: E402
from wellvisit.main import app  # noqa: E402
from wellvisit.models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, ROLE_STAFF  # noqa: E402
from wellvisit.security_utils import hash_password  # noqa: E402
from wellvisit.services import sms_service  # noqa: E402

PASSWORD = "Secret123!"


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def queued_sms(monkeypatch):
    """Deferred SMS jobs are recorded instead of being sent to Redis"""
    jobs = []

    async def fake_enqueue(sms_log_id, send_at):
        jobs.append((sms_log_id, send_at))
        return f"job-{sms_log_id}"

    monkeypatch.setattr(sms_service, "enqueue_sms_job", fake_enqueue)
    return jobs


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role, name=None, email=None, phone="09171234567", profile=None):
        counter["n"] += 1
        n = counter["n"]
        return UserRepository.create_user(
            db,
            email=email or f"{role}{n}@example.com",
            password_hash=hash_password(PASSWORD),
            name=name or f"{role.title()} {n}",
            role=role,
            phone=phone,
            profile=profile,
        )

    return _make_user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def patient(make_user):
    return make_user(ROLE_PATIENT, name="Maria Santos", phone="+639171234567")


@pytest.fixture
def doctor(make_user):
    return make_user(
        ROLE_DOCTOR,
        name="Jose Rizal",
        phone="+639181234567",
        profile={"specialty": "Cardiology", "consultation_fee": 1000.0, "video_consultation_fee": 800.0},
    )


@pytest.fixture
def staff(make_user):
    return make_user(ROLE_STAFF, name="Front Desk", profile={"position": "Receptionist"})


@pytest.fixture
def admin(make_user):
    return make_user(ROLE_ADMIN, name="Clinic Admin")


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


@pytest.fixture
def book(client):
    """Book an appointment through the API and return the response body"""

    def _book(patient_user, doctor_user, on_date, at="10:00", consultation_type="in-person"):
        response = client.post(
            "/appointments",
            json={
                "doctor_id": doctor_user.doctor.id,
                "appointment_date": on_date.isoformat(),
                "appointment_time": at,
                "consultation_type": consultation_type,
                "service_type": "General Consultation",
            },
            headers=auth_headers(patient_user),
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _book
