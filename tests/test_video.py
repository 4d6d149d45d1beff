from datetime import datetime, timedelta

import pytest
from conftest import auth_headers
from jose import jwt

from wellvisit import config
from wellvisit.domain.video.service import VideoService
from wellvisit.domain.video.videosdk_service import HOST_PERMISSIONS, VideoSDKError, VideoSDKService
from wellvisit.models_notifications import Notification


@pytest.fixture
def videosdk(monkeypatch):
    """Configured VideoSDK that hands out numbered rooms without calling the API"""
    rooms = []

    async def fake_create_room(self):
        rooms.append(f"room-{len(rooms) + 1}")
        return rooms[-1]

    monkeypatch.setattr(config, "VIDEOSDK_API_KEY", "vsdk-key")
    monkeypatch.setattr(config, "VIDEOSDK_SECRET_KEY", "vsdk-secret")
    monkeypatch.setattr(VideoSDKService, "create_room", fake_create_room)
    return rooms


@pytest.fixture
def video_visit(book, patient, doctor, tomorrow):
    return book(patient, doctor, tomorrow, consultation_type="video")


def test_token_carries_room_and_permissions():
    sdk = VideoSDKService(api_key="key", secret_key="secret")
    token = sdk.generate_token(HOST_PERMISSIONS, room_id="abc-def")

    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert claims["apikey"] == "key"
    assert claims["roomId"] == "abc-def"
    assert claims["permissions"] == HOST_PERMISSIONS


def test_token_requires_configuration():
    with pytest.raises(VideoSDKError) as exc:
        VideoSDKService(api_key="", secret_key="").generate_token()
    assert exc.value.not_configured is True


def test_doctor_starts_session(client, db, videosdk, video_visit, patient, doctor):
    response = client.post(f"/video/appointments/{video_visit['id']}/start", headers=auth_headers(doctor))
    assert response.status_code == 200
    session = response.json()
    assert session["meeting_id"] == "room-1"
    assert session["meeting_url"].endswith("/room-1")
    assert session["status"] == "scheduled"

    appointment = client.get(f"/appointments/{video_visit['id']}", headers=auth_headers(patient)).json()
    assert appointment["meeting_code"] == "room-1"

    notice = db.query(Notification).filter(Notification.user_id == patient.id, Notification.type == "video_call")
    assert notice.one().title == "Video Consultation Ready"

    again = client.post(f"/video/appointments/{video_visit['id']}/start", headers=auth_headers(doctor))
    assert again.json()["call_id"] == session["call_id"]
    assert videosdk == ["room-1"]


def test_only_video_visits_by_their_doctor(client, videosdk, book, make_user, patient, doctor, tomorrow):
    in_person = book(patient, doctor, tomorrow, at="11:00")
    video = book(patient, doctor, tomorrow, at="14:00", consultation_type="video")

    assert client.post(f"/video/appointments/{in_person['id']}/start", headers=auth_headers(doctor)).status_code == 400
    assert client.post(f"/video/appointments/{video['id']}/start", headers=auth_headers(patient)).status_code == 403
    other = make_user("doctor")
    assert client.post(f"/video/appointments/{video['id']}/start", headers=auth_headers(other)).status_code == 403
    assert client.post("/video/appointments/999/start", headers=auth_headers(doctor)).status_code == 404


def test_cancelled_visit_cannot_start(client, videosdk, video_visit, patient, doctor):
    cancel = {"reason": "Feeling better"}
    client.post(f"/appointments/{video_visit['id']}/cancel", json=cancel, headers=auth_headers(patient))
    response = client.post(f"/video/appointments/{video_visit['id']}/start", headers=auth_headers(doctor))
    assert response.status_code == 400


def test_start_without_configuration(client, video_visit, doctor):
    response = client.post(f"/video/appointments/{video_visit['id']}/start", headers=auth_headers(doctor))
    assert response.status_code == 503


def test_join_and_end_call(client, videosdk, video_visit, patient, doctor):
    url = f"/video/appointments/{video_visit['id']}"
    assert client.post(f"{url}/join", headers=auth_headers(patient)).status_code == 404

    client.post(f"{url}/start", headers=auth_headers(doctor))
    joined = client.post(f"{url}/join", headers=auth_headers(patient))
    assert joined.status_code == 200
    assert joined.json()["status"] == "ongoing"
    assert joined.json()["is_host"] is False
    assert client.post(f"{url}/join", headers=auth_headers(doctor)).json()["is_host"] is True

    ended = client.post(f"{url}/end", json={"notes": "BP stable"}, headers=auth_headers(doctor))
    assert ended.status_code == 200
    assert ended.json()["status"] == "ended"
    assert ended.json()["duration_minutes"] == 0
    assert ended.json()["notes"] == "BP stable"

    assert client.post(f"{url}/join", headers=auth_headers(patient)).status_code == 400
    assert client.post(f"{url}/end", json={}, headers=auth_headers(doctor)).status_code == 400

    calls = client.get("/video/calls", headers=auth_headers(patient)).json()
    assert [c["room_id"] for c in calls] == ["room-1"]


def test_restart_after_end_opens_fresh_room(client, videosdk, video_visit, doctor):
    url = f"/video/appointments/{video_visit['id']}"
    first = client.post(f"{url}/start", headers=auth_headers(doctor)).json()
    client.post(f"{url}/end", json={}, headers=auth_headers(doctor))

    second = client.post(f"{url}/start", headers=auth_headers(doctor)).json()
    assert second["call_id"] == first["call_id"]
    assert second["meeting_id"] == "room-2"
    assert second["status"] == "scheduled"


def test_duration_is_computed_from_start(db, videosdk, video_visit, doctor):
    service = VideoService(db)
    started = service.repo.create(
        db,
        appointment_id=video_visit["id"],
        doctor_id=doctor.doctor.id,
        patient_id=video_visit["patient_id"],
        room_id="room-x",
        status="ongoing",
        started_at=datetime(2026, 5, 1, 10, 0),
    )
    db.commit()

    call = service.end(doctor, video_visit["id"], now=datetime(2026, 5, 1, 10, 0) + timedelta(minutes=25, seconds=40))
    assert call.id == started.id
    assert call.duration_minutes == 25


def test_staff_have_no_calls(client, staff):
    assert client.get("/video/calls", headers=auth_headers(staff)).status_code == 403


def test_videosdk_outage_is_a_gateway_error(client, monkeypatch, video_visit, doctor):
    async def unavailable_room(self):
        raise VideoSDKError("Failed to create meeting room", 503)

    monkeypatch.setattr(config, "VIDEOSDK_API_KEY", "vsdk-key")
    monkeypatch.setattr(config, "VIDEOSDK_SECRET_KEY", "vsdk-secret")
    monkeypatch.setattr(VideoSDKService, "create_room", unavailable_room)

    response = client.post(f"/video/appointments/{video_visit['id']}/start", headers=auth_headers(doctor))
    assert response.status_code == 502
