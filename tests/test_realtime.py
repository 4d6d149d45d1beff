import asyncio

import pytest
from conftest import auth_headers
from starlette.websockets import WebSocketDisconnect

from wellvisit.auth import create_access_token
from wellvisit.realtime import STAFF_CHANNEL, ChangeFeed, ChangeType, change_feed, doctor_channel, user_channel
from wellvisit.realtime_router import realtime_socket


def test_event_reaches_each_subscriber_once():
    async def scenario():
        feed = ChangeFeed()
        both = feed.subscribe([user_channel(1), STAFF_CHANNEL])
        staff_only = feed.subscribe([STAFF_CHANNEL])
        other = feed.subscribe([user_channel(2)])

        delivered = feed.publish([user_channel(1), STAFF_CHANNEL], "appointments", ChangeType.INSERT, 5, {"a": 1})
        return delivered, both, staff_only, other

    delivered, both, staff_only, other = asyncio.run(scenario())
    assert delivered == 2
    assert both.qsize() == 1
    assert staff_only.qsize() == 1
    assert other.empty()

    event = both.get_nowait()
    assert event["table"] == "appointments"
    assert event["event"] == "INSERT"
    assert event["record_id"] == 5
    assert event["data"] == {"a": 1}


def test_unsubscribe_drops_empty_channels():
    async def scenario():
        feed = ChangeFeed()
        channels = [user_channel(1), doctor_channel(3)]
        queue = feed.subscribe(channels)
        assert feed.subscriber_count(doctor_channel(3)) == 1
        feed.unsubscribe(queue, channels)
        return feed

    feed = asyncio.run(scenario())
    assert feed.subscriber_count(doctor_channel(3)) == 0
    assert feed.publish([user_channel(1)], "messages", ChangeType.INSERT, 1) == 0


def test_publish_without_subscribers():
    assert ChangeFeed().publish([STAFF_CHANNEL], "payments", ChangeType.UPDATE, None) == 0


def test_socket_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/realtime/ws?token=not-a-token") as websocket:
            websocket.receive_json()


def test_socket_subscribes_to_role_channels(client, doctor):
    token = create_access_token(doctor)
    with client.websocket_connect(f"/realtime/ws?token={token}") as websocket:
        subscribed = websocket.receive_json()
        assert subscribed["event"] == "SUBSCRIBED"
        assert subscribed["channels"] == [user_channel(doctor.id), doctor_channel(doctor.doctor.id)]

        change_feed.publish([doctor_channel(doctor.doctor.id)], "appointments", ChangeType.UPDATE, 7, {"status": "x"})
        event = websocket.receive_json()
        assert event["table"] == "appointments"
        assert event["record_id"] == 7


def test_staff_listen_on_clinic_channel(client, staff):
    with client.websocket_connect(f"/realtime/ws?token={create_access_token(staff)}") as websocket:
        assert STAFF_CHANNEL in websocket.receive_json()["channels"]


def test_booking_is_published_to_the_doctor(client, book, patient, doctor, tomorrow):
    with client.websocket_connect(f"/realtime/ws?token={create_access_token(doctor)}") as websocket:
        websocket.receive_json()
        appointment = book(patient, doctor, tomorrow)

        events = [websocket.receive_json() for _ in range(2)]
        tables = {e["table"] for e in events}
        assert "appointments" in tables
        assert any(e["record_id"] == appointment["id"] for e in events if e["table"] == "appointments")

    # Plain HTTP still works after the socket is gone
    assert client.get("/appointments/mine", headers=auth_headers(patient)).status_code == 200


class ResetSocket:
    """Socket whose connection resets once the greeting has been sent"""

    def __init__(self, user_id):
        self.user_id = user_id
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, data):
        if self.sent:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def receive_text(self):
        change_feed.publish([user_channel(self.user_id)], "messages", ChangeType.INSERT, 1)
        await asyncio.Event().wait()


def test_failed_send_closes_the_subscription(patient):
    socket = ResetSocket(patient.id)

    asyncio.run(realtime_socket(socket, token=create_access_token(patient)))

    assert [event["event"] for event in socket.sent] == ["SUBSCRIBED"]
    assert change_feed.subscriber_count(user_channel(patient.id)) == 0
