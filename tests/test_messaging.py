from conftest import auth_headers


def send(client, sender, receiver, text, **extra):
    return client.post(
        "/messages",
        json={"receiver_id": receiver.id, "message_text": text, **extra},
        headers=auth_headers(sender),
    )


def test_send_message_and_read_conversation(client, patient, doctor):
    first = send(client, patient, doctor, "Good morning doc")
    assert first.status_code == 201
    assert first.json()["sender_name"] == "Maria Santos"
    assert first.json()["receiver_role"] == "doctor"
    send(client, doctor, patient, "Hello Maria")

    conversation = client.get(f"/messages/conversation/{doctor.id}", headers=auth_headers(patient)).json()
    assert [m["message_text"] for m in conversation] == ["Good morning doc", "Hello Maria"]


def test_markup_is_stripped(client, patient, doctor):
    response = send(client, patient, doctor, "<b>Is this</b> <script>x</script>safe?")
    assert response.status_code == 201
    assert "<" not in response.json()["message_text"]

    only_markup = send(client, patient, doctor, "<img src=x>")
    assert only_markup.status_code == 400


def test_message_validation(client, patient, doctor):
    assert send(client, patient, patient, "Talking to myself").status_code == 400
    assert client.post(
        "/messages", json={"receiver_id": 999, "message_text": "Hi"}, headers=auth_headers(patient)
    ).status_code == 404
    assert send(client, patient, doctor, "Hi", message_type="sticker").status_code == 422
    assert send(client, patient, doctor, "").status_code == 422


def test_mark_conversation_read(client, patient, doctor):
    send(client, doctor, patient, "Your results are in")
    send(client, doctor, patient, "Please book a follow-up")

    threads = client.get("/messages/threads", headers=auth_headers(patient)).json()
    assert threads[0]["unread_count"] == 2

    response = client.post(f"/messages/conversation/{doctor.id}/read", headers=auth_headers(patient))
    assert response.json() == {"updated": 2}

    conversation = client.get(f"/messages/conversation/{doctor.id}", headers=auth_headers(patient)).json()
    assert all(m["is_read"] for m in conversation)


def test_patient_doctor_thread_tracks_last_message(client, patient, doctor):
    send(client, patient, doctor, "First")
    send(client, doctor, patient, "Latest")

    threads = client.get("/messages/threads", headers=auth_headers(doctor)).json()
    assert len(threads) == 1
    assert threads[0]["other_user_name"] == "Maria Santos"
    assert threads[0]["last_message_text"] == "Latest"


def test_staff_messages_do_not_create_threads(client, patient, staff):
    send(client, staff, patient, "Please update your address")
    assert client.get("/messages/threads", headers=auth_headers(patient)).json() == []


def test_get_or_create_thread(client, make_user, patient, doctor):
    body = {"patient_id": patient.id, "doctor_id": doctor.id}
    created = client.post("/messages/threads", json=body, headers=auth_headers(patient))
    assert created.status_code == 200
    again = client.post("/messages/threads", json=body, headers=auth_headers(doctor))
    assert again.json()["id"] == created.json()["id"]

    outsider = make_user("patient")
    assert client.post("/messages/threads", json=body, headers=auth_headers(outsider)).status_code == 403

    swapped = {"patient_id": doctor.id, "doctor_id": patient.id}
    assert client.post("/messages/threads", json=swapped, headers=auth_headers(patient)).status_code == 400


def test_contacts_follow_role_rules(client, make_user, patient, doctor, staff):
    other_patient = make_user("patient", name="Other Patient")

    contacts = client.get("/messages/contacts", headers=auth_headers(patient)).json()
    ids = {c["id"] for c in contacts}
    assert doctor.id in ids
    assert staff.id in ids
    assert other_patient.id not in ids
    assert patient.id not in ids

    found = client.get("/messages/contacts", params={"q": "rizal"}, headers=auth_headers(patient)).json()
    assert [c["name"] for c in found] == ["Jose Rizal"]


def test_presence(client, patient, doctor):
    assert client.get(f"/messages/presence/{doctor.id}", headers=auth_headers(patient)).status_code == 404

    updated = client.put(
        "/messages/presence", json={"is_online": True, "status_message": "On rounds"}, headers=auth_headers(doctor)
    )
    assert updated.status_code == 200

    presence = client.get(f"/messages/presence/{doctor.id}", headers=auth_headers(patient)).json()
    assert presence["is_online"] is True
    assert presence["status_message"] == "On rounds"
