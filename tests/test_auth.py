from conftest import PASSWORD, auth_headers


def test_register_creates_patient_and_signs_in(client):
    response = client.post(
        "/auth/register",
        json={
            "email": "Juan.DelaCruz@Example.com",
            "password": "Secret123!",
            "name": "Juan Dela Cruz",
            "phone": "0917 123 4567",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["user"]["email"] == "juan.delacruz@example.com"
    assert body["user"]["role"] == "patient"
    assert body["user"]["phone"] == "+639171234567"
    assert body["user"]["profile_id"] is not None

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Juan Dela Cruz"


def test_register_rejects_duplicate_email(client, patient):
    response = client.post(
        "/auth/register",
        json={"email": patient.email, "password": "Secret123!", "name": "Someone Else"},
    )
    assert response.status_code == 409


def test_register_rejects_invalid_phone(client):
    response = client.post(
        "/auth/register",
        json={"email": "new@example.com", "password": "Secret123!", "name": "New", "phone": "12345"},
    )
    assert response.status_code == 422


def test_login_with_valid_credentials(client, doctor):
    response = client.post("/auth/login", json={"email": doctor.email.upper(), "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "doctor"


def test_login_with_wrong_password(client, patient):
    response = client.post("/auth/login", json={"email": patient.email, "password": "wrong-password"})
    assert response.status_code == 401


def test_login_rejected_for_deactivated_account(client, db, patient):
    patient.is_active = False
    db.commit()

    response = client.post("/auth/login", json={"email": patient.email, "password": PASSWORD})
    assert response.status_code == 403


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_update_profile_fields(client, patient):
    response = client.put(
        "/auth/me",
        json={"name": "Maria S. Santos", "address": "Quezon City"},
        headers=auth_headers(patient),
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Maria S. Santos"


def test_change_password_checks_current_password(client, patient):
    headers = auth_headers(patient)

    wrong = client.post(
        "/auth/change-password",
        json={"current_password": "nope", "new_password": "NewSecret123!"},
        headers=headers,
    )
    assert wrong.status_code == 400

    ok = client.post(
        "/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "NewSecret123!"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = client.post("/auth/login", json={"email": patient.email, "password": "NewSecret123!"})
    assert login.status_code == 200

    notices = client.get("/notifications", params={"type": "system"}, headers=headers).json()
    assert [n["title"] for n in notices["notifications"]] == ["Password Changed"]


def test_role_guard_blocks_other_roles(client, patient):
    response = client.get("/staff/dashboard", headers=auth_headers(patient))
    assert response.status_code == 403
