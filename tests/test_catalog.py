from conftest import auth_headers

from wellvisit.models import ServicePackage


def test_public_list_shows_only_bookable_services(client, staff):
    headers = auth_headers(staff)
    client.post("/catalog/services", json={"name": "Lab Work", "price": 800, "display_order": 2}, headers=headers)
    consult = client.post(
        "/catalog/services", json={"name": "General Consultation", "price": 500, "display_order": 1}, headers=headers
    )
    assert consult.status_code == 201
    assert consult.json()["status"] == "active"
    client.post("/catalog/services", json={"name": "Retired", "price": 100, "is_available": False}, headers=headers)

    listed = client.get("/catalog/services")
    assert listed.status_code == 200
    assert [s["name"] for s in listed.json()] == ["General Consultation", "Lab Work"]


def test_staff_updates_service(client, staff):
    headers = auth_headers(staff)
    created = client.post("/catalog/services", json={"name": "X-Ray", "price": 900}, headers=headers).json()

    updated = client.put(f"/catalog/services/{created['id']}", json={"price": 950, "status": "inactive"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["price"] == 950.0
    assert client.get("/catalog/services").json() == []

    bad = client.put(f"/catalog/services/{created['id']}", json={"status": "archived"}, headers=headers)
    assert bad.status_code == 400
    assert client.put("/catalog/services/999", json={"price": 1}, headers=headers).status_code == 404


def test_catalog_maintenance_is_staff_only(client, patient):
    response = client.post("/catalog/services", json={"name": "Spa", "price": 1}, headers=auth_headers(patient))
    assert response.status_code == 403


def test_active_packages(client, db):
    db.add_all(
        [
            ServicePackage(name="Basic Checkup", original_price=1500, package_price=1200, savings=300),
            ServicePackage(name="Executive Checkup", original_price=6000, package_price=4500, savings=1500, popular=True),
            ServicePackage(name="Old Promo", original_price=100, package_price=50, savings=50, is_active=False),
        ]
    )
    db.commit()

    packages = client.get("/catalog/packages").json()
    assert [p["name"] for p in packages] == ["Executive Checkup", "Basic Checkup"]
