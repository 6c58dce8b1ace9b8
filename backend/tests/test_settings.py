from autoparts.services import settings_service


def test_defaults(client, staff_headers):
    resp = client.get("/api/settings", headers=staff_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["business_name"] == "AutoParts AZ"
    assert body["tax_rate"] == "0"
    assert body["tax_rate_bps"] == 0
    assert body["currency"] == "USD"
    assert body["notification_email"] is None


def test_admin_updates_settings(client, admin_headers):
    resp = client.put("/api/settings", headers=admin_headers, json={
        "business_name": "Corner Auto",
        "tax_rate": "8.25",
        "currency": "cad",
        "notification_email": "owner@corner.example",
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["tax_rate_bps"] == 825
    assert body["tax_rate"] == "8.25"
    assert body["currency"] == "CAD"

    settings = settings_service.load_settings()
    assert settings.business_name == "Corner Auto"
    assert settings.notification_email == "owner@corner.example"


def test_staff_cannot_update(client, staff_headers):
    resp = client.put("/api/settings", headers=staff_headers, json={"business_name": "Mine"})
    assert resp.status_code == 403


def test_rejects_bad_values(client, admin_headers):
    for body in (
        {"tax_rate": "abc"},
        {"tax_rate": "150"},
        {"currency": "dollars"},
        {"notification_email": "not-an-email"},
        {"business_name": "  "},
        {"favourite_colour": "blue"},
    ):
        resp = client.put("/api/settings", headers=admin_headers, json=body)
        assert resp.status_code == 400, body

    resp = client.put("/api/settings", headers=admin_headers, json=["tax_rate"])
    assert resp.status_code == 400


def test_blank_rows_fall_back_to_defaults():
    settings = settings_service.settings_from_rows({"business_name": " ", "tax_rate": "oops", "currency": "eur"})
    assert settings.business_name == "AutoParts AZ"
    assert settings.tax_rate_bps == 0
    assert settings.currency == "EUR"
