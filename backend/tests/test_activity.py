from autoparts.services.activity_service import list_activity, log_activity
from autoparts.extensions import db


def test_log_and_filter(app, admin, staff):
    log_activity(user=admin, action="create", entity_type="inventory", entity_id=1)
    log_activity(user=staff, action="sale", entity_type="receipt", entity_id="RCP-1")
    log_activity(user=None, action="update", entity_type="settings")
    db.session.commit()

    everything = list_activity()
    assert everything["pagination"]["total"] == 3
    assert everything["items"][0]["user_email"] == "system"

    assert list_activity(action="sale")["items"][0]["entity_id"] == "RCP-1"
    assert list_activity(user_id=admin.id)["count"] == 1
    assert list_activity(search="staff@")["count"] == 1

    page = list_activity(per_page=2, page=2)
    assert page["count"] == 1
    assert page["pagination"]["has_prev"] is True
    assert page["pagination"]["has_next"] is False


def test_activity_endpoints_are_admin_only(client, admin_headers, staff_headers, make_item):
    make_item()
    client.put("/api/settings", headers=admin_headers, json={"business_name": "Corner Auto"})

    assert client.get("/api/activity", headers=staff_headers).status_code == 403

    resp = client.get("/api/activity?entity_type=settings", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["items"][0]["details"] == {"keys": ["business_name"]}

    resp = client.get("/api/activity?start=yesterday", headers=admin_headers)
    assert resp.status_code == 400

    filters = client.get("/api/activity/filters", headers=admin_headers).get_json()
    assert "settings" in filters["entity_types"]
    assert "update" in filters["actions"]
