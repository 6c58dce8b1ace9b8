from datetime import timedelta

from autoparts.extensions import db
from autoparts.models import SessionToken, User
from autoparts.time_utils import utcnow

PASSWORD = "Password123!"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["checks"]["database"]["status"] == "healthy"


def test_login_me_logout(client, staff):
    resp = client.post("/api/auth/login", json={"email": "STAFF@test.local", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["email"] == "staff@test.local"
    headers = {"Authorization": f"Bearer {body['token']}"}

    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "staff"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_login_failures(client, staff):
    assert client.post("/api/auth/login", json={"email": "staff@test.local"}).status_code == 400
    assert client.post("/api/auth/login", json={"email": "staff@test.local", "password": "wrong"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "nobody@test.local", "password": PASSWORD}).status_code == 401

    staff.is_active = False
    db.session.commit()
    assert client.post("/api/auth/login", json={"email": "staff@test.local", "password": PASSWORD}).status_code == 401


def test_tokens_are_required_and_hashed(client, staff, staff_headers):
    assert client.get("/api/inventory").status_code == 401
    assert client.get("/api/inventory", headers={"Authorization": "Bearer nope"}).status_code == 401

    token = staff_headers["Authorization"].split(" ", 1)[1]
    stored = db.session.query(SessionToken).filter_by(user_id=staff.id).one()
    assert stored.token_hash != token
    assert len(stored.token_hash) == 64


def test_expired_session(client, staff, staff_headers):
    stored = db.session.query(SessionToken).filter_by(user_id=staff.id).one()
    stored.expires_at = utcnow() - timedelta(minutes=1)
    db.session.commit()
    assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


def test_deactivated_user_loses_access(client, admin_headers, staff, staff_headers):
    resp = client.post(f"/api/users/{staff.id}/deactivate", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


def test_user_admin_is_admin_only(client, admin_headers, staff_headers):
    resp = client.get("/api/users", headers=staff_headers)
    assert resp.status_code == 403
    assert resp.get_json()["required_role"] == ["admin"]

    resp = client.post("/api/users", headers=admin_headers, json={
        "email": "new@test.local", "password": "weak", "role": "staff",
    })
    assert resp.status_code == 400

    resp = client.post("/api/users", headers=admin_headers, json={
        "email": "new@test.local", "password": "Str0ng!Pass", "full_name": "New Hire", "role": "staff",
    })
    assert resp.status_code == 201

    resp = client.post("/api/users", headers=admin_headers, json={
        "email": "NEW@test.local", "password": "Str0ng!Pass", "role": "staff",
    })
    assert resp.status_code == 409


def test_last_admin_is_protected(client, admin, admin_headers, staff):
    resp = client.put(f"/api/users/{admin.id}/role", headers=admin_headers, json={"role": "staff"})
    assert resp.status_code == 409

    resp = client.post(f"/api/users/{admin.id}/deactivate", headers=admin_headers)
    assert resp.status_code == 403

    resp = client.delete(f"/api/users/{admin.id}", headers=admin_headers, json={"confirm": True})
    assert resp.status_code == 403


def test_delete_user_needs_confirmation(client, admin_headers, staff):
    resp = client.delete(f"/api/users/{staff.id}", headers=admin_headers, json={})
    assert resp.status_code == 400

    resp = client.delete(f"/api/users/{staff.id}", headers=admin_headers, json={"confirm": True})
    assert resp.status_code == 200
    assert db.session.get(User, staff.id) is None


def test_change_password(client, staff, staff_headers):
    resp = client.post("/api/auth/change-password", headers=staff_headers, json={
        "current_password": "wrong", "new_password": "N3w!Password",
    })
    assert resp.status_code == 400

    resp = client.post("/api/auth/change-password", headers=staff_headers, json={
        "current_password": PASSWORD, "new_password": "N3w!Password",
    })
    assert resp.status_code == 200

    resp = client.post("/api/auth/login", json={"email": "staff@test.local", "password": "N3w!Password"})
    assert resp.status_code == 200
