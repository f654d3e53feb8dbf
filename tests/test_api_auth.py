"""
Login, current-user endpoints, password reset and the admin surface.
"""
import pytest

from app.core.emailer import EmailError
from app.core.security import verify_password
from app.models import PasswordResetToken, User
from app.services import password_reset
from tests.conftest import auth_header


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to_email, subject, body):
        sent.append({"to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr(password_reset, "send_email", fake_send)
    return sent


class TestLogin:
    def test_ok_returns_token_and_user(self, client, make):
        u = make.user(email="ana@example.com", password="secret123")
        r = client.post("/api/auth/login", json={"email": "ANA@example.com", "password": "secret123"})
        assert r.status_code == 200, r.text
        data = r.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == u.id

        r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert r.json()["data"]["email"] == "ana@example.com"

    def test_wrong_password(self, client, make):
        make.user(email="ana@example.com", password="secret123")
        r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["error"]["msg"] == "Invalid credentials"

    def test_inactive_user(self, client, make):
        u = make.user(email="off@example.com", is_active=False)
        r = client.post("/api/auth/login", json={"email": "off@example.com", "password": "secret123"})
        assert r.status_code == 403
        r = client.get("/api/auth/me", headers=auth_header(u))
        assert r.status_code == 403

    def test_garbage_token(self, client):
        r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401


def test_my_permissions(client, staff_headers, admin_headers):
    staff = client.get("/api/auth/me/permissions", headers=staff_headers).json()["data"]
    assert staff["is_admin"] is False
    assert "withdrawals.create" in staff["permissions"]
    assert "withdrawals.delete" not in staff["permissions"]

    admin = client.get("/api/auth/me/permissions", headers=admin_headers).json()["data"]
    assert "withdrawals.delete" in admin["permissions"]


class TestPasswordReset:
    def test_full_flow(self, client, db, make, outbox):
        u = make.user(email="rita@example.com", password="oldpass1")
        r = client.post("/api/auth/forgot-password", json={"email": "rita@example.com"})
        assert r.status_code == 200
        assert len(outbox) == 1
        assert "http://frontend.test/resetar-senha?token=" in outbox[0]["body"]

        token = db.query(PasswordResetToken).filter_by(user_id=u.id).one().token
        r = client.post("/api/auth/reset-password", json={"token": token, "new_password": "newpass1"})
        assert r.status_code == 200, r.text

        db.expire_all()
        assert verify_password("newpass1", db.get(User, u.id).password_hash)

        r = client.post("/api/auth/reset-password", json={"token": token, "new_password": "again123"})
        assert r.status_code == 400

    def test_unknown_email_answers_the_same(self, client, outbox):
        r = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert r.status_code == 200
        assert outbox == []

    def test_new_request_invalidates_old_token(self, client, db, make, outbox):
        u = make.user(email="rita@example.com")
        client.post("/api/auth/forgot-password", json={"email": "rita@example.com"})
        client.post("/api/auth/forgot-password", json={"email": "rita@example.com"})
        rows = db.query(PasswordResetToken).filter_by(user_id=u.id).order_by(PasswordResetToken.id).all()
        assert [r.used for r in rows] == [True, False]

        r = client.post("/api/auth/reset-password", json={"token": rows[0].token, "new_password": "newpass1"})
        assert r.status_code == 400

    def test_mail_failure_is_503(self, client, db, make, monkeypatch):
        make.user(email="rita@example.com")

        def broken(**kw):
            raise EmailError("SMTP down")

        monkeypatch.setattr(password_reset, "send_email", broken)
        r = client.post("/api/auth/forgot-password", json={"email": "rita@example.com"})
        assert r.status_code == 503
        assert db.query(PasswordResetToken).count() == 0


class TestUsersAdmin:
    def test_staff_is_forbidden(self, client, staff_headers):
        assert client.get("/api/users", headers=staff_headers).status_code == 403

    def test_create_update_delete(self, client, admin_headers):
        payload = {"name": "Nurse", "email": "nurse@example.com", "password": "secret123"}
        r = client.post("/api/users", json=payload, headers=admin_headers)
        assert r.status_code == 201, r.text
        uid = r.json()["data"]["id"]

        r = client.post("/api/users", json=payload, headers=admin_headers)
        assert r.status_code == 409

        r = client.put(f"/api/users/{uid}", json={"name": "Head Nurse"}, headers=admin_headers)
        assert r.json()["data"]["name"] == "Head Nurse"

        assert client.delete(f"/api/users/{uid}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/users/{uid}", headers=admin_headers).status_code == 404

    def test_admin_cannot_demote_or_delete_self(self, client, admin, admin_headers):
        r = client.put(f"/api/users/{admin.id}", json={"is_admin": False}, headers=admin_headers)
        assert r.status_code == 400
        r = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
        assert r.status_code == 400


class TestRolesAdmin:
    def test_role_grants_permission(self, client, admin_headers, make):
        perms = client.get("/api/permissions", headers=admin_headers).json()["data"]
        view_id = next(p["id"] for p in perms if p["code"] == "pickups.view")

        r = client.post(
            "/api/roles",
            json={"name": "Driver", "permission_ids": [view_id]},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        role_id = r.json()["data"]["id"]

        u = make.user()
        headers = auth_header(u)
        assert client.get("/api/pickups", headers=headers).status_code == 403

        r = client.put(f"/api/users/{u.id}/roles", json={"role_ids": [role_id]}, headers=admin_headers)
        assert r.json()["data"]["role_ids"] == [role_id]
        assert client.get("/api/pickups", headers=headers).status_code == 200

    def test_unknown_permission_id(self, client, admin_headers):
        r = client.post("/api/roles", json={"name": "X", "permission_ids": [99999]}, headers=admin_headers)
        assert r.status_code == 400
