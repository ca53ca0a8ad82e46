"""
test_auth.py — Login / logout / session and role guard tests.
"""

import pytest

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, CLIENT_EMAIL, CLIENT_PASSWORD


def login(client, email, password, role=None):
    body = {"email": email, "password": password}
    if role:
        body["role"] = role
    return client.post("/auth/login", json=body)


class TestLogin:
    def test_admin_login(self, client):
        r = login(client, ADMIN_EMAIL.upper(), ADMIN_PASSWORD, "admin")
        assert r.status_code == 200
        user = r.get_json()["data"]["user"]
        assert user["role"] == "admin"
        assert user["name"] == "Test Admin"
        assert user["email"] == ADMIN_EMAIL

    def test_client_login_binds_record(self, client, app):
        r = login(client, CLIENT_EMAIL, CLIENT_PASSWORD)
        assert r.status_code == 200
        user = r.get_json()["data"]["user"]
        assert user["id"] == "c2"
        assert user["role"] == "client"
        assert user["name"] == "Brain Admin"

        with app.app_context():
            from utils.portal import get_portal
            record = get_portal().store.get("c2")
            assert record.last_login is not None
            assert len(record.notifications) == 0

    def test_wrong_password(self, client):
        r = login(client, ADMIN_EMAIL, "wrongpassword", "admin")
        assert r.status_code == 401
        assert r.get_json()["success"] is False

    def test_role_must_match_account(self, client):
        assert login(client, ADMIN_EMAIL, ADMIN_PASSWORD, "client").status_code == 401
        assert login(client, CLIENT_EMAIL, CLIENT_PASSWORD, "admin").status_code == 401

    def test_client_account_without_record(self, client, app):
        with app.app_context():
            from database import db
            from models import PortalAccount, PortalRole
            from werkzeug.security import generate_password_hash
            db.session.add(PortalAccount(
                email="orphan@test.ma",
                password_hash=generate_password_hash("orphan-pass"),
                role=PortalRole.client,
            ))
            db.session.commit()

        r = login(client, "orphan@test.ma", "orphan-pass")
        assert r.status_code == 401
        assert "No client file" in r.get_json()["error"]

    @pytest.mark.parametrize("body", [
        {"email": "", "password": "x"},
        {"email": ADMIN_EMAIL},
        {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "role": "superuser"},
    ])
    def test_bad_request(self, client, body):
        assert client.post("/auth/login", json=body).status_code == 400

    def test_failed_login_leaves_no_session(self, client):
        login(client, ADMIN_EMAIL, "nope", "admin")
        r = client.get("/auth/session")
        assert r.get_json()["data"]["authenticated"] is False


class TestSession:
    def test_session_after_login(self, client):
        login(client, CLIENT_EMAIL, CLIENT_PASSWORD)
        data = client.get("/auth/session").get_json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["id"] == "c2"

    def test_logout(self, admin_client):
        r = admin_client.post("/auth/logout")
        assert r.status_code == 200
        assert admin_client.get("/auth/session").get_json()["data"]["authenticated"] is False

    def test_logout_requires_login(self, client):
        assert client.post("/auth/logout").status_code == 401

    def test_login_is_audited(self, client, admin_client):
        login(client, ADMIN_EMAIL, ADMIN_PASSWORD, "admin")
        entries = admin_client.get("/admin/audit").get_json()["data"]["entries"]
        assert any("logged in" in e["action"] for e in entries)


class TestRoleGuards:
    def test_admin_routes_require_login(self, client):
        assert client.get("/admin/clients").status_code == 401

    def test_client_cannot_use_admin_routes(self, portal_client):
        assert portal_client.get("/admin/clients").status_code == 403

    def test_admin_cannot_use_client_routes(self, admin_client):
        assert admin_client.get("/client/me").status_code == 403

    def test_client_routes_require_login(self, client):
        assert client.get("/client/me").status_code == 401
