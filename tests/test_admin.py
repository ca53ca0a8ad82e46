"""
test_admin.py — Admin API route tests.

Seeded files: c2 THE BRAIN (24 000 / 6 000 MAD, one uploaded document) and
c3 GONEX (1 000 / 600 MAD, no timeline).
"""

import pytest

from conftest import CLIENT_EMAIL


class TestClientList:
    def test_list(self, admin_client):
        r = admin_client.get("/admin/clients")
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["total"] == 2
        # Newest onboarded first
        assert [c["id"] for c in data["clients"]] == ["c3", "c2"]
        brain = data["clients"][1]
        assert brain["outstanding"] == 18000
        assert brain["renewal_date"] == "2026-01-15"

    def test_search(self, admin_client):
        data = admin_client.get("/admin/clients?search=gonex").get_json()["data"]
        assert [c["id"] for c in data["clients"]] == ["c3"]

    def test_action_filter(self, admin_client):
        data = admin_client.get("/admin/clients?filter=action").get_json()["data"]
        assert [c["id"] for c in data["clients"]] == ["c2"]

    def test_completed_filter(self, admin_client):
        data = admin_client.get("/admin/clients?filter=completed").get_json()["data"]
        assert data["total"] == 0


class TestCreateClient:
    def test_onboard(self, admin_client):
        r = admin_client.post("/admin/clients", json={
            "name": "Sara Alaoui",
            "email": "sara@atlas.ma",
            "companyName": "ATLAS SARL",
            "contractValue": 8000,
        })
        assert r.status_code == 201
        record = r.get_json()["data"]["client"]
        assert record["progress"] == 50
        assert record["status_message"] == "Onboarding"
        assert record["payment_status"] == "pending"
        assert record["service_type"] == "Consulting"
        assert record["currency"] == "MAD"
        assert record["notifications"] == []

        ids = [c["id"] for c in admin_client.get("/admin/clients").get_json()["data"]["clients"]]
        assert ids[0] == record["id"]

    def test_missing_fields(self, admin_client):
        r = admin_client.post("/admin/clients", json={"name": "No Email"})
        assert r.status_code == 400
        assert "email" in r.get_json()["error"]

    def test_duplicate_email(self, admin_client):
        r = admin_client.post("/admin/clients", json={
            "name": "Dup", "email": CLIENT_EMAIL.upper(), "company_name": "Dup",
        })
        assert r.status_code == 400


class TestClientDetail:
    def test_get(self, admin_client):
        data = admin_client.get("/admin/clients/c3").get_json()["data"]["client"]
        assert data["company_name"] == "GONEX SARL AU"
        assert data["outstanding"] == 400
        assert data["renewal_date"] == "2025-02-28"
        assert data["unread"] == 0

    def test_unknown_client(self, admin_client):
        r = admin_client.get("/admin/clients/nope")
        assert r.status_code == 404
        assert r.get_json()["success"] is False

    def test_update_returns_notifications(self, admin_client):
        r = admin_client.put("/admin/clients/c3", json={"statusMessage": "Filing", "favourite": "x"})
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["client"]["status_message"] == "Filing"
        assert [n["title"] for n in data["notifications"]] == ["Status Update"]
        assert data["identity_patch"] is None

    def test_update_progress(self, admin_client):
        data = admin_client.put("/admin/clients/c3", json={"progress": 60}).get_json()["data"]
        assert data["notifications"][0]["message"] == "Your service progress is now at 60%."

    def test_malformed_update(self, admin_client):
        r = admin_client.put("/admin/clients/c3", json={"amountPaid": "lots"})
        assert r.status_code == 400

    def test_update_unknown_client(self, admin_client):
        assert admin_client.put("/admin/clients/nope", json={"progress": 5}).status_code == 404

    def test_update_to_taken_email(self, admin_client):
        r = admin_client.put("/admin/clients/c3", json={"email": CLIENT_EMAIL.upper()})
        assert r.status_code == 400
        detail = admin_client.get("/admin/clients/c3").get_json()["data"]["client"]
        assert detail["email"] == "info@gonex.ma"

    def test_update_contract_rederives_payment_status(self, admin_client):
        data = admin_client.put("/admin/clients/c3", json={"contractValue": 600}).get_json()["data"]
        assert data["client"]["payment_status"] == "paid"


class TestPayments:
    def test_record_payment(self, admin_client):
        r = admin_client.post("/admin/clients/c3/payments", json={"amount": 400})
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["client"]["amount_paid"] == 1000
        assert data["client"]["payment_status"] == "paid"
        assert data["notifications"][0]["message"] == "A payment of 400 MAD has been recorded."

    @pytest.mark.parametrize("amount", [0, -10, "abc", None])
    def test_invalid_amount(self, admin_client, amount):
        r = admin_client.post("/admin/clients/c3/payments", json={"amount": amount})
        assert r.status_code == 400
        detail = admin_client.get("/admin/clients/c3").get_json()["data"]["client"]
        assert detail["amount_paid"] == 600


class TestDocuments:
    def test_approve(self, admin_client):
        r = admin_client.post("/admin/clients/c2/documents/d1/approve")
        assert r.status_code == 200
        assert r.get_json()["data"]["notifications"][0]["title"] == "Document Approved"

    def test_reject_with_reason(self, admin_client):
        r = admin_client.post("/admin/clients/c2/documents/d1/reject", json={"reason": "Missing stamp"})
        assert r.status_code == 200
        note = r.get_json()["data"]["notifications"][0]
        assert note["type"] == "alert"
        assert note["message"] == 'Issue with "Invoices_Oct.pdf". Reason: Missing stamp Please check and re-upload.'

    def test_reject_requires_reason(self, admin_client):
        r = admin_client.post("/admin/clients/c2/documents/d1/reject", json={})
        assert r.status_code == 400

    def test_unknown_document(self, admin_client):
        r = admin_client.post("/admin/clients/c2/documents/d9/approve")
        assert r.status_code == 404
        assert r.get_json()["error"] == "Document not found."


class TestTimeline:
    def test_add_first_step(self, admin_client):
        r = admin_client.post("/admin/clients/c3/timeline", json={"label": "Filing"})
        assert r.status_code == 200
        client = r.get_json()["data"]["client"]
        assert client["progress"] == 0
        assert client["status_message"] == "Pending: Filing"

    def test_add_requires_label(self, admin_client):
        assert admin_client.post("/admin/clients/c3/timeline", json={"label": " "}).status_code == 400

    def test_complete_step(self, admin_client):
        r = admin_client.put("/admin/clients/c2/timeline/t2", json={"status": "completed"})
        data = r.get_json()["data"]
        assert data["client"]["progress"] == 100
        assert data["client"]["status_message"] == "Service Completed"
        assert [n["title"] for n in data["notifications"]] == ["Status Update"]

    def test_invalid_step_status(self, admin_client):
        r = admin_client.put("/admin/clients/c2/timeline/t2", json={"status": "done"})
        assert r.status_code == 400

    def test_unknown_step(self, admin_client):
        assert admin_client.put("/admin/clients/c2/timeline/t9", json={"status": "completed"}).status_code == 404

    def test_delete_step(self, admin_client):
        r = admin_client.delete("/admin/clients/c2/timeline/t2")
        client = r.get_json()["data"]["client"]
        assert [s["id"] for s in client["timeline"]] == ["t1"]
        assert client["progress"] == 100


class TestMessaging:
    def test_notify_client(self, admin_client, portal_client):
        r = admin_client.post("/admin/clients/c2/notify", json={"message": "Please call us.", "title": "Reminder"})
        assert r.status_code == 201
        assert r.get_json()["data"]["notification"]["title"] == "Reminder"

        inbox = portal_client.get("/client/me/notifications").get_json()["data"]
        assert inbox["unread"] == 1
        assert inbox["notifications"][0]["message"] == "Please call us."

    def test_notify_requires_message(self, admin_client):
        assert admin_client.post("/admin/clients/c2/notify", json={}).status_code == 400

    def test_quick_notify_queues_digest(self, admin_client, monkeypatch):
        from tasks.notifications import send_status_digest
        queued = []
        monkeypatch.setattr(send_status_digest, "delay", lambda client_id: queued.append(client_id))

        r = admin_client.post("/admin/clients/c2/quick-notify")
        assert r.status_code == 200
        assert r.get_json()["data"] == {"queued": True, "email": CLIENT_EMAIL}
        assert queued == ["c2"]

    def test_quick_notify_without_broker(self, admin_client, monkeypatch):
        from tasks.notifications import send_status_digest

        def unavailable(client_id):
            raise ConnectionError("broker down")

        monkeypatch.setattr(send_status_digest, "delay", unavailable)
        r = admin_client.post("/admin/clients/c2/quick-notify")
        assert r.status_code == 200
        assert r.get_json()["data"]["queued"] is False


class TestPortalAccess:
    def test_issue_credentials(self, admin_client, client):
        r = admin_client.post("/admin/clients/c3/access")
        assert r.status_code == 200
        creds = r.get_json()["data"]
        assert creds["email"] == "info@gonex.ma"
        assert len(creds["password"]) == 10

        login = client.post("/auth/login", json={"email": creds["email"], "password": creds["password"]})
        assert login.status_code == 200
        assert login.get_json()["data"]["user"]["id"] == "c3"

    def test_reset_existing_credentials(self, admin_client, client):
        creds = admin_client.post("/admin/clients/c2/access").get_json()["data"]
        r = client.post("/auth/login", json={"email": CLIENT_EMAIL, "password": creds["password"]})
        assert r.status_code == 200

    def test_admin_email_conflict(self, admin_client):
        from conftest import ADMIN_EMAIL
        record = admin_client.post("/admin/clients", json={
            "name": "Clash", "email": ADMIN_EMAIL, "company_name": "Clash SARL",
        }).get_json()["data"]["client"]
        r = admin_client.post(f"/admin/clients/{record['id']}/access")
        assert r.status_code == 409


class TestAdminFeed:
    def test_feed_and_read_state(self, admin_client, portal_client):
        portal_client.post("/client/me/messages", json={"message": "Hello"})
        feed = admin_client.get("/admin/notifications").get_json()["data"]
        assert feed["unread"] == 1
        note = feed["notifications"][0]
        assert note["title"] == "Message from THE BRAIN SARL AU"

        r = admin_client.post(f"/admin/notifications/{note['id']}/read")
        assert r.get_json()["data"] == {"changed": True, "unread": 0}

    def test_read_all(self, admin_client, portal_client):
        portal_client.post("/client/me/messages", json={"message": "One"})
        portal_client.post("/client/me/messages", json={"message": "Two"})
        data = admin_client.post("/admin/notifications/read-all").get_json()["data"]
        assert data == {"marked": 2, "unread": 0}


class TestStats:
    def test_totals(self, admin_client):
        data = admin_client.get("/admin/stats").get_json()["data"]
        assert data["total_clients"] == 2
        assert data["completed"] == 0
        assert data["contract_value"] == 25000
        assert data["amount_paid"] == 6600
        assert data["outstanding"] == 18400
        assert data["payment_status"]["partial"] == 2

    def test_audit_records_updates(self, admin_client):
        admin_client.post("/admin/clients/c3/payments", json={"amount": 100})
        entries = admin_client.get("/admin/audit?limit=5").get_json()["data"]["entries"]
        assert entries[0]["record_type"] == "payment"
        assert entries[0]["record_id"] == "c3"


class TestStaffRoster:
    def _add(self, admin_client, **body):
        return admin_client.post("/admin/employees", json=body)

    def test_add_with_defaults(self, admin_client):
        r = self._add(admin_client, name="Yahya", role="Head of Sales", email="Yahya@Practice.ma")
        assert r.status_code == 201
        member = r.get_json()["data"]["employee"]
        assert member["department"] == "General"
        assert member["status"] == "active"
        assert member["email"] == "yahya@practice.ma"
        assert member["join_date"] is not None

    @pytest.mark.parametrize("missing", ["name", "role", "email"])
    def test_required_fields(self, admin_client, missing):
        body = {"name": "Zaid", "role": "Creative Designer", "email": "zaid@practice.ma"}
        body[missing] = "  "
        r = self._add(admin_client, **body)
        assert r.status_code == 400
        assert missing in r.get_json()["error"]

    def test_duplicate_email(self, admin_client):
        self._add(admin_client, name="Zaid", role="Designer", email="zaid@practice.ma")
        r = self._add(admin_client, name="Zaid B", role="Designer", email="ZAID@practice.ma")
        assert r.status_code == 409

    def test_list_search_and_counts(self, admin_client, app):
        self._add(admin_client, name="Yahya", role="Head of Sales", department="Sales", email="y@practice.ma")
        self._add(admin_client, name="Zaid", role="Creative Designer", department="Design", email="z@practice.ma")
        self._add(admin_client, name="Fadoua", role="Assistant", email="f@practice.ma")

        with app.app_context():
            from database import db
            from models import StaffMember, StaffStatus
            StaffMember.query.filter_by(email="f@practice.ma").first().status = StaffStatus.on_leave
            db.session.commit()

        data = admin_client.get("/admin/employees").get_json()["data"]
        assert data["total"] == 3
        assert data["active"] == 2
        assert data["departments"] == 3
        assert {m["status"] for m in data["employees"]} == {"active", "on-leave"}

        found = admin_client.get("/admin/employees?search=design").get_json()["data"]
        assert [m["name"] for m in found["employees"]] == ["Zaid"]
        assert found["total"] == 3

    def test_add_is_audited(self, admin_client):
        self._add(admin_client, name="Yahya", role="Head of Sales", email="y@practice.ma")
        entries = admin_client.get("/admin/audit?limit=1").get_json()["data"]["entries"]
        assert entries[0]["record_type"] == "staff"

    def test_requires_admin(self, portal_client):
        assert portal_client.get("/admin/employees").status_code == 403
