"""
conftest.py — Pytest fixtures for the Practice Portal.

Engine tests build an EngagementPortal around an in-memory persist callback
and a frozen clock; no Flask app is involved. Route tests get a fresh app
per test on an in-memory SQLite database, seeded with one admin and two
client files.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Put backend on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

os.environ.setdefault("FLASK_ENV",        "testing")
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL",     "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL",        "redis://localhost:6379/0")

FROZEN_NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

ADMIN_EMAIL = "admin@test.ma"
ADMIN_PASSWORD = "testpass"
CLIENT_EMAIL = "contact@thebrain.ma"
CLIENT_PASSWORD = "brain-pass"


def brain_client_data():
    return {
        "id": "c2",
        "email": CLIENT_EMAIL,
        "name": "Brain Admin",
        "company_name": "THE BRAIN SARL AU",
        "company_category": "Consulting",
        "service_type": "Fiscal Advisory",
        "progress": 75,
        "status_message": "Monthly Declaration",
        "timeline": [
            {"id": "t1", "label": "Setup", "status": "completed"},
            {"id": "t2", "label": "Monthly Declaration", "status": "in-progress"},
        ],
        "documents": [
            {"id": "d1", "name": "Invoices_Oct.pdf", "type": "Financial",
             "status": "uploaded", "upload_date": "2023-10-25"},
            {"id": "d2", "name": "CIN_Manager.jpg", "type": "Identity",
             "status": "rejected", "rejection_reason": "Blurry scan"},
        ],
        "contract_value": 24000,
        "amount_paid": 6000,
        "currency": "MAD",
        "payment_status": "partial",
        "mission_start_date": "2025-01-15",
    }


def gonex_client_data():
    return {
        "id": "c3",
        "email": "info@gonex.ma",
        "name": "Gonex Manager",
        "company_name": "GONEX SARL AU",
        "service_type": "Legal Follow-up",
        "progress": 40,
        "status_message": "Kick-off",
        "timeline": [],
        "contract_value": 1000,
        "amount_paid": 600,
        "currency": "MAD",
        "payment_status": "partial",
        "mission_start_date": "2024-02-29",
    }


# ─── Engine fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def persisted():
    """Every record set handed to the persist callback, in order."""
    return []


@pytest.fixture
def store(persisted):
    from engine.records import ClientEngagement
    from engine.store import ClientRecordStore

    return ClientRecordStore(
        [ClientEngagement.from_dict(brain_client_data()), ClientEngagement.from_dict(gonex_client_data())],
        persist=persisted.append,
    )


@pytest.fixture
def portal(store):
    from engine.portal import EngagementPortal
    return EngagementPortal(store, clock=lambda: FROZEN_NOW)


# ─── App fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def app():
    """Application on an in-memory SQLite database with seeded accounts and clients."""
    from config import TestingConfig
    from app import create_app

    class TestConfig(TestingConfig):
        SECRET_KEY             = "test-secret"
        MESSAGE_PREVIEW_LENGTH = 20

    test_app = create_app(TestConfig)

    with test_app.app_context():
        from database import db
        from models import PortalAccount, PortalRole
        from utils.portal import get_portal
        from werkzeug.security import generate_password_hash

        portal = get_portal()
        portal.store.add(_record(brain_client_data()))
        portal.store.add(_record(gonex_client_data()))

        admin = PortalAccount(
            email=ADMIN_EMAIL,
            name="Test Admin",
            password_hash=generate_password_hash(ADMIN_PASSWORD),
            role=PortalRole.admin,
        )
        client_account = PortalAccount(
            email=CLIENT_EMAIL,
            password_hash=generate_password_hash(CLIENT_PASSWORD),
            role=PortalRole.client,
        )
        db.session.add_all([admin, client_account])
        db.session.commit()

        test_app._test_admin_account_id = admin.account_id
        test_app._test_client_account_id = client_account.account_id

    yield test_app


def _record(data):
    from engine.records import ClientEngagement
    return ClientEngagement.from_dict(data)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    """Authenticated admin test client."""
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["user_id"]    = app._test_admin_account_id
        sess["account_id"] = app._test_admin_account_id
        sess["role"]       = "admin"
        sess["name"]       = "Test Admin"
        sess["email"]      = ADMIN_EMAIL
    return c


@pytest.fixture
def portal_client(app):
    """Authenticated client-portal test client for THE BRAIN SARL AU (c2)."""
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["user_id"]    = "c2"
        sess["account_id"] = app._test_client_account_id
        sess["role"]       = "client"
        sess["name"]       = "Brain Admin"
        sess["email"]      = CLIENT_EMAIL
    return c
