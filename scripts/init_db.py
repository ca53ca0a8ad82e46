"""
init_db.py — One-time database initialisation script.

Run this once to:
  1. Create all tables via SQLAlchemy
  2. Seed the admin account
  3. Seed a handful of demo client files with portal access
  4. Seed the practice staff roster

Usage:
    python scripts/init_db.py
"""

import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from werkzeug.security import generate_password_hash

from app import create_app
from database import db
from engine.errors import DuplicateClientError
from models import PortalAccount, PortalRole, StaffMember
from utils.portal import get_portal


ADMIN = {"email": "admin@practice.ma", "name": "Practice Admin", "password": "admin2024"}

DEMO_CLIENTS = [
    {
        "client": {
            "email": "contact@mpldigital.com",
            "name": "MPL Admin",
            "company_name": "MPL DIGITAL WORKS SARL",
            "company_category": "Digital Services",
            "service_type": "Company Creation",
            "timeline": [
                {"id": "t1", "label": "Negative Certificate", "status": "completed"},
                {"id": "t2", "label": "Legal Statutes", "status": "completed"},
                {"id": "t3", "label": "RC Registration", "status": "completed"},
            ],
            "contract_value": 12000,
            "amount_paid": 12000,
        },
        "password": "mpl2024",
    },
    {
        "client": {
            "email": "contact@thebrain.ma",
            "name": "Brain Admin",
            "company_name": "THE BRAIN SARL AU",
            "company_category": "Consulting",
            "service_type": "Fiscal Advisory",
            "timeline": [
                {"id": "t1", "label": "Setup", "status": "completed"},
                {"id": "t2", "label": "Monthly Declaration", "status": "in-progress"},
            ],
            "documents": [
                {"id": "d1", "name": "Invoices_Oct.pdf", "type": "Financial",
                 "status": "uploaded", "upload_date": "2023-10-25"},
            ],
            "contract_value": 24000,
            "amount_paid": 6000,
        },
        "password": "brain2024",
    },
    {
        "client": {
            "email": "info@gonex.ma",
            "name": "Gonex Manager",
            "company_name": "GONEX SARL AU",
            "company_category": "Import/Export",
            "service_type": "Legal Follow-up",
            "timeline": [
                {"id": "t1", "label": "File Submission", "status": "completed"},
                {"id": "t2", "label": "Processing", "status": "in-progress"},
            ],
            "contract_value": 15000,
            "amount_paid": 15000,
        },
        "password": "gonex2024",
    },
]


STAFF = [
    {"name": "Yahya", "role": "Head of Sales", "department": "Sales",
     "email": "yahya@practice.ma", "phone": "+212 600-000001"},
    {"name": "Zaid", "role": "Creative Designer", "department": "Design",
     "email": "zaid@practice.ma", "phone": "+212 600-000002"},
    {"name": "Fadoua", "role": "Executive Assistant", "department": "Administration",
     "email": "fadoua@practice.ma", "phone": "+212 600-000003"},
]


def seed_account(email, password, role, name=None):
    email = email.lower()
    if PortalAccount.query.filter_by(email=email).first():
        print(f"[SEED] Account {email} already exists — skipping.")
        return
    db.session.add(PortalAccount(
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        name=name,
    ))
    db.session.commit()
    print(f"[SEED] {role.value.title()} account: {email} / {password}")


def seed_clients():
    portal = get_portal()
    for demo in DEMO_CLIENTS:
        try:
            record = portal.onboard(demo["client"])
            print(f"[SEED] Client {record.company_name} ({record.progress}%, {record.payment_status.value})")
        except DuplicateClientError:
            print(f"[SEED] Client {demo['client']['email']} already exists — skipping.")
        seed_account(demo["client"]["email"], demo["password"], PortalRole.client)


def seed_staff():
    for member in STAFF:
        email = member["email"].lower()
        if StaffMember.query.filter_by(email=email).first():
            print(f"[SEED] Staff member {email} already exists — skipping.")
            continue
        db.session.add(StaffMember(**{**member, "email": email}))
        db.session.commit()
        print(f"[SEED] Staff member {member['name']} ({member['department']})")


def main():
    print("=" * 60)
    print(" Practice Portal — Database Initialisation")
    print("=" * 60)

    # create_app() creates the tables and loads the record set
    app = create_app()

    with app.app_context():
        seed_account(ADMIN["email"], ADMIN["password"], PortalRole.admin, ADMIN["name"])
        seed_clients()
        seed_staff()

    print("[SEED] IMPORTANT: Change these passwords immediately in production.")
    print("=" * 60)
    print(" Database initialisation complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()
