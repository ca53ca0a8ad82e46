"""
portal.py — Binds one EngagementPortal to the Flask app.

The record set is loaded once at start-up; every mutation afterwards is
handed back to the database through persist_record_set().
"""

from flask import current_app

from engine.portal import EngagementPortal
from utils.persistence import load_record_set, persist_record_set

EXTENSION_KEY = "engagement_portal"


def init_portal(app) -> EngagementPortal:
    with app.app_context():
        portal = EngagementPortal.load(
            load_record_set,
            persist=persist_record_set,
            default_currency=app.config.get("DEFAULT_CURRENCY", "MAD"),
        )
    app.extensions[EXTENSION_KEY] = portal
    return portal


def get_portal() -> EngagementPortal:
    return current_app.extensions[EXTENSION_KEY]
