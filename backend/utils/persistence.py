"""
persistence.py — Load / persist hooks between the engagement store and the
database.

The full record set is written on every mutation; there is no delta
contract. Both hooks must run inside an application context.
"""

import logging
from flask import current_app

from database import db
from engine.records import RecordSet
from models import PortalSnapshot, utcnow

log = logging.getLogger(__name__)


def load_record_set() -> RecordSet:
    """Read the client records and admin feed snapshots. Missing keys load as empty."""
    clients = _read(current_app.config["RECORD_SET_KEY"]) or []
    feed    = _read(current_app.config["ADMIN_FEED_KEY"]) or []
    return RecordSet.from_dict({"clients": clients, "admin_feed": feed})


def persist_record_set(record_set: RecordSet):
    """Write both snapshots in a single commit."""
    payload = record_set.to_dict()
    try:
        _write(current_app.config["RECORD_SET_KEY"], payload["clients"])
        _write(current_app.config["ADMIN_FEED_KEY"], payload["admin_feed"])
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception("Could not persist the client record set.")
        raise
    log.debug(
        "Persisted %d client record(s), %d admin notification(s).",
        len(payload["clients"]), len(payload["admin_feed"]),
    )


def _read(key: str):
    snapshot = db.session.get(PortalSnapshot, key)
    return snapshot.payload if snapshot else None


def _write(key: str, payload):
    snapshot = db.session.get(PortalSnapshot, key)
    if snapshot is None:
        db.session.add(PortalSnapshot(key=key, payload=payload))
    else:
        # Reassign so the JSON column is flagged dirty.
        snapshot.payload = payload
        snapshot.updated_at = utcnow()
