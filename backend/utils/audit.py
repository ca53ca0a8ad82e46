"""
audit.py — Append-only audit trail of admin and login actions.
"""

from flask import current_app, session

from database import db
from models import AuditLog


def write_audit_log(action, record_type=None, record_id=None, details=None, performed_by=None):
    """
    Write an entry to the audit_logs table.

    An audit failure never blocks the action being audited; it is logged
    and the session rolled back.
    """
    try:
        entry = AuditLog(
            action=action,
            performed_by=performed_by or session.get("account_id"),
            record_type=record_type,
            record_id=record_id,
            details=details,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        current_app.logger.warning(f"Could not write audit log: {e}")
        db.session.rollback()


def recent_entries(limit=50):
    rows = AuditLog.query.order_by(AuditLog.timestamp.desc()).limit(limit).all()
    return [
        {
            "log_id":       r.log_id,
            "action":       r.action,
            "performed_by": r.performed_by,
            "record_type":  r.record_type,
            "record_id":    r.record_id,
            "timestamp":    r.timestamp.isoformat() if r.timestamp else None,
            "details":      r.details,
        }
        for r in rows
    ]
