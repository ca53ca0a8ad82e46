"""
notifications.py — Background e-mail delivery of client status digests.

Degrades gracefully when SendGrid is not configured: the task logs and
returns False instead of retrying forever.
"""

import logging
from tasks.celery_app import celery

log = logging.getLogger(__name__)


@celery.task(bind=True, name="tasks.send_status_digest", max_retries=3, default_retry_delay=60)
def send_status_digest(self, client_id: str):
    """
    E-mail a client their current phase, progress and unread notifications.
    Queued by the admin "quick notify" action.
    """
    from flask import current_app
    from utils.email import send_email, status_digest_email
    from utils.persistence import load_record_set

    # Persisted state, not this process's in-memory portal
    record = next((c for c in load_record_set().clients if c.id == client_id), None)
    if record is None or not record.email:
        log.warning(f"send_status_digest: no client or email for {client_id}")
        return False

    if not current_app.config.get("SENDGRID_API_KEY"):
        log.info(f"send_status_digest: SendGrid not configured, skipping {client_id}")
        return False

    unread = [n for n in record.notifications if not n.read]
    subject, html = status_digest_email(
        record,
        unread,
        practice_name=current_app.config.get("PRACTICE_NAME", "Practice Portal"),
        portal_url=current_app.config.get("PORTAL_BASE_URL", "").rstrip("/") + "/",
    )

    try:
        ok = send_email(to_email=record.email, subject=subject, html_body=html)
        if not ok:
            raise RuntimeError("SendGrid send returned False")
    except Exception as exc:
        log.warning(f"send_status_digest failed for {client_id} ({exc}), retrying…")
        raise self.retry(exc=exc)

    return True
