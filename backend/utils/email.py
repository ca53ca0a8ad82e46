"""
utils/email.py — Outbound e-mail through SendGrid.

Only one message is sent by the portal: the status digest queued by the
admin "quick notify" action. Without SENDGRID_API_KEY nothing is sent and
send_email() returns False.
"""

import html as html_lib
import logging
import re

log = logging.getLogger(__name__)

_ACCENT = "#2962cc"
_TYPE_COLOURS = {
    "info":    _ACCENT,
    "success": "#16a34a",
    "alert":   "#dc2626",
}


def send_email(to_email: str, subject: str, html_body: str, text_body: str = "", from_name: str = "") -> bool:
    """
    Deliver one message. Returns True when SendGrid accepted it.

    Failures are logged and reported through the return value; the caller
    decides whether to retry.
    """
    from flask import current_app

    cfg = current_app.config
    if not cfg.get("SENDGRID_API_KEY"):
        log.warning(f"SENDGRID_API_KEY unset; digest for {to_email} not sent.")
        return False

    from sendgrid import SendGridAPIClient
    from sendgrid.helpers.mail import Mail, Email

    message = Mail(
        from_email=Email(cfg.get("SENDGRID_FROM_EMAIL"), from_name or cfg.get("PRACTICE_NAME")),
        to_emails=to_email,
        subject=subject,
        plain_text_content=text_body or _html_to_plain(html_body),
        html_content=html_body,
    )

    try:
        response = SendGridAPIClient(cfg["SENDGRID_API_KEY"]).send(message)
    except Exception as exc:
        log.error(f"SendGrid rejected mail to {to_email}: {exc}")
        return False

    accepted = response.status_code in (200, 202)
    if accepted:
        log.info(f"Mail to {to_email} accepted by SendGrid ({subject!r}).")
    else:
        log.error(f"SendGrid answered {response.status_code} for mail to {to_email}.")
    return accepted


def _html_to_plain(html: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</(p|li|h\d)>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return html_lib.unescape(text).strip()


# ── Digest template ───────────────────────────────────────────────────────────

def _notice_item(note) -> str:
    colour = _TYPE_COLOURS.get(note.type.value, _ACCENT)
    return (
        f'<li style="margin:0 0 10px;padding-left:10px;border-left:3px solid {colour};">'
        f"<b>{html_lib.escape(note.title)}</b><br>{html_lib.escape(note.message)}</li>"
    )


def status_digest_email(record, unread: list, practice_name: str, portal_url: str) -> tuple[str, str]:
    """
    (subject, html) for a client's status digest: service, current phase,
    progress, and each notification still unread.
    """
    esc = html_lib.escape
    subject = f"{record.service_type}: {record.status_message or 'status update'} ({record.progress}%)"

    if unread:
        notices = "<p>Since your last visit:</p>\n<ul style=\"list-style:none;padding:0;\">\n"
        notices += "\n".join(_notice_item(n) for n in unread)
        notices += "\n</ul>"
    else:
        notices = "<p>There are no new updates on your file.</p>"

    body = f"""<!DOCTYPE html>
<html>
<body style="font-family:Helvetica,Arial,sans-serif;color:#1e293b;max-width:560px;margin:auto;padding:24px;">
<h2 style="margin:0 0 4px;color:#0f1a2e;">{esc(practice_name)}</h2>
<div style="height:2px;background:{_ACCENT};margin-bottom:24px;"></div>
<p>Dear <b>{esc(record.name)}</b>,</p>
<p>Your <b>{esc(record.service_type)}</b> file for <b>{esc(record.company_name)}</b>
is at <b>{record.progress}%</b>: {esc(record.status_message or "")}</p>
{notices}
<p style="margin:32px 0;text-align:center;">
<a href="{esc(portal_url)}" style="display:inline-block;padding:12px 28px;border-radius:4px;
background:{_ACCENT};color:#fff;font-weight:600;text-decoration:none;">Open my portal</a>
</p>
</body>
</html>
"""
    return subject, body
