"""
client.py — Client portal routes. The logged-in client only ever sees and
edits their own engagement record.
"""

from flask import Blueprint, request, session, current_app

from engine.ledger import outstanding, renewal_date
from engine.records import Actor, ClientUpdate, PROFILE_FIELDS, money_out
from utils.auth import client_required, get_current_identity, apply_identity_patch, identity_to_dict
from utils.portal import get_portal
from utils.response import success, created, error, update_result

client_bp = Blueprint("client", __name__)


def _own_record():
    return get_portal().store.get(session["user_id"])


# ── Own file ──────────────────────────────────────────────
@client_bp.route("/me", methods=["GET"])
@client_required
def me():
    record = _own_record()
    data = record.to_dict()
    data["outstanding"] = money_out(outstanding(record))
    try:
        data["renewal_date"] = renewal_date(record).isoformat()
    except ValueError:
        data["renewal_date"] = None
    data["unread"] = record.unread_count()
    return success(data={"client": data})


@client_bp.route("/me/profile", methods=["PUT"])
@client_required
def update_profile():
    """
    PUT /client/me/profile
    Body: any of name, first_name, last_name, nationality, cin, company_name,
          company_category, phone, whatsapp, avatar_url.

    Engagement fields (progress, documents, payments…) are not editable here.
    A name/avatar change is mirrored onto the session.
    """
    body = request.get_json() or {}
    try:
        update = ClientUpdate.from_dict(body)
    except (KeyError, ValueError, TypeError) as e:
        return error("Malformed profile update.", details=str(e))

    blocked = set(update.present()) - set(PROFILE_FIELDS)
    update = update.without(*blocked)

    identity = get_current_identity()
    result = get_portal().apply_update(identity.id, update, identity=identity)
    identity = apply_identity_patch(result.identity_patch)

    data = result.to_dict()
    data["user"] = identity_to_dict(identity)
    return success(data=data, message="Profile updated.")


# ── Documents ─────────────────────────────────────────────
@client_bp.route("/me/documents", methods=["POST"])
@client_required
def upload_document():
    """
    POST /client/me/documents
    Body: { "name": str, ["type": str] }
    File storage is handled upstream; this records the upload on the file.
    """
    body = request.get_json() or {}
    name = (body.get("name") or "").strip()
    if not name:
        return error("name is required.")
    result = get_portal().updates.add_document(session["user_id"], name, body.get("type") or "Upload")
    return update_result(result, message="Document uploaded.")


# ── Notifications ─────────────────────────────────────────
@client_bp.route("/me/notifications", methods=["GET"])
@client_required
def notifications():
    portal = get_portal()
    inbox = session["user_id"]
    return success(data={
        "notifications": [n.to_dict() for n in portal.router.inbox(inbox)],
        "unread":        portal.unread_count(inbox),
    })


@client_bp.route("/me/notifications/<notification_id>/read", methods=["POST"])
@client_required
def mark_read(notification_id):
    portal = get_portal()
    inbox = session["user_id"]
    changed = portal.mark_read(inbox, notification_id)
    return success(data={"changed": changed, "unread": portal.unread_count(inbox)})


@client_bp.route("/me/notifications/read-all", methods=["POST"])
@client_required
def mark_all_read():
    portal = get_portal()
    inbox = session["user_id"]
    flipped = portal.mark_all_read(inbox)
    return success(data={"marked": flipped, "unread": portal.unread_count(inbox)})


# ── Messages to the practice ──────────────────────────────
@client_bp.route("/me/messages", methods=["POST"])
@client_required
def message_admin():
    """
    POST /client/me/messages
    Body: { "message": str }
    Lands in the admin feed as "Message from <company>". Long messages are
    cut to MESSAGE_PREVIEW_LENGTH before routing.
    """
    text = ((request.get_json() or {}).get("message") or "").strip()
    if not text:
        return error("message is required.")

    limit = current_app.config.get("MESSAGE_PREVIEW_LENGTH", 80)
    if len(text) > limit:
        text = text[:limit].rstrip() + "…"

    note = get_portal().notify(Actor.client, session["user_id"], text)
    return created(data={"notification": note.to_dict()}, message="Message sent.")
