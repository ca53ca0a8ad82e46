"""
admin.py — Admin routes: client files, follow-up, documents, payments, the
admin notification feed and the staff roster.

All routes return JSON. Engine errors (unknown client, bad amount, missing
rejection reason) are turned into responses by the app's error handlers.
"""

from decimal import Decimal
from flask import Blueprint, request, current_app

from database import db
from engine.ledger import outstanding, renewal_date
from engine.records import Actor, ClientUpdate, PaymentStatus, money_out
from engine.router import ADMIN_INBOX
from engine import timeline as steps
from models import PortalAccount, PortalRole, StaffMember, StaffStatus
from utils.audit import write_audit_log, recent_entries
from utils.auth import admin_required, generate_password, hash_password
from utils.portal import get_portal
from utils.response import success, created, error, not_found, update_result

admin_bp = Blueprint("admin", __name__)


# ── Client list ───────────────────────────────────────────
@admin_bp.route("/clients", methods=["GET"])
@admin_required
def list_clients():
    """
    GET /admin/clients?search=<text>&filter=all|action|completed
    "action" = has an uploaded document awaiting review, or is overdue.
    """
    search = (request.args.get("search") or "").strip().lower()
    filter_type = request.args.get("filter", "all")

    rows = []
    for record in get_portal().store.all():
        if filter_type == "action":
            waiting = any(d.status.value == "uploaded" for d in record.documents)
            if not waiting and record.payment_status is not PaymentStatus.overdue:
                continue
        elif filter_type == "completed" and record.progress != 100:
            continue

        if search and not _matches(record, search):
            continue
        rows.append(_summary(record))

    return success(data={"clients": rows, "total": len(rows)})


@admin_bp.route("/clients", methods=["POST"])
@admin_required
def create_client():
    """
    POST /admin/clients
    Body: { "name", "email", "company_name", ["company_category", "service_type",
            "contract_value", "currency", "timeline", ...] }
    """
    body = request.get_json() or {}
    missing = [f for f in ("name", "email", "company_name") if not (body.get(f) or body.get(_camel(f)))]
    if missing:
        return error(f"Missing required fields: {', '.join(missing)}")

    try:
        record = get_portal().onboard(body)
    except (KeyError, ValueError, TypeError) as e:
        return error("Malformed client data.", details=str(e))

    write_audit_log(
        action=f"Onboarded client '{record.company_name}'.",
        record_type="client",
        record_id=record.id,
    )
    return created(data={"client": record.to_dict()}, message="Client created.")


# ── Single client ─────────────────────────────────────────
@admin_bp.route("/clients/<client_id>", methods=["GET"])
@admin_required
def get_client(client_id):
    portal = get_portal()
    record = portal.store.get(client_id)
    data = record.to_dict()
    data.update(_finance(record))
    data["unread"] = portal.unread_count(client_id)
    return success(data={"client": data})


@admin_bp.route("/clients/<client_id>", methods=["PUT"])
@admin_required
def update_client(client_id):
    """
    PUT /admin/clients/<id>
    Body: any subset of the client record fields. Unknown keys are ignored.
    Returns the merged record and the notifications the change produced.
    """
    try:
        update = ClientUpdate.from_dict(request.get_json() or {})
    except (KeyError, ValueError, TypeError) as e:
        return error("Malformed update.", details=str(e))

    result = get_portal().apply_update(client_id, update)
    write_audit_log(
        action=f"Updated client '{result.record.company_name}'.",
        record_type="client",
        record_id=client_id,
        details={"fields": sorted(update.present())},
    )
    return update_result(result)


# ── Payments ──────────────────────────────────────────────
@admin_bp.route("/clients/<client_id>/payments", methods=["POST"])
@admin_required
def record_payment(client_id):
    """
    POST /admin/clients/<id>/payments
    Body: { "amount": number }
    """
    body = request.get_json() or {}
    result = get_portal().record_payment(client_id, body.get("amount"))
    write_audit_log(
        action=f"Recorded payment of {body.get('amount')} {result.record.currency}.",
        record_type="payment",
        record_id=client_id,
        details={"amount_paid": money_out(result.record.amount_paid)},
    )
    return update_result(result, message="Payment recorded.")


# ── Documents ─────────────────────────────────────────────
@admin_bp.route("/clients/<client_id>/documents/<doc_id>/approve", methods=["POST"])
@admin_required
def approve_document(client_id, doc_id):
    portal = get_portal()
    if not _has_document(portal.store.get(client_id), doc_id):
        return not_found("Document")
    result = portal.updates.approve_document(client_id, doc_id)
    return update_result(result, message="Document approved.")


@admin_bp.route("/clients/<client_id>/documents/<doc_id>/reject", methods=["POST"])
@admin_required
def reject_document(client_id, doc_id):
    """
    POST /admin/clients/<id>/documents/<doc>/reject
    Body: { "reason": str }  (required)
    """
    portal = get_portal()
    if not _has_document(portal.store.get(client_id), doc_id):
        return not_found("Document")
    reason = (request.get_json() or {}).get("reason")
    result = portal.updates.reject_document(client_id, doc_id, reason)
    return update_result(result, message="Document rejected.")


# ── Timeline ──────────────────────────────────────────────
@admin_bp.route("/clients/<client_id>/timeline", methods=["POST"])
@admin_required
def add_step(client_id):
    """Body: { "label": str, ["date": str] }"""
    body = request.get_json() or {}
    if not (body.get("label") or "").strip():
        return error("label is required.")
    portal = get_portal()
    record = portal.store.get(client_id)
    timeline = steps.add_step(record.timeline, body["label"], body.get("date"))
    return update_result(portal.apply_update(client_id, ClientUpdate(timeline=timeline)))


@admin_bp.route("/clients/<client_id>/timeline/<step_id>", methods=["PUT"])
@admin_required
def update_step(client_id, step_id):
    """Body: { ["status": "pending"|"in-progress"|"completed"], ["label": str] }"""
    body = request.get_json() or {}
    portal = get_portal()
    record = portal.store.get(client_id)
    if not steps.has_step(record.timeline, step_id):
        return not_found("Timeline step")

    timeline = record.timeline
    try:
        if body.get("status"):
            timeline = steps.set_step_status(timeline, step_id, body["status"])
    except ValueError:
        return error(f"Invalid step status: {body.get('status')!r}")
    if body.get("label"):
        timeline = steps.rename_step(timeline, step_id, body["label"])

    return update_result(portal.apply_update(client_id, ClientUpdate(timeline=timeline)))


@admin_bp.route("/clients/<client_id>/timeline/<step_id>", methods=["DELETE"])
@admin_required
def delete_step(client_id, step_id):
    portal = get_portal()
    record = portal.store.get(client_id)
    if not steps.has_step(record.timeline, step_id):
        return not_found("Timeline step")
    timeline = steps.remove_step(record.timeline, step_id)
    return update_result(portal.apply_update(client_id, ClientUpdate(timeline=timeline)))


# ── Messaging ─────────────────────────────────────────────
@admin_bp.route("/clients/<client_id>/notify", methods=["POST"])
@admin_required
def notify_client(client_id):
    """
    POST /admin/clients/<id>/notify
    Body: { "message": str, ["title": str] }
    """
    body = request.get_json() or {}
    text = (body.get("message") or "").strip()
    if not text:
        return error("message is required.")
    note = get_portal().notify(Actor.admin, client_id, text, title=body.get("title"))
    return created(data={"notification": note.to_dict()}, message="Client notified.")


@admin_bp.route("/clients/<client_id>/quick-notify", methods=["POST"])
@admin_required
def quick_notify(client_id):
    """
    POST /admin/clients/<id>/quick-notify
    Queues an e-mail with the client's current status and unread notices.
    """
    record = get_portal().store.get(client_id)
    try:
        from tasks.notifications import send_status_digest
        send_status_digest.delay(record.id)
        queued = True
    except Exception as e:
        current_app.logger.warning(f"Could not queue status digest for {record.id}: {e}")
        queued = False

    write_audit_log(
        action=f"Quick notify sent to '{record.email}'.",
        record_type="client",
        record_id=record.id,
        details={"queued": queued},
    )
    return success(data={"queued": queued, "email": record.email}, message="Notification queued.")


# ── Portal access ─────────────────────────────────────────
@admin_bp.route("/clients/<client_id>/access", methods=["POST"])
@admin_required
def create_access(client_id):
    """
    POST /admin/clients/<id>/access
    Creates (or resets) the client's portal credentials and returns the
    generated password once.
    """
    record = get_portal().store.get(client_id)
    email = record.email.strip().lower()
    password = generate_password()

    account = PortalAccount.query.filter_by(email=email).first()
    if account is None:
        account = PortalAccount(email=email, role=PortalRole.client, name=record.name)
        db.session.add(account)
    elif account.role is not PortalRole.client:
        return error("This e-mail belongs to an admin account.", 409)
    account.password_hash = hash_password(password)
    account.is_active = True
    db.session.commit()

    write_audit_log(
        action=f"Portal access issued for '{email}'.",
        record_type="account",
        record_id=account.account_id,
    )
    return success(data={"email": email, "password": password}, message="Access created.")


# ── Admin feed ────────────────────────────────────────────
@admin_bp.route("/notifications", methods=["GET"])
@admin_required
def admin_notifications():
    portal = get_portal()
    return success(data={
        "notifications": [n.to_dict() for n in portal.router.inbox(ADMIN_INBOX)],
        "unread":        portal.unread_count(ADMIN_INBOX),
    })


@admin_bp.route("/notifications/<notification_id>/read", methods=["POST"])
@admin_required
def admin_mark_read(notification_id):
    portal = get_portal()
    changed = portal.mark_read(ADMIN_INBOX, notification_id)
    return success(data={"changed": changed, "unread": portal.unread_count(ADMIN_INBOX)})


@admin_bp.route("/notifications/read-all", methods=["POST"])
@admin_required
def admin_mark_all_read():
    portal = get_portal()
    flipped = portal.mark_all_read(ADMIN_INBOX)
    return success(data={"marked": flipped, "unread": portal.unread_count(ADMIN_INBOX)})


# ── Staff roster ──────────────────────────────────────────
@admin_bp.route("/employees", methods=["GET"])
@admin_required
def list_employees():
    """
    GET /admin/employees?search=<text>
    Search matches name, role or department. Counts cover the whole roster.
    """
    search = (request.args.get("search") or "").strip().lower()
    staff = StaffMember.query.order_by(StaffMember.join_date.desc()).all()

    rows = [
        m.to_dict() for m in staff
        if not search or any(search in (v or "").lower() for v in (m.name, m.role, m.department))
    ]
    return success(data={
        "employees":   rows,
        "total":       len(staff),
        "active":      sum(1 for m in staff if m.status is StaffStatus.active),
        "departments": len({m.department for m in staff}),
    })


@admin_bp.route("/employees", methods=["POST"])
@admin_required
def add_employee():
    """
    POST /admin/employees
    Body: { "name", "role", "email", ["department", "phone", "avatar_url"] }
    New staff start active, in "General" unless a department is given.
    """
    body = request.get_json() or {}
    missing = [f for f in ("name", "role", "email") if not str(body.get(f) or "").strip()]
    if missing:
        return error(f"Missing required fields: {', '.join(missing)}")

    email = body["email"].strip().lower()
    if StaffMember.query.filter_by(email=email).first():
        return error("A staff member with this e-mail already exists.", 409)

    member = StaffMember(
        name=body["name"].strip(),
        role=body["role"].strip(),
        department=(body.get("department") or "").strip() or "General",
        email=email,
        phone=body.get("phone") or None,
        avatar_url=body.get("avatar_url") or body.get("avatarUrl") or None,
        status=StaffStatus.active,
    )
    db.session.add(member)
    db.session.commit()

    write_audit_log(
        action=f"Added staff member '{member.name}' ({member.department}).",
        record_type="staff",
        record_id=member.staff_id,
    )
    return created(data={"employee": member.to_dict()}, message="Employee added.")


# ── Finance / audit ───────────────────────────────────────
@admin_bp.route("/stats", methods=["GET"])
@admin_required
def stats():
    """
    GET /admin/stats
    Totals across all clients plus a count per payment status.
    """
    records = get_portal().store.all()
    contract = sum((r.contract_value for r in records), Decimal("0"))
    paid = sum((r.amount_paid for r in records), Decimal("0"))
    due = sum((outstanding(r) for r in records), Decimal("0"))

    by_status = {s.value: 0 for s in PaymentStatus}
    for r in records:
        by_status[r.payment_status.value] += 1

    return success(data={
        "total_clients":  len(records),
        "completed":      sum(1 for r in records if r.progress == 100),
        "contract_value": money_out(contract),
        "amount_paid":    money_out(paid),
        "outstanding":    money_out(due),
        "payment_status": by_status,
    })


@admin_bp.route("/audit", methods=["GET"])
@admin_required
def audit_log():
    limit = min(int(request.args.get("limit", 50)), 500)
    return success(data={"entries": recent_entries(limit)})


# ── Helpers ───────────────────────────────────────────────

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def _matches(record, needle: str) -> bool:
    haystack = (
        record.company_name, record.name, record.email,
        record.service_type, record.cin or "",
    )
    return any(needle in (value or "").lower() for value in haystack)


def _has_document(record, doc_id: str) -> bool:
    return any(d.id == doc_id for d in record.documents)


def _finance(record) -> dict:
    try:
        renewal = renewal_date(record).isoformat()
    except ValueError:
        renewal = None
    return {
        "outstanding":  money_out(outstanding(record)),
        "renewal_date": renewal,
    }


def _summary(record) -> dict:
    return {
        "id":             record.id,
        "name":           record.name,
        "email":          record.email,
        "company_name":   record.company_name,
        "service_type":   record.service_type,
        "progress":       record.progress,
        "status_message": record.status_message,
        "payment_status": record.payment_status.value,
        "unread":         record.unread_count(),
        "last_login":     record.last_login,
        **_finance(record),
    }
