"""
auth.py — Login, logout and session status for admin and client users.
"""

from flask import Blueprint, request, session, current_app

from engine.records import Actor, SessionIdentity
from utils.audit import write_audit_log
from utils.auth import (
    login_required, verify_credentials, start_session,
    get_current_identity, identity_to_dict,
)
from utils.portal import get_portal
from utils.response import success, error, unauthorized

auth_bp = Blueprint("auth", __name__)


# ─── Login ────────────────────────────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
def login():
    """
    POST /auth/login
    Body: { "email": str, "password": str, "role": "admin" | "client" }

    A client login only succeeds when the e-mail is bound to an engagement
    record. On success sets the session and returns the session identity.
    """
    if request.is_json:
        body = request.get_json() or {}
    else:
        body = request.form.to_dict()

    email    = (body.get("email") or "").strip().lower()
    password = body.get("password") or ""
    role     = body.get("role") or Actor.client.value

    if not email or not password:
        return error("Email and password are required.", 400)
    if role not in (Actor.admin.value, Actor.client.value):
        return error("role must be 'admin' or 'client'.")

    account = verify_credentials(email, password, role)
    if account is None:
        _log_failed_login(email)
        return unauthorized("Invalid email or password.")

    if role == Actor.admin.value:
        identity = SessionIdentity(
            id=account.account_id,
            name=account.name or "Admin",
            email=account.email,
            role=Actor.admin,
        )
    else:
        portal = get_portal()
        record = portal.store.find_by_email(email)
        if record is None:
            _log_failed_login(email)
            return unauthorized("No client file is linked to this account.")
        portal.touch_login(record.id)
        identity = SessionIdentity(
            id=record.id,
            name=record.name,
            email=record.email,
            role=Actor.client,
            avatar_url=record.avatar_url,
        )

    start_session(identity, account.account_id)
    write_audit_log(
        action=f"{identity.role.value.title()} '{identity.name}' logged in.",
        record_type="account",
        record_id=account.account_id,
    )

    return success(data={"user": identity_to_dict(identity)}, message="Login successful.")


# ─── Logout ───────────────────────────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    identity = get_current_identity()
    write_audit_log(
        action=f"{identity.role.value.title()} '{identity.name}' logged out.",
        record_type="account",
        record_id=session.get("account_id"),
    )
    session.clear()
    return success(message="Logged out.")


# ─── Session status ───────────────────────────────────────────────────────────

@auth_bp.route("/session", methods=["GET"])
def session_status():
    """
    GET /auth/session
    { "authenticated": bool, "user": {...} }
    """
    identity = get_current_identity()
    if identity is None:
        return success(data={"authenticated": False})
    return success(data={"authenticated": True, "user": identity_to_dict(identity)})


def _log_failed_login(email: str):
    current_app.logger.warning(f"Failed login attempt for email: {email}")
