"""
auth.py — Session decorators, credential lookup and session identity helpers.

Login is a plain credential lookup, not a hardened security boundary.
"""

import secrets
import string
import time
from functools import wraps
from flask import session, current_app
from werkzeug.security import check_password_hash, generate_password_hash

from engine.records import Actor, IdentityPatch, SessionIdentity
from utils.response import unauthorized, forbidden


# ─── Decorators ───────────────────────────────────────────────────────────────

def login_required(f):
    """Require any logged-in session. Returns 401 otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get("user_id"):
            return unauthorized("You must be logged in.")
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Require role == admin. Returns 401/403 otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get("user_id"):
            return unauthorized("You must be logged in.")
        if session.get("role") != Actor.admin.value:
            return forbidden("Admin access required.")
        return f(*args, **kwargs)
    return decorated


def client_required(f):
    """Require role == client. Returns 401/403 otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get("user_id"):
            return unauthorized("You must be logged in.")
        if session.get("role") != Actor.client.value:
            return forbidden("Client access required.")
        return f(*args, **kwargs)
    return decorated


# ─── Credentials ──────────────────────────────────────────────────────────────

def verify_credentials(email: str, password: str, role: str):
    """
    Look up a portal account by e-mail (case-insensitive) and check its
    password. Returns the account, or None for wrong credentials.

    Sleeps LOGIN_DELAY_SECONDS first to simulate a remote check.
    """
    from models import PortalAccount, PortalRole

    delay = current_app.config.get("LOGIN_DELAY_SECONDS", 0)
    if delay:
        time.sleep(delay)

    email = (email or "").strip().lower()
    account = PortalAccount.query.filter_by(email=email, is_active=True).first()
    if not account or not check_password_hash(account.password_hash, password or ""):
        return None
    if account.role is not PortalRole(role):
        return None
    return account


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def generate_password(length: int = None) -> str:
    """Random password for a client's first portal access."""
    length = length or current_app.config.get("GENERATED_PASSWORD_LENGTH", 10)
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


# ─── Session helpers ──────────────────────────────────────────────────────────

def start_session(identity: SessionIdentity, account_id: str):
    session.clear()
    session.permanent = True
    session["user_id"]    = identity.id
    session["account_id"] = account_id
    session["role"]       = identity.role.value
    session["name"]       = identity.name
    session["email"]      = identity.email
    session["avatar_url"] = identity.avatar_url


def get_current_identity() -> SessionIdentity | None:
    """Return the session identity. None if not logged in."""
    if not session.get("user_id"):
        return None
    return SessionIdentity(
        id=session["user_id"],
        name=session.get("name") or "",
        email=session.get("email") or "",
        role=Actor(session["role"]),
        avatar_url=session.get("avatar_url"),
    )


def apply_identity_patch(patch: IdentityPatch | None) -> SessionIdentity | None:
    """Mirror a client's own name/avatar change onto their session."""
    identity = get_current_identity()
    if identity is None or patch is None:
        return identity
    identity = identity.patched(patch)
    session["name"] = identity.name
    session["avatar_url"] = identity.avatar_url
    return identity


def identity_to_dict(identity: SessionIdentity) -> dict:
    return {
        "id":         identity.id,
        "name":       identity.name,
        "email":      identity.email,
        "role":       identity.role.value,
        "avatar_url": identity.avatar_url,
    }
