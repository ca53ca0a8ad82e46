"""
app.py — Flask application factory for the Practice Portal.

The factory binds the database, loads the client record set into a single
EngagementPortal and mounts the auth, admin and client blueprints.
"""

import logging
import time
from datetime import datetime, timezone
from flask import Flask, jsonify, request, g
from werkzeug.exceptions import HTTPException

from config import get_config
from database import db, init_db
from engine.errors import EngineError
from engine.router import ADMIN_INBOX
from utils.portal import init_portal, get_portal
from utils.response import engine_error, error

VERSION = "0.1.0"


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    _configure_logging(app)
    _init_extensions(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_hooks(app)
    _register_health_check(app)

    return app


# ─── Logging ──────────────────────────────────────────────────────────────────

def _configure_logging(app):
    level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    app.logger.setLevel(level)
    logging.getLogger("engine").setLevel(level)
    # SQL echo is noise at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ─── Extensions ───────────────────────────────────────────────────────────────

def _init_extensions(app):
    init_db(app)
    portal = init_portal(app)
    app.logger.info(f"[PORTAL] {len(portal.store)} client file(s) loaded.")


# ─── Blueprints ───────────────────────────────────────────────────────────────

def _register_blueprints(app):
    from routes.auth   import auth_bp
    from routes.admin  import admin_bp
    from routes.client import client_bp

    app.register_blueprint(auth_bp,   url_prefix="/auth")
    app.register_blueprint(admin_bp,  url_prefix="/admin")
    app.register_blueprint(client_bp, url_prefix="/client")


# ─── Error handlers ───────────────────────────────────────────────────────────

def _register_error_handlers(app):

    @app.errorhandler(EngineError)
    def engine_failure(e):
        app.logger.info(f"{request.method} {request.path} → {type(e).__name__}: {e.message}")
        return engine_error(e)

    @app.errorhandler(HTTPException)
    def http_failure(e):
        if e.code == 404:
            return error(f"Route not found: {request.path}", 404)
        return error(e.name + ".", e.code, details=e.description if e.code == 400 else None)

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.exception("Unhandled server error")
        return error("Internal server error.", 500)


# ─── Request / response hooks ─────────────────────────────────────────────────

def _register_hooks(app):

    @app.before_request
    def start_timer():
        g.request_start = time.perf_counter()

    @app.after_request
    def finish_response(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if app.config.get("DEBUG"):
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"

        started = g.pop("request_start", None)
        if started is not None:
            elapsed = (time.perf_counter() - started) * 1000
            app.logger.debug(f"{request.method} {request.path} → {response.status_code} ({elapsed:.1f}ms)")

        return response


# ─── Health check ─────────────────────────────────────────────────────────────

def _register_health_check(app):

    @app.route("/health")
    def health():
        """
        GET /health
        Database connectivity plus the size of the in-memory record set.
        """
        try:
            db.session.execute(db.text("SELECT 1"))
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {e}"

        portal = get_portal()
        return jsonify({
            "status":       "ok" if db_status == "ok" else "degraded",
            "database":     db_status,
            "clients":      len(portal.store),
            "admin_unread": portal.unread_count(ADMIN_INBOX),
            "timestamp":    datetime.now(timezone.utc).isoformat(),
            "version":      VERSION,
        }), 200 if db_status == "ok" else 503

    @app.route("/")
    def index():
        return jsonify({
            "platform": app.config.get("PRACTICE_NAME", "Practice Portal"),
            "version":  VERSION,
            "areas":    ["/auth", "/admin", "/client"],
            "health":   "/health",
        })


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5000, host="0.0.0.0")
