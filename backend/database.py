import logging
from flask_sqlalchemy import SQLAlchemy

log = logging.getLogger(__name__)

db = SQLAlchemy()


def init_db(app):
    """Bind SQLAlchemy to the Flask app and create all tables."""
    db.init_app(app)
    create_tables(app)


def create_tables(app):
    with app.app_context():
        import models  # noqa: F401  registers the tables on db.metadata
        db.create_all()
        log.info("[DB] All tables created successfully.")
