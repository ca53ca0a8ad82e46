"""
celery_app.py — Celery instance whose tasks run inside a Flask app context.

Workers build their own Flask app on first use; tasks read client files
straight from the database.
"""

from celery import Celery, Task
from config import get_config

_config = get_config()
_flask_app = None


def flask_app():
    global _flask_app
    if _flask_app is None:
        from app import create_app
        _flask_app = create_app()
    return _flask_app


class AppContextTask(Task):
    abstract = True

    def __call__(self, *args, **kwargs):
        with flask_app().app_context():
            return super().__call__(*args, **kwargs)


celery = Celery(
    "practice_portal",
    broker=_config.CELERY_BROKER_URL,
    backend=_config.CELERY_RESULT_BACKEND,
    task_cls=AppContextTask,
    include=["tasks.notifications"],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Africa/Casablanca",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)
