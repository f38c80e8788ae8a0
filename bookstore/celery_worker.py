# bookstore/celery_worker.py
from celery import Celery

from bookstore.utils.logging import configure_logging
from bookstore.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, OUTBOX_POLL_SECONDS

configure_logging()

celery_app = Celery(
    "bookstore",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks are imported explicitly so the worker registers them
celery_app.conf.imports = (
    "bookstore.tasks.outbox",
)

celery_app.conf.beat_schedule = {
    "drain-notification-outbox": {
        "task": "bookstore.tasks.outbox.drain_outbox_task",
        "schedule": OUTBOX_POLL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
