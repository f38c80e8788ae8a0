# bookstore/tasks/outbox.py
from bookstore.celery_worker import celery_app
from bookstore.data.database import SessionLocal
from bookstore.services.outbox_worker import OutboxWorker
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="bookstore.tasks.outbox.drain_outbox_task")
def drain_outbox_task():
    db = SessionLocal()
    try:
        return OutboxWorker(db).drain()
    finally:
        db.close()
