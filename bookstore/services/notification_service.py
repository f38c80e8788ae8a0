# bookstore/services/notification_service.py
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from bookstore.data.models.outbox import OutboxMessageModel
from bookstore.domain.errors import PersistenceError
from bookstore.repos.outbox_repo import OutboxRepo
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

OPERATOR_ORDER_ALERT = "operator_order_alert"
ORDER_MESSAGE = "order_message"
NEW_BOOK_ALERT = "new_book_alert"
OPERATOR_ALERT = "operator_alert"

KINDS = (OPERATOR_ORDER_ALERT, ORDER_MESSAGE, NEW_BOOK_ALERT, OPERATOR_ALERT)


class NotificationService:
    """
    Records notification intents in the outbox.

    Nothing is delivered here: the outbox worker drains the intents with
    retries. Enqueue failures are logged and swallowed so the operation
    that triggered them keeps its outcome.
    """

    def __init__(self, db: Session):
        self.repo = OutboxRepo(db)

    def enqueue(self, kind: str, payload: dict[str, Any]) -> OutboxMessageModel | None:
        if kind not in KINDS:
            raise ValueError(f"unknown notification kind: {kind}")
        try:
            message = self.repo.add(OutboxMessageModel(kind=kind, payload=payload))
        except PersistenceError as e:
            logger.error(f"[NOTIFICATION] could not enqueue {kind}: {e}")
            return None
        logger.info(f"[NOTIFICATION] queued {kind} #{message.id}")
        return message

    def order_placed(self, order_id: int, order_number: str, customer_name: str, total_amount: Decimal) -> None:
        self.enqueue(
            OPERATOR_ORDER_ALERT,
            {
                "order_id": order_id,
                "order_number": order_number,
                "customer_name": customer_name,
                "total_amount": str(total_amount),
            },
        )
        self.enqueue(ORDER_MESSAGE, {"order_id": order_id, "template": "order_placed"})

    def order_completed(self, order_id: int) -> None:
        self.enqueue(ORDER_MESSAGE, {"order_id": order_id, "template": "order_completed"})

    def book_published(self, book_id: int) -> None:
        self.enqueue(NEW_BOOK_ALERT, {"book_id": book_id})

    def operator_alert(self, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        self.enqueue(OPERATOR_ALERT, {"title": title, "body": body, "data": data or {}})
