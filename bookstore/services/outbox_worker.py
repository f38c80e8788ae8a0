"""Drains the notification outbox.

Each intent is handled on its own: a failure backs the intent off
exponentially and never affects the others. Intents that can never
succeed (their order or book is gone) fail immediately.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from bookstore.data.models.outbox import OutboxMessageModel
from bookstore.domain.errors import NotFoundError, NotificationDispatchError
from bookstore.repos.book_repo import BookRepo
from bookstore.repos.outbox_repo import OutboxRepo
from bookstore.services.dispatcher import NotificationDispatcher
from bookstore.services.message_composer import build_deep_link, compose_order_message
from bookstore.services.message_sender import MessageSender
from bookstore.services.notification_service import (
    OPERATOR_ORDER_ALERT,
    ORDER_MESSAGE,
    NEW_BOOK_ALERT,
    OPERATOR_ALERT,
)
from bookstore.services.order_service import OrderService
from bookstore.services.push_sender import PushSender, WebPushSender
from bookstore.utils.retry import backoff_seconds
from bookstore.utils.settings import (
    OUTBOX_BATCH_SIZE,
    OUTBOX_MAX_ATTEMPTS,
    OUTBOX_BACKOFF_BASE_SECONDS,
    OUTBOX_BACKOFF_MAX_SECONDS,
    OUTBOX_LEASE_SECONDS,
)
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


class OutboxWorker:
    def __init__(
        self,
        db: Session,
        sender_factory: Callable[[], PushSender] = WebPushSender,
        message_sender: MessageSender | None = None,
        max_attempts: int = OUTBOX_MAX_ATTEMPTS,
        backoff_base: float = OUTBOX_BACKOFF_BASE_SECONDS,
        backoff_max: float = OUTBOX_BACKOFF_MAX_SECONDS,
        lease_seconds: float = OUTBOX_LEASE_SECONDS,
    ):
        self.db = db
        self.repo = OutboxRepo(db)
        self.books = BookRepo(db)
        self.orders = OrderService(db)
        self.sender_factory = sender_factory
        self.message_sender = message_sender or MessageSender()
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.lease_seconds = lease_seconds
        self._dispatcher = None

        self.handlers = {
            OPERATOR_ORDER_ALERT: self._operator_order_alert,
            ORDER_MESSAGE: self._order_message,
            NEW_BOOK_ALERT: self._new_book_alert,
            OPERATOR_ALERT: self._operator_alert,
        }

    @property
    def dispatcher(self) -> NotificationDispatcher:
        # built on first use, so missing VAPID keys fail the intent, not the drain
        if self._dispatcher is None:
            self._dispatcher = NotificationDispatcher(self.db, self.sender_factory())
        return self._dispatcher

    def drain(self, now: datetime | None = None, limit: int = OUTBOX_BATCH_SIZE) -> dict:
        now = now or datetime.now(timezone.utc)
        stats = {"processed": 0, "sent": 0, "retried": 0, "failed": 0}

        for _ in range(limit):
            message = self.repo.next_due(now)
            if message is None:
                break
            stats["processed"] += 1
            stats[self._process(message, now)] += 1

        if stats["processed"]:
            logger.info(f"Outbox drained: {stats}")
        return stats

    def _process(self, message: OutboxMessageModel, now: datetime) -> str:
        handler = self.handlers.get(message.kind)
        self._claim(message, now)
        try:
            if handler is None:
                raise NotificationDispatchError(f"no handler for {message.kind}")
            handler(message.payload or {})
        except (NotFoundError, NotificationDispatchError) as e:
            self._fail(message, now, str(e))
            outcome = "failed"
        except Exception as e:
            logger.warning(f"[NOTIFICATION] {message.kind} #{message.id} attempt {message.attempts} failed: {e}")
            # drop whatever the handler left half-written; the claim is already committed
            self.db.rollback()
            if message.attempts >= self.max_attempts:
                self._fail(message, now, str(e))
                outcome = "failed"
            else:
                delay = backoff_seconds(message.attempts, self.backoff_base, self.backoff_max)
                message.last_error = str(e)
                message.next_attempt_at = now + timedelta(seconds=delay)
                outcome = "retried"
        else:
            message.status = "sent"
            message.sent_at = now
            message.last_error = None
            outcome = "sent"

        self.repo.commit()
        return outcome

    def _claim(self, message: OutboxMessageModel, now: datetime) -> None:
        """Pushes the row out of the due window while its handler runs.

        The commit ends the row lock, so an overlapping drain has to see the
        message as not due yet. A worker that dies mid-handler leaves the
        message to be retried once the lease runs out.
        """
        message.attempts += 1
        message.next_attempt_at = now + timedelta(seconds=self.lease_seconds)
        self.repo.commit()

    def _fail(self, message: OutboxMessageModel, now: datetime, error: str) -> None:
        logger.error(f"[NOTIFICATION] {message.kind} #{message.id} given up after {message.attempts} attempt(s): {error}")
        message.status = "failed"
        message.last_error = error

    # handlers
    def _operator_order_alert(self, payload: dict) -> None:
        total = Decimal(str(payload.get("total_amount", "0")))
        result = self.dispatcher.notify_operator(
            "New order received",
            f"Order {payload['order_number']} by {payload.get('customer_name', '')} - Total: ${total:.2f}",
            {
                "url": "/admin?tab=orders",
                "orderId": payload["order_id"],
                "orderNumber": payload["order_number"],
            },
        )
        if result.sent == 0:
            logger.warning(f"Operator alert for {payload['order_number']} reached nobody ({result.as_dict()})")

    def _order_message(self, payload: dict) -> None:
        order = self.orders.get_order_detail(payload["order_id"])
        template = payload.get("template", "order_completed")
        items = [
            {
                "title": item["book"]["title"] if item["book"] else f"Book #{item['book_id']}",
                "author": item["book"]["author"] if item["book"] else None,
                "quantity": item["quantity"],
                "unit_price": item["unit_price"],
                "subtotal": item["subtotal"],
            }
            for item in order["items"]
        ]
        try:
            text = compose_order_message(order, items, template)
        except ValueError as e:
            raise NotificationDispatchError(str(e)) from e
        link = build_deep_link(order, items, template, number=self.message_sender.number or None)
        self.message_sender.send(text, link, reference=order["order_number"])

    def _new_book_alert(self, payload: dict) -> None:
        book = self.books.get_book(payload["book_id"])
        if book is None:
            raise NotFoundError(f"book {payload['book_id']} not found")
        if book.status != "available":
            logger.info(f"Book {book.id} is {book.status}, subscriber alert skipped")
            return
        self.dispatcher.notify_new_book(book)

    def _operator_alert(self, payload: dict) -> None:
        self.dispatcher.notify_operator(payload["title"], payload["body"], payload.get("data"))
