"""Notification fan-out: one payload, many endpoints, independent outcomes."""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.orm import Session

from bookstore.data.models.book import BookModel
from bookstore.data.models.push_subscription import PushSubscriptionModel
from bookstore.domain.schemas import NotificationPayload
from bookstore.services.push_sender import PushSender, PushResult, GONE, FAILED
from bookstore.services.subscription_registry import SubscriptionRegistry
from bookstore.utils.settings import PUBLIC_BASE_URL, PUSH_MAX_WORKERS, OPERATOR_USER_ID
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

APP_ICON = "/icons/icon-192x192.png"


@dataclass(frozen=True)
class DispatchResult:
    sent: int
    failed: int
    total: int

    def as_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed, "total": self.total}


def _absolute(url: str | None, base_url: str) -> str:
    if not url:
        return f"{base_url}{APP_ICON}"
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"{base_url}/{url.lstrip('/')}"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def new_book_payload(book: BookModel, base_url: str = PUBLIC_BASE_URL) -> NotificationPayload:
    return NotificationPayload(
        title="New book available",
        body=f"{book.title} has been added to the catalog",
        icon=_absolute(book.cover_image_url, base_url),
        badge=_absolute(APP_ICON, base_url),
        # one tag per book so two new books never collapse into one notification
        tag=f"book-{book.id}",
        data={"url": f"{base_url}/book/{book.id}", "bookId": book.id},
    )


def operator_payload(title: str, body: str, data: dict[str, Any] | None = None,
                     base_url: str = PUBLIC_BASE_URL) -> NotificationPayload:
    data = dict(data or {})
    if "url" in data:
        data["url"] = _absolute(data["url"], base_url)
    return NotificationPayload(
        title=title,
        body=body,
        icon=_absolute(APP_ICON, base_url),
        badge=_absolute(APP_ICON, base_url),
        tag=f"admin-{_timestamp_ms()}",
        data=data,
    )


def direct_payload(title: str, body: str, data: dict[str, Any] | None = None,
                   base_url: str = PUBLIC_BASE_URL) -> NotificationPayload:
    return NotificationPayload(
        title=title,
        body=body,
        icon=_absolute(APP_ICON, base_url),
        badge=_absolute(APP_ICON, base_url),
        tag=f"notification-{_timestamp_ms()}",
        data=dict(data or {}),
    )


class NotificationDispatcher:
    """
    Delivers to every recipient concurrently and joins on all outcomes.

    Endpoints reported gone are pruned from the registry after the join,
    on the calling thread, since the session is not shared with workers.
    """

    def __init__(self, db: Session, sender: PushSender, max_workers: int = PUSH_MAX_WORKERS):
        self.registry = SubscriptionRegistry(db)
        self.sender = sender
        self.max_workers = max(1, max_workers)

    def _send_one(self, endpoint: str, keys: dict, data: str) -> PushResult:
        try:
            return self.sender.send(endpoint, keys, data)
        except Exception as e:
            # an adapter bug on one endpoint must not sink the others
            logger.error(f"Push adapter raised for {endpoint[:60]}: {e}")
            return PushResult(endpoint=endpoint, status=FAILED, error=str(e))

    def dispatch(self, payload: NotificationPayload, recipients: Sequence[PushSubscriptionModel]) -> DispatchResult:
        targets = [(sub.endpoint, sub.keys) for sub in recipients]
        total = len(targets)
        if total == 0:
            logger.info(f"No recipients for '{payload.title}'")
            return DispatchResult(sent=0, failed=0, total=0)

        data = json.dumps(payload.model_dump(exclude_none=True))
        workers = min(self.max_workers, total)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push") as pool:
            futures = [pool.submit(self._send_one, endpoint, keys, data) for endpoint, keys in targets]
            results = [f.result() for f in futures]

        for result in results:
            if result.status == GONE:
                self.registry.remove_stale(result.endpoint)

        sent = sum(1 for r in results if r.ok)
        failed = total - sent
        logger.info(f"Push '{payload.title}' ({payload.tag}): {sent} sent, {failed} failed of {total}")
        return DispatchResult(sent=sent, failed=failed, total=total)

    def notify_new_book(self, book: BookModel) -> DispatchResult:
        payload = new_book_payload(book)
        return self.dispatch(payload, self.registry.list_for_fanout())

    def notify_operator(self, title: str, body: str, data: dict[str, Any] | None = None,
                        operator_user_id: str | None = None) -> DispatchResult:
        operator = OPERATOR_USER_ID if operator_user_id is None else operator_user_id
        if not operator:
            logger.warning("OPERATOR_USER_ID not configured, operator alert not delivered")
            return DispatchResult(sent=0, failed=0, total=0)
        return self.dispatch(operator_payload(title, body, data), self.registry.list_for_user(operator))
