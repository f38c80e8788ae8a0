"""Per-browser notification controller.

Owns everything one browsing context needs for new-book alerts: the
permission flow, the push subscription, the live feed and fallback poll
tasks, and the unread badge. All state lives on the instance; two
controllers never share channels or timers.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from bookstore.client.api import ServerApi
from bookstore.client.platform import LiveFeed, Platform, subscription_to_dict
from bookstore.client.store import LocalStore
from bookstore.domain.schemas import NotificationPayload
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

ENABLED_KEY = "bookNotificationsEnabled"
BADGE_KEY = "notificationBadgeCount"
LAST_CHECK_KEY = "lastBookCheckDate"
ENDPOINT_KEY = "pushEndpoint"

APP_ICON = "/icons/icon-192x192.png"
POLL_INTERVAL_SECONDS = 300.0
LOOKBACK = timedelta(hours=24)

PUSH_RECEIVED = "PUSH_RECEIVED"
NOTIFICATION_CLICKED = "NOTIFICATION_CLICKED"


class PermissionState(str, Enum):
    UNSUPPORTED = "unsupported"
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def book_payload(book: dict[str, Any]) -> NotificationPayload:
    book_id = book["book_id"]
    return NotificationPayload(
        title="New book available",
        body=f"{book.get('title', '')} has been added to the catalog",
        icon=book.get("cover_image_url") or APP_ICON,
        badge=APP_ICON,
        tag=f"book-{book_id}",
        data={"url": f"/book/{book_id}", "bookId": book_id},
    )


class NotificationController:
    def __init__(
        self,
        platform: Platform,
        store: LocalStore,
        api: ServerApi,
        feed: LiveFeed | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.platform = platform
        self.store = store
        self.api = api
        self.feed = feed
        self.poll_interval = poll_interval
        self.error: str | None = None

        self.badge_count = self._restore_badge()
        # tags already shown by this instance, across both channels
        self._seen_tags: set[str] = set()
        self._channel_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None

    # state
    @property
    def permission(self) -> PermissionState:
        if not self.platform.notifications_supported():
            return PermissionState.UNSUPPORTED
        return PermissionState(self.platform.permission())

    @property
    def is_subscribed(self) -> bool:
        return self.store.get(ENABLED_KEY) == "true" and self.permission == PermissionState.GRANTED

    @property
    def running(self) -> bool:
        return any(t is not None and not t.done() for t in (self._channel_task, self._poll_task))

    def _restore_badge(self) -> int:
        try:
            count = int(self.store.get(BADGE_KEY) or 0)
        except ValueError:
            return 0
        return max(count, 0)

    # permission and subscription
    async def request_permission(self) -> bool:
        permission = self.permission
        if permission == PermissionState.UNSUPPORTED:
            self.error = "notifications are not supported on this device"
            return False
        if permission == PermissionState.DENIED:
            self.error = "notification permission was denied, enable it in the browser settings"
            return False

        if permission == PermissionState.DEFAULT:
            self.error = None
            answer = PermissionState(await self.platform.request_permission())
            if answer != PermissionState.GRANTED:
                self.error = "notification permission was denied"
                return False

        self.store.set(ENABLED_KEY, "true")
        self.start()
        return True

    async def subscribe_to_push(self) -> dict[str, Any] | None:
        """Registers this browser's push endpoint with the server."""
        if self.permission != PermissionState.GRANTED:
            self.error = "notification permission is required first"
            return None

        key = await self.api.vapid_key()
        if not key:
            self.error = "push notifications are not configured on the server"
            return None

        subscription = subscription_to_dict(await self.platform.push_subscribe(key))
        await self.api.subscribe(subscription, self.platform.user_agent)
        self.store.set(ENDPOINT_KEY, subscription["endpoint"])
        logger.info(f"Push subscription registered: {subscription['endpoint'][:50]}...")
        return subscription

    async def unsubscribe(self) -> None:
        await self.stop()
        self.store.delete(ENABLED_KEY)
        await self.clear_badge()

        endpoint = self.store.get(ENDPOINT_KEY)
        if endpoint:
            await self.platform.push_unsubscribe()
            await self.api.unsubscribe(endpoint)
            self.store.delete(ENDPOINT_KEY)

    # lifecycle
    def start(self) -> None:
        """Starts the live feed and the fallback poll; must run inside the event loop."""
        if self.feed is not None and (self._channel_task is None or self._channel_task.done()):
            self._channel_task = asyncio.create_task(self._listen())
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())

    def resume(self) -> None:
        if self.is_subscribed:
            self.start()

    async def stop(self) -> None:
        tasks = [t for t in (self._channel_task, self._poll_task) if t is not None]
        self._channel_task = None
        self._poll_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # display
    async def show_notification(self, payload: NotificationPayload) -> bool:
        if self.permission != PermissionState.GRANTED:
            return False
        if payload.tag in self._seen_tags:
            logger.debug(f"Notification {payload.tag} already shown")
            return False

        self._seen_tags.add(payload.tag)
        self.platform.show_notification(payload)
        await self.increment_badge()
        return True

    async def show_book(self, book: dict[str, Any]) -> bool:
        return await self.show_notification(book_payload(book))

    # badge
    async def increment_badge(self) -> None:
        await self._update_badge(self.badge_count + 1)

    async def clear_badge(self) -> None:
        await self._update_badge(0)

    async def _update_badge(self, count: int) -> None:
        self.badge_count = count
        if count > 0:
            self.store.set(BADGE_KEY, str(count))
        else:
            self.store.delete(BADGE_KEY)

        try:
            if count > 0:
                await self.platform.set_badge(count)
            else:
                await self.platform.clear_badge()
        except Exception as e:
            # the persisted count stays authoritative
            logger.warning(f"App badge update failed: {e}")

    async def on_notification_click(self) -> None:
        await self.clear_badge()

    async def on_app_opened(self) -> None:
        await self.clear_badge()

    async def handle_worker_message(self, message: dict[str, Any]) -> None:
        """Messages posted by the background worker that displays pushes."""
        kind = message.get("type")
        if kind == PUSH_RECEIVED:
            tag = message.get("tag") or (message.get("payload") or {}).get("tag")
            if tag:
                if tag in self._seen_tags:
                    return
                self._seen_tags.add(tag)
            await self.increment_badge()
        elif kind == NOTIFICATION_CLICKED:
            await self.clear_badge()
        else:
            logger.debug(f"Ignoring worker message {kind!r}")

    # new-book sources
    def _last_check(self) -> datetime:
        stored = _parse_time(self.store.get(LAST_CHECK_KEY))
        return stored or datetime.now(timezone.utc) - LOOKBACK

    async def _listen(self) -> None:
        since = self._last_check()
        try:
            async for book in self.feed.listen():
                if book.get("status", "available") != "available":
                    continue
                created_at = _parse_time(book.get("created_at"))
                if created_at is not None and created_at <= since:
                    continue
                await self.show_book(book)
                self.store.set(LAST_CHECK_KEY, datetime.now(timezone.utc).isoformat())
        except Exception as e:
            # polling keeps running
            logger.warning(f"Live book feed stopped: {e}")

    async def poll_once(self) -> int:
        data = await self.api.new_books(self._last_check().isoformat())
        books = data.get("new_books") or []
        shown = 0
        for book in books:
            if await self.show_book(book):
                shown += 1
        if books:
            last_check = data.get("last_check") or datetime.now(timezone.utc).isoformat()
            self.store.set(LAST_CHECK_KEY, str(last_check))
        return shown

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except Exception as e:
                logger.warning(f"New-book poll failed: {e}")
