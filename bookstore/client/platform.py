# bookstore/client/platform.py
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from bookstore.domain.schemas import NotificationPayload


class Platform(ABC):
    """Browser capabilities the notification controller depends on."""

    user_agent: str | None = None

    @abstractmethod
    def notifications_supported(self) -> bool: ...

    @abstractmethod
    def permission(self) -> str:
        """Current permission: "default", "granted" or "denied"."""

    @abstractmethod
    async def request_permission(self) -> str:
        """Shows the permission prompt and returns the user's answer."""

    @abstractmethod
    async def push_subscribe(self, application_server_key: str) -> Any:
        """Returns the push manager's subscription object."""

    @abstractmethod
    async def push_unsubscribe(self) -> bool: ...

    @abstractmethod
    def show_notification(self, payload: NotificationPayload) -> None: ...

    # the badge API is optional on most platforms
    async def set_badge(self, count: int) -> None:
        return None

    async def clear_badge(self) -> None:
        return None


class LiveFeed(ABC):
    """Stream of catalog items as they are published."""

    @abstractmethod
    def listen(self) -> AsyncIterator[dict[str, Any]]: ...


def subscription_to_dict(subscription: Any) -> dict[str, Any]:
    """Serializable {endpoint, keys} form of a platform subscription."""
    if hasattr(subscription, "to_json"):
        subscription = subscription.to_json()
    if not isinstance(subscription, dict):
        raise ValueError("unsupported push subscription object")

    endpoint = subscription.get("endpoint")
    keys = subscription.get("keys") or {}
    if not endpoint or not keys.get("p256dh") or not keys.get("auth"):
        raise ValueError("push subscription is missing its endpoint or keys")
    return {"endpoint": endpoint, "keys": {"p256dh": keys["p256dh"], "auth": keys["auth"]}}
