# bookstore/services/subscription_registry.py
import re
from typing import List

from sqlalchemy.orm import Session

from bookstore.data.models.push_subscription import PushSubscriptionModel
from bookstore.domain.errors import ValidationError
from bookstore.repos.push_subscription_repo import PushSubscriptionRepo
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

MOBILE_AGENT = re.compile(
    r"Mobi|Android|iPhone|iPad|iPod|Windows Phone|BlackBerry|BB10|Opera Mini|IEMobile|webOS",
    re.IGNORECASE,
)


def detect_device_type(user_agent: str | None) -> str:
    return "mobile" if user_agent and MOBILE_AGENT.search(user_agent) else "desktop"


def dedup_key(sub: PushSubscriptionModel) -> str:
    return sub.user_agent or sub.endpoint


class SubscriptionRegistry:
    """
    One delivery endpoint per browsing context.

    The endpoint is the delivery address and is unique; the user id is
    kept for bookkeeping (operator alerts, unsubscribe ownership).
    """

    def __init__(self, db: Session):
        self.repo = PushSubscriptionRepo(db)

    def register(self, user_id: str, endpoint: str, keys: dict, user_agent: str | None) -> PushSubscriptionModel:
        if not endpoint:
            raise ValidationError("endpoint is required")
        if not keys or not keys.get("p256dh") or not keys.get("auth"):
            raise ValidationError("subscription keys are required")

        user_agent = (user_agent or "").strip()[:500] or None
        device_type = detect_device_type(user_agent)

        sub = self.repo.get_by_endpoint(endpoint)
        if sub is None:
            sub = PushSubscriptionModel(endpoint=endpoint)
            logger.info(f"New push subscription for user {user_id} ({device_type})")
        else:
            logger.info(f"Refreshing push subscription for user {user_id} ({device_type})")

        sub.user_id = user_id
        sub.p256dh = keys["p256dh"]
        sub.auth = keys["auth"]
        sub.user_agent = user_agent
        sub.device_type = device_type
        return self.repo.save(sub)

    def list_for_fanout(self) -> List[PushSubscriptionModel]:
        """
        Every known browsing context once.

        Subscriptions sharing a dedup key collapse into one; the listing
        is already ordered mobile first and newest first, so the first
        one seen in a group is the one kept.
        """
        seen = set()
        survivors = []
        for sub in self.repo.list_by_priority():
            key = dedup_key(sub)
            if key in seen:
                continue
            seen.add(key)
            survivors.append(sub)
        return survivors

    def list_for_user(self, user_id: str) -> List[PushSubscriptionModel]:
        return self.repo.list_for_user(user_id)

    def remove(self, endpoint: str, user_id: str | None = None) -> bool:
        sub = self.repo.get_by_endpoint(endpoint)
        if sub is None:
            return False
        if user_id is not None and sub.user_id != user_id:
            # someone else's delivery address: do not reveal it exists
            return False
        self.repo.delete_by_endpoint(endpoint)
        logger.info(f"Push subscription removed for user {sub.user_id}")
        return True

    def remove_stale(self, endpoint: str) -> None:
        removed = self.repo.delete_by_endpoint(endpoint)
        if removed:
            logger.info(f"Pruned stale push endpoint {endpoint[:60]}")
