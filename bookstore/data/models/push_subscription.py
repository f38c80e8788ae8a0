# bookstore/data/models/push_subscription.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime

from bookstore.data.database import Base


class PushSubscriptionModel(Base):
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True)
    endpoint = Column(Text, nullable=False, unique=True)
    p256dh = Column(String(255), nullable=False)
    auth = Column(String(255), nullable=False)

    user_id = Column(String(64), nullable=False, index=True)
    device_type = Column(String(10), nullable=False, default="unknown")  # mobile, desktop, unknown
    user_agent = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    @property
    def keys(self) -> dict:
        return {"p256dh": self.p256dh, "auth": self.auth}
