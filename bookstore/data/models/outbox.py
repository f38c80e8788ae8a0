# bookstore/data/models/outbox.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from bookstore.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OutboxMessageModel(Base):
    __tablename__ = "notification_outbox"

    id = Column(Integer, primary_key=True)
    kind = Column(String(40), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)

    status = Column(String(10), nullable=False, default="pending", index=True)  # pending, sent, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    next_attempt_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    sent_at = Column(DateTime(timezone=True), nullable=True)
