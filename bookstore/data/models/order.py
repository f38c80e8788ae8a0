# bookstore/data/models/order.py
import secrets
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric
from sqlalchemy.orm import relationship

from bookstore.data.database import Base


def generate_order_number() -> str:
    now = datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True, default=generate_order_number)
    user_id = Column(String(64), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")
    total_amount = Column(Numeric(10, 2), nullable=False)

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(320), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    shipping_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItemModel", back_populates="order")
