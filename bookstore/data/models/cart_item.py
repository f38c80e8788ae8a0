# bookstore/data/models/cart_item.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from bookstore.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    # no FK on purpose: a line may outlive its book and is dropped on read
    book_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="u_cart_user_book"),)
