# bookstore/data/models/book.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric

from bookstore.data.database import Base


class BookModel(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True)
    title = Column(String(300), nullable=False)
    author = Column(String(200), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="available")  # available, draft, out_of_stock
    cover_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
