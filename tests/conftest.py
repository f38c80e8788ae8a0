import os

# settings are read at import time, so the environment is fixed before any bookstore import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["OPERATOR_EMAIL"] = "operator@example.com"
os.environ["OPERATOR_USER_ID"] = "operator-1"
os.environ["OPERATOR_WHATSAPP_NUMBER"] = "+1 (555) 123-4567"
os.environ["CHECKOUT_LOCK_ENABLED"] = "0"
os.environ["STRICT_ORDER_TRANSITIONS"] = "0"
os.environ["PUBLIC_BASE_URL"] = "https://books.example.com"
os.environ["VAPID_PUBLIC_KEY"] = ""
os.environ["VAPID_PRIVATE_KEY"] = ""
os.environ["WHATSAPP_API_URL"] = ""
os.environ["WHATSAPP_API_TOKEN"] = ""

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bookstore.data import models  # noqa: E402,F401
from bookstore.data.database import Base  # noqa: E402
from bookstore.data.models.book import BookModel  # noqa: E402
from bookstore.data.models.cart_item import CartItemModel  # noqa: E402
from bookstore.data.models.push_subscription import PushSubscriptionModel  # noqa: E402
from tests.fakes import FakeLockService, FakeMessageSender, FakePushSender  # noqa: E402


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_book(db):
    def _make(title="Dune", price="10.00", status="available", author="Frank Herbert",
              cover_image_url=None, created_at=None):
        book = BookModel(
            title=title,
            author=author,
            price=Decimal(price),
            status=status,
            cover_image_url=cover_image_url,
        )
        if created_at is not None:
            book.created_at = created_at
        db.add(book)
        db.commit()
        return book

    return _make


@pytest.fixture()
def add_to_cart(db):
    def _add(user_id, book, quantity=1):
        book_id = book if isinstance(book, int) else book.id
        line = CartItemModel(user_id=user_id, book_id=book_id, quantity=quantity)
        db.add(line)
        db.commit()
        return line

    return _add


@pytest.fixture()
def make_subscription(db):
    def _make(endpoint, user_id="user-1", user_agent=None, device_type="unknown", created_at=None):
        sub = PushSubscriptionModel(
            endpoint=endpoint,
            p256dh=f"p256dh-{endpoint[-4:]}",
            auth=f"auth-{endpoint[-4:]}",
            user_id=user_id,
            user_agent=user_agent,
            device_type=device_type,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db.add(sub)
        db.commit()
        return sub

    return _make


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
@pytest.fixture()
def push_sender():
    return FakePushSender()


@pytest.fixture()
def lock_service():
    return FakeLockService()


@pytest.fixture()
def message_sender():
    return FakeMessageSender()
