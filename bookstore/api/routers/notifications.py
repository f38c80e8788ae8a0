# bookstore/api/routers/notifications.py
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from bookstore.api.deps import get_current_user, get_push_sender_factory, require_operator
from bookstore.data.database import get_db
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import (
    DispatchResultOut,
    NewBooksOut,
    NewUserIn,
    OkOut,
    SamplePushIn,
    SendPushIn,
    SendTestIn,
    SendTestOut,
    SubscriptionIn,
    UnsubscribeIn,
    VapidKeyOut,
)
from bookstore.repos.book_repo import BookRepo
from bookstore.services.cart_service import book_dict
from bookstore.services.dispatcher import NotificationDispatcher, direct_payload
from bookstore.services.identity_client import CurrentUser
from bookstore.services.notification_service import NotificationService
from bookstore.services.push_sender import PushSender
from bookstore.services.subscription_registry import SubscriptionRegistry
from bookstore.utils.settings import VAPID_PUBLIC_KEY, NEW_BOOKS_LOOKBACK_HOURS, NEW_BOOKS_LIMIT
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid", response_model=VapidKeyOut)
def vapid_key():
    return {"public_key": VAPID_PUBLIC_KEY}


@router.post("/subscribe", response_model=OkOut)
def subscribe(
    payload: SubscriptionIn,
    user_agent: str | None = Header(None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    registry = SubscriptionRegistry(db)
    try:
        registry.register(
            user_id=user.id,
            endpoint=payload.endpoint,
            keys=payload.keys.model_dump(),
            user_agent=payload.user_agent or user_agent,
        )
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"ok": True}


@router.post("/unsubscribe", response_model=OkOut)
def unsubscribe(
    payload: UnsubscribeIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        removed = SubscriptionRegistry(db).remove(payload.endpoint, user_id=user.id)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"ok": True, "detail": None if removed else "not subscribed"}


@router.get("/new-books", response_model=NewBooksOut)
def new_books(
    since: str | None = Query(None, description="ISO-8601 timestamp of the last check"),
    db: Session = Depends(get_db),
):
    """Polling fallback for browsers without a live channel."""
    if since:
        try:
            since_at = datetime.fromisoformat(since.replace("Z", "+00:00"))
        except ValueError:
            raise HTTPException(status_code=400, detail="since must be an ISO-8601 timestamp")
        if since_at.tzinfo is None:
            since_at = since_at.replace(tzinfo=timezone.utc)
    else:
        since_at = datetime.now(timezone.utc) - timedelta(hours=NEW_BOOKS_LOOKBACK_HOURS)

    last_check = datetime.now(timezone.utc)
    books = BookRepo(db).list_available_since(since_at, NEW_BOOKS_LIMIT)
    return {
        "new_books": [book_dict(b) for b in books],
        "count": len(books),
        "last_check": last_check,
    }


@router.post("/send-push", response_model=DispatchResultOut)
def send_push(
    payload: SendPushIn,
    sender_factory: Callable[[], PushSender] = Depends(get_push_sender_factory),
    db: Session = Depends(get_db),
):
    """Alerts every subscribed browser about one catalog item, right now."""
    if payload.book_id is None:
        raise HTTPException(status_code=400, detail="missing book")

    book = BookRepo(db).get_book(payload.book_id)
    if book is None:
        raise HTTPException(status_code=404, detail=f"book {payload.book_id} not found")

    try:
        dispatcher = NotificationDispatcher(db, sender_factory())
        result = dispatcher.notify_new_book(book)
    except AppError as e:
        logger.error(f"send-push for book {book.id} failed: {e}")
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return result.as_dict()


@router.post("/send-test", response_model=SendTestOut)
def send_test(
    payload: SendTestIn,
    operator: CurrentUser = Depends(require_operator),
    sender_factory: Callable[[], PushSender] = Depends(get_push_sender_factory),
):
    """Pushes one sample notification to a single subscription, bypassing the registry."""
    sample = payload.payload or SamplePushIn()
    notification = direct_payload(sample.title, sample.body, sample.data)
    endpoint = payload.subscription.endpoint

    try:
        sender = sender_factory()
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    keys = payload.subscription.keys.model_dump()
    result = sender.send(endpoint, keys, notification.model_dump_json(exclude_none=True))
    if not result.ok:
        logger.warning(f"Test push to {endpoint[:60]} by {operator.id} came back {result.status}")
        raise HTTPException(status_code=500, detail=f"push {result.status} ({result.status_code}): {result.error}")
    return {"ok": True, "status": result.status, "status_code": result.status_code}


@router.post("/new-user", response_model=OkOut)
def new_user(payload: NewUserIn, db: Session = Depends(get_db)):
    if not payload.email:
        raise HTTPException(status_code=400, detail="email is required")

    name = " ".join(p for p in (payload.first_name, payload.last_name) if p).strip()
    name = name or payload.email.split("@")[0]
    NotificationService(db).operator_alert(
        "New user registered",
        f"{name} ({payload.email}) signed up",
        {"url": "/admin?tab=users", "email": payload.email},
    )
    return {"ok": True}
