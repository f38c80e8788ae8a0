# bookstore/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookOut(BaseModel):
    book_id: int
    title: str
    author: Optional[str] = None
    price: Decimal
    status: str
    cover_image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class BookCreate(BaseModel):
    """Catalog item created from the operator console."""

    title: str = Field(..., min_length=1, max_length=300)
    author: Optional[str] = Field(None, max_length=200)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    status: str = Field("available", pattern="^(available|draft|out_of_stock)$")
    cover_image_url: Optional[str] = None


class CartItemIn(BaseModel):
    book_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class CartQuantityIn(BaseModel):
    """Quantity of zero or less removes the line."""

    book_id: int = Field(..., gt=0)
    quantity: int


class CartLineOut(BaseModel):
    book_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    created_at: Optional[datetime] = None
    book: BookOut


class CartOut(BaseModel):
    items: List[CartLineOut]
    total_amount: Decimal
    total_items: int


class CheckoutIn(BaseModel):
    # emptiness is checked by the checkout service so it surfaces as a 400
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None


class OrderSummaryOut(BaseModel):
    order_id: int
    order_number: str
    total_amount: Decimal


class OrderItemOut(BaseModel):
    order_item_id: int
    book_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    book: Optional[BookOut] = None


class OrderOut(BaseModel):
    order_id: int
    order_number: str
    user_id: str
    status: str
    total_amount: Decimal
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    item_count: int = 0
    total_items: int = 0
    items: Optional[List[OrderItemOut]] = None


class OrderStatusIn(BaseModel):
    order_id: int = Field(..., gt=0)
    status: Optional[str] = None
    admin_notes: Optional[str] = None


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class SubscriptionIn(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeys
    user_agent: Optional[str] = None


class UnsubscribeIn(BaseModel):
    endpoint: str = Field(..., min_length=1)


class SendPushIn(BaseModel):
    book_id: Optional[int] = None


class SamplePushIn(BaseModel):
    title: str = "Test notification"
    body: str = "Test notification from the server"
    data: dict[str, Any] = Field(default_factory=dict)


class SendTestIn(BaseModel):
    subscription: SubscriptionIn
    payload: Optional[SamplePushIn] = None


class SendTestOut(BaseModel):
    ok: bool
    status: str
    status_code: Optional[int] = None


class NewUserIn(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class NotificationPayload(BaseModel):
    """Body delivered to the background worker of a subscribed browser."""

    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    tag: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class DispatchResultOut(BaseModel):
    sent: int
    failed: int
    total: int


class NewBooksOut(BaseModel):
    new_books: List[BookOut]
    count: int
    last_check: datetime


class VapidKeyOut(BaseModel):
    public_key: str


class OrdersOut(BaseModel):
    orders: List[OrderOut]


class OrderEnvelope(BaseModel):
    order: OrderOut


class BookEnvelope(BaseModel):
    book: BookOut


class OkOut(BaseModel):
    ok: bool = True
    detail: Optional[str] = None
