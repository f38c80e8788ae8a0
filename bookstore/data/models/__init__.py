# every model is imported here so Base.metadata knows all tables

from bookstore.data.models.book import BookModel
from bookstore.data.models.cart_item import CartItemModel
from bookstore.data.models.order import OrderModel
from bookstore.data.models.order_item import OrderItemModel
from bookstore.data.models.push_subscription import PushSubscriptionModel
from bookstore.data.models.outbox import OutboxMessageModel

__all__ = [
    "BookModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PushSubscriptionModel",
    "OutboxMessageModel",
]
