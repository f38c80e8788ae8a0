# bookstore/services/order_service.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from bookstore.data.models.order import OrderModel
from bookstore.domain.errors import NotFoundError, ValidationError
from bookstore.domain.order_status import OrderStatus, parse_status, check_transition
from bookstore.repos.book_repo import BookRepo
from bookstore.repos.order_repo import OrderRepo
from bookstore.services.cart_service import book_dict, money
from bookstore.services.notification_service import NotificationService
from bookstore.utils.settings import STRICT_ORDER_TRANSITIONS
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


def order_dict(order: OrderModel, item_count: int = 0, total_items: int = 0) -> Dict[str, Any]:
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "status": order.status,
        "total_amount": money(order.total_amount),
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "shipping_address": order.shipping_address,
        "notes": order.notes,
        "admin_notes": order.admin_notes,
        "created_at": order.created_at,
        "completed_at": order.completed_at,
        "cancelled_at": order.cancelled_at,
        "item_count": item_count,
        "total_items": total_items,
    }


class OrderService:
    """
    Orders after checkout: owner and operator queries, and the status
    state machine with its side effects.
    """

    def __init__(self, db: Session, notifications: NotificationService | None = None,
                 strict: bool = STRICT_ORDER_TRANSITIONS):
        self.repo = OrderRepo(db)
        self.books = BookRepo(db)
        self.notifications = notifications or NotificationService(db)
        self.strict = strict

    # queries
    def _with_counts(self, orders: List[OrderModel]) -> List[Dict[str, Any]]:
        counts = self.repo.item_counts(o.id for o in orders)
        return [order_dict(o, *counts.get(o.id, (0, 0))) for o in orders]

    def list_orders(self, status: str | None = None) -> List[Dict[str, Any]]:
        if status is not None:
            status = parse_status(status).value
        return self._with_counts(self.repo.list_orders(status=status))

    def list_user_orders(self, user_id: str) -> List[Dict[str, Any]]:
        return self._with_counts(self.repo.list_orders(user_id=user_id))

    def get_order_detail(self, order_id: int, user_id: str | None = None) -> Dict[str, Any]:
        """Order with resolved line items; owners only see their own orders."""
        if user_id is None:
            order = self.repo.get_order(order_id)
        else:
            order = self.repo.get_user_order(order_id, user_id)
        if order is None:
            raise NotFoundError("order not found")

        rows = self.repo.get_order_items(order.id)
        books = self.books.get_books(r.book_id for r in rows)

        items = []
        for row in rows:
            book = books.get(row.book_id)
            items.append(
                {
                    "order_item_id": row.id,
                    "book_id": row.book_id,
                    "quantity": row.quantity,
                    "unit_price": money(row.unit_price),
                    "subtotal": money(row.subtotal),
                    # the snapshot survives the catalog entry
                    "book": book_dict(book) if book is not None else None,
                }
            )

        detail = order_dict(order, len(items), sum(i["quantity"] for i in items))
        detail["items"] = items
        return detail

    # commands
    def set_status(self, order_id: int, new_status: str | None = None, admin_notes: str | None = None) -> Dict[str, Any]:
        if new_status is None and admin_notes is None:
            raise ValidationError("nothing to update")

        status = parse_status(new_status) if new_status is not None else None

        order = self.repo.get_order(order_id)
        if order is None:
            raise NotFoundError("order not found")

        previous = OrderStatus(order.status)
        if status is not None:
            check_transition(previous, status, self.strict)
            now = datetime.now(timezone.utc)
            order.status = status.value
            if status != previous:
                if status == OrderStatus.COMPLETED:
                    order.completed_at = now
                elif status == OrderStatus.CANCELLED:
                    order.cancelled_at = now

        if admin_notes is not None:
            order.admin_notes = admin_notes

        self.repo.save(order)
        logger.info(
            f"Order {order.order_number} status {previous.value} -> {order.status}"
        )

        # re-setting completed must not send the completion message again
        if status == OrderStatus.COMPLETED and previous != OrderStatus.COMPLETED:
            self.notifications.order_completed(order.id)

        return self._with_counts([order])[0]
