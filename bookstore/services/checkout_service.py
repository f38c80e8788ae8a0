# bookstore/services/checkout_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from bookstore.data.models.order import OrderModel
from bookstore.data.models.order_item import OrderItemModel
from bookstore.domain.errors import PersistenceError, ValidationError
from bookstore.domain.order_status import OrderStatus
from bookstore.domain.schemas import CheckoutIn
from bookstore.repos.order_repo import OrderRepo
from bookstore.services.cart_service import CartService
from bookstore.services.lock_service import LockService
from bookstore.services.notification_service import NotificationService
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CheckoutService:
    """
    Turns a user's cart into an order.

    1. price the cart (all lines must be available)
    2. insert the order (pending)
    3. insert its items; on failure delete the order again
    4. clear the cart (best effort)
    5. queue the operator alerts (best effort)
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notifications: NotificationService | None = None,
    ):
        self.cart = CartService(db)
        self.repo = OrderRepo(db)
        self.lock_service = lock_service
        self.notifications = notifications or NotificationService(db)

    def checkout(self, user_id: str, form: CheckoutIn) -> Dict[str, Any]:
        customer_name = _clean(form.customer_name)
        customer_email = _clean(form.customer_email)
        if not customer_name or not customer_email:
            raise ValidationError("customer_name and customer_email are required")

        if self.lock_service is None:
            return self._checkout(user_id, form, customer_name, customer_email)

        with self.lock_service.checkout_lock(user_id):
            return self._checkout(user_id, form, customer_name, customer_email)

    def _checkout(self, user_id: str, form: CheckoutIn, customer_name: str, customer_email: str) -> Dict[str, Any]:
        checkout_set = self.cart.compute_checkout_set(user_id)
        if not checkout_set.items:
            raise ValidationError("cart is empty")

        order = self.repo.create_order(
            OrderModel(
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                total_amount=checkout_set.total_amount,
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=_clean(form.customer_phone),
                shipping_address=_clean(form.shipping_address),
                notes=_clean(form.notes),
            )
        )
        logger.info(f"Order {order.order_number} created for {user_id}, total {checkout_set.total_amount}")

        try:
            self.repo.add_order_items(
                [
                    OrderItemModel(
                        order_id=order.id,
                        book_id=draft.book_id,
                        quantity=draft.quantity,
                        unit_price=draft.unit_price,
                        subtotal=draft.subtotal,
                    )
                    for draft in checkout_set.items
                ]
            )
        except Exception as e:
            logger.error(f"Items for order {order.order_number} failed, removing the order: {e}")
            self._compensate(order.id, order.order_number)
            raise

        try:
            self.cart.clear(user_id)
        except PersistenceError as e:
            # the order is committed; a stale cart is the lesser evil
            logger.error(f"Cart of {user_id} not cleared after order {order.order_number}: {e}")

        self.notifications.order_placed(
            order_id=order.id,
            order_number=order.order_number,
            customer_name=customer_name,
            total_amount=checkout_set.total_amount,
        )

        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "total_amount": checkout_set.total_amount,
        }

    def _compensate(self, order_id: int, order_number: str) -> None:
        self.repo.rollback()
        try:
            self.repo.delete_order(order_id)
        except PersistenceError as e:
            logger.error(f"Compensation failed, order {order_number} (id {order_id}) left without items: {e}")
        else:
            logger.info(f"Order {order_number} removed after failed item insert")
