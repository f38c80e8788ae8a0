# bookstore/domain/order_status.py
from enum import Enum

from bookstore.domain.errors import ValidationError


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.COMPLETED: {OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    # cancelled/refunded are not terminal: an operator may reopen them
    OrderStatus.CANCELLED: {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
}


def parse_status(value: str) -> OrderStatus:
    # wire values are exact and case-sensitive
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"invalid status: {value!r}") from None


def check_transition(current: OrderStatus, new: OrderStatus, strict: bool) -> None:
    """Reject an edge outside the table when strict mode is on.

    Re-setting the current status is always accepted.
    """
    if not strict or current == new:
        return
    if new not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(f"cannot move order from {current.value} to {new.value}")
