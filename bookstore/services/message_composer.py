"""Human-readable order messages and messaging deep links.

Everything here is pure: same order and items in, same text out.
"""

from decimal import Decimal
from typing import Any, Mapping, Sequence
from urllib.parse import quote

from bookstore.utils.settings import OPERATOR_WHATSAPP_NUMBER

ORDER_PLACED = "order_placed"
ORDER_COMPLETED = "order_completed"

TEMPLATES = (ORDER_PLACED, ORDER_COMPLETED)

_HEADERS = {
    ORDER_PLACED: "*NEW ORDER PLACED*",
    ORDER_COMPLETED: "*ORDER COMPLETED*",
}
_FOOTERS = {
    ORDER_PLACED: "*Status:* Pending",
    ORDER_COMPLETED: "*Status:* Completed",
}

# characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"

DEEP_LINK_BASE = "https://wa.me"


def _money(value) -> str:
    return f"${Decimal(str(value)):.2f}"


def compose_order_message(
    order: Mapping[str, Any],
    items: Sequence[Mapping[str, Any]],
    template: str = ORDER_COMPLETED,
) -> str:
    if template not in TEMPLATES:
        raise ValueError(f"unknown message template: {template}")

    lines = [_HEADERS[template], ""]
    lines.append(f"*Order:* {order['order_number']}")
    created_at = order.get("created_at")
    if created_at is not None:
        lines.append(f"*Date:* {created_at:%Y-%m-%d %H:%M} UTC")
    lines.append("")

    lines.append("*Customer:*")
    lines.append(f"   Name: {order.get('customer_name') or 'N/A'}")
    if order.get("customer_email"):
        lines.append(f"   Email: {order['customer_email']}")
    if order.get("customer_phone"):
        lines.append(f"   Phone: {order['customer_phone']}")
    lines.append("")

    if items:
        lines.append("*Books:*")
        for index, item in enumerate(items, start=1):
            lines.append(f"   {index}. {item['title']}")
            if item.get("author"):
                lines.append(f"      Author: {item['author']}")
            lines.append(f"      Quantity: {item['quantity']}")
            lines.append(f"      Unit price: {_money(item['unit_price'])}")
            lines.append(f"      Subtotal: {_money(item['subtotal'])}")
            lines.append("")

    lines.append(f"*Total:* {_money(order['total_amount'])}")
    lines.append("")

    shipping = order.get("shipping_address")
    if shipping:
        if shipping == "whatsapp":
            lines.append("*Customer asked to be contacted by WhatsApp*")
        else:
            lines.append(f"*Shipping address:* {shipping}")
        lines.append("")

    if order.get("notes"):
        lines.append("*Customer notes:*")
        lines.append(f"   {order['notes']}")
        lines.append("")

    if template == ORDER_COMPLETED and order.get("admin_notes"):
        lines.append("*Store notes:*")
        lines.append(f"   {order['admin_notes']}")
        lines.append("")

    lines.append(_FOOTERS[template])
    return "\n".join(lines)


def build_deep_link(
    order: Mapping[str, Any],
    items: Sequence[Mapping[str, Any]],
    template: str = ORDER_COMPLETED,
    number: str | None = None,
) -> str:
    message = compose_order_message(order, items, template)
    contact = "".join(ch for ch in (number or OPERATOR_WHATSAPP_NUMBER) if ch.isdigit())
    return f"{DEEP_LINK_BASE}/{contact}?text={quote(message, safe=_URI_SAFE)}"
