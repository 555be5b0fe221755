"""Order confirmation email, sent best-effort after an order is placed.

The email goes out from an ``OrderPlaced`` handler, so checkout never waits
on the mail channel. With synchronous event processing the handler runs
right after the placement commits; in production the Engine delivers it.
"""

import structlog
from protean import handle
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.notification import get_email_channel
from sales.notification.templates import OrderConfirmationTemplate
from sales.order.events import OrderPlaced
from sales.order.order import Order

logger = structlog.get_logger(__name__)


def _context(order) -> dict:
    return {
        "order_id": str(order.id),
        "lines": [{"title": item.title, "quantity": item.quantity, "price": item.price} for item in order.items],
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "discount": order.discount,
        "total": order.total,
    }


def send_order_confirmation(order, email=None) -> bool:
    """Email the order confirmation. Never raises; returns whether it was sent."""
    recipient = email or order.email
    try:
        message = OrderConfirmationTemplate.render(_context(order))
        result = get_email_channel().send(to=recipient, subject=message["subject"], body=message["body"])
    except Exception as exc:
        logger.warning(
            "order_confirmation_failed",
            order_id=str(order.id),
            error=str(exc),
            exc_info=True,
        )
        return False

    if result.get("status") != "sent":
        logger.warning(
            "order_confirmation_failed",
            order_id=str(order.id),
            error=result.get("error"),
        )
        return False

    logger.info("order_confirmation_sent", order_id=str(order.id), message_id=result.get("message_id"))
    return True


@sales.event_handler(part_of=Order)
class OrderConfirmationHandler:
    """Emails the customer once their order is placed."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        send_order_confirmation(order, email=event.email)
