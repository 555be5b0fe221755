"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Order")
class OrderPlaced:
    """A priced order was created from checkout."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    user_id = Identifier()
    email = String(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float(required=True)
    delivery_fee = Float(required=True)
    total = Float(required=True)
    coupon_code = String()
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new fulfilment status."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class PaymentStatusChanged:
    """The order's payment moved to a new status."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    transaction_id = String()
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class TrackingUpdated:
    """Carrier tracking details were recorded for the order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    tracking_number = String()
    estimated_delivery = DateTime()
