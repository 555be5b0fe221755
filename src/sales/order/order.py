"""Order aggregate (CQRS): a priced order and its lifecycle.

An order is created once at checkout with an immutable snapshot of its
lines and prices. Afterwards only its fulfilment status, payment status and
delivery details change; orders are never deleted.

Fulfilment:
    pending → confirmed → packed → shipped → delivered
    Forward moves may skip steps. Cancelled and returned are reachable from
    any non-terminal status. Delivered, cancelled and returned are terminal.

Payment (independent of fulfilment):
    pending → paid | failed
    paid → refunded

Every fulfilment change appends to the status history, which is never
edited. Re-applying the current status is a no-op so duplicate
notifications are harmless.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from sales.domain import sales
from sales.exceptions import InvalidTransitionError
from sales.order.events import OrderPlaced, OrderStatusChanged, PaymentStatusChanged, TrackingUpdated
from sales.pricing.cart import order_total


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


class DeliveryMethod(Enum):
    STANDARD = "Standard"
    EXPRESS = "Express"
    CLICK_AND_COLLECT = "Click & collect"  # Picked up in store, never charged a delivery fee


STANDARD_DELIVERY = DeliveryMethod.STANDARD.value

_SIDE_BRANCHES = {OrderStatus.CANCELLED, OrderStatus.RETURNED}

# State machine transition maps
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PACKED,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        *_SIDE_BRANCHES,
    },
    OrderStatus.CONFIRMED: {OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.DELIVERED, *_SIDE_BRANCHES},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, *_SIDE_BRANCHES},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, *_SIDE_BRANCHES},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

TERMINAL_STATUSES = {status for status, targets in _VALID_TRANSITIONS.items() if not targets}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def _parse(enum_cls, value, field):
    try:
        return enum_cls(value.value if isinstance(value, Enum) else value)
    except ValueError as exc:
        raise ValidationError({field: [f"Unknown {field.replace('_', ' ')}: {value}"]}) from exc


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@sales.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order ships, captured at checkout and never changed afterwards."""

    recipient_name = String(required=True, max_length=255)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@sales.entity(part_of="Order")
class OrderLine:
    """A purchased variant, frozen at the price and description it had at checkout."""

    product_id = Identifier(required=True)
    variant_sku = String(required=True, max_length=50)
    title = String(required=True, max_length=255)
    size = String(max_length=20)
    color = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    thumbnail = String(max_length=500)
    custom_fields = Text()  # JSON array of {label, value}

    @property
    def line_total(self):
        return self.price * self.quantity


@sales.entity(part_of="Order")
class StatusChange:
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@sales.aggregate
class Order:
    user_id = Identifier()  # Empty for guest checkout
    email = String(required=True, max_length=254)
    address = ValueObject(DeliveryAddress, required=True)
    items = HasMany(OrderLine)
    subtotal = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=50)
    notes = Text()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivery_method = String(max_length=50, choices=DeliveryMethod, default=STANDARD_DELIVERY)
    estimated_delivery = DateTime()
    tracking_number = String(max_length=255)
    delivery_provider = String(max_length=100)
    status_history = HasMany(StatusChange)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        expected = order_total(self.subtotal or 0, self.delivery_fee or 0, self.discount or 0)
        if abs((self.total or 0) - expected) > 1e-6:
            raise ValidationError({"total": ["Total must equal subtotal plus delivery fee minus discount"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        email,
        address,
        lines,
        totals,
        payment_method,
        user_id=None,
        coupon_code=None,
        delivery_method=STANDARD_DELIVERY,
        estimated_delivery=None,
        notes=None,
    ):
        """Create a pending order from priced cart lines.

        Args:
            email: Where the confirmation is sent.
            address: Dict with the ``DeliveryAddress`` fields.
            lines: ``CartLine`` objects carrying authoritative prices.
            totals: ``CartTotals`` computed from those lines.
            payment_method: One of ``PaymentMethod`` values.
        """
        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            email=email,
            address=DeliveryAddress(**address),
            items=[
                OrderLine(
                    product_id=line.product_id,
                    variant_sku=line.variant_sku,
                    title=line.title,
                    size=line.size,
                    color=line.color,
                    price=line.price,
                    quantity=line.quantity,
                    thumbnail=line.thumbnail,
                    custom_fields=(
                        json.dumps([field.to_dict() for field in line.custom_fields]) if line.custom_fields else None
                    ),
                )
                for line in lines
            ],
            subtotal=totals.subtotal,
            discount=totals.discount,
            delivery_fee=totals.delivery_fee,
            total=totals.total,
            coupon_code=coupon_code,
            notes=notes,
            status=OrderStatus.PENDING.value,
            delivery_method=delivery_method or STANDARD_DELIVERY,
            estimated_delivery=estimated_delivery,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id) if user_id else None,
                email=email,
                item_count=sum(line.quantity for line in lines),
                subtotal=order.subtotal,
                discount=order.discount,
                delivery_fee=order.delivery_fee,
                total=order.total,
                coupon_code=coupon_code,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def history(self):
        """Status changes in the order they happened."""
        return sorted(self.status_history, key=lambda change: change.changed_at)

    def is_owned_by(self, user_id):
        return self.user_id is not None and str(self.user_id) == str(user_id)

    def can_transition_to(self, new_status):
        target = _parse(OrderStatus, new_status, "status")
        return target == OrderStatus(self.status) or target in _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Fulfilment status
    # -------------------------------------------------------------------
    def _next_timestamp(self):
        now = datetime.now(UTC)
        latest = max((change.changed_at for change in self.status_history), default=None)
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    def transition_to(self, new_status, note=None):
        """Move to ``new_status`` and record it in the history.

        Returns ``False`` without touching the order when it is already in
        ``new_status``.
        """
        target = _parse(OrderStatus, new_status, "status")
        current = OrderStatus(self.status)
        if target == current:
            return False

        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        changed_at = self._next_timestamp()
        self.status = target.value
        self.add_status_history(StatusChange(status=target.value, note=note, changed_at=changed_at))
        self.updated_at = changed_at

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                note=note,
                changed_at=changed_at,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Payment status
    # -------------------------------------------------------------------
    def record_payment(self, new_status, transaction_id=None):
        """Move the payment to ``new_status``.

        Re-applying the current status is a no-op, except that a payment
        already marked paid cannot be claimed by a different transaction.
        """
        target = _parse(PaymentStatus, new_status, "payment_status")
        current = PaymentStatus(self.payment_status)

        if target == current:
            if (
                target == PaymentStatus.PAID
                and transaction_id
                and self.transaction_id
                and transaction_id != self.transaction_id
            ):
                raise InvalidTransitionError(
                    {"payment_status": [f"Order is already paid under transaction {self.transaction_id}"]}
                )
            return False

        if target not in _VALID_PAYMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(
                {"payment_status": [f"Cannot change payment from {current.value} to {target.value}"]}
            )

        now = datetime.now(UTC)
        self.payment_status = target.value
        if transaction_id:
            self.transaction_id = transaction_id
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                transaction_id=self.transaction_id,
                changed_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Delivery details
    # -------------------------------------------------------------------
    def set_tracking(self, tracking_number=None, estimated_delivery=None, provider=None):
        if OrderStatus(self.status) in {OrderStatus.CANCELLED, OrderStatus.RETURNED}:
            raise InvalidTransitionError({"tracking_number": [f"Cannot update tracking on a {self.status} order"]})

        if tracking_number is not None:
            self.tracking_number = tracking_number
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        if provider is not None:
            self.delivery_provider = provider
        self.updated_at = datetime.now(UTC)

        self.raise_(
            TrackingUpdated(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                estimated_delivery=self.estimated_delivery,
            )
        )


@sales.repository(part_of=Order)
class OrderRepository:
    def _page(self, query, page, limit):
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def find_by_user(self, user_id, page=1, limit=10):
        """A page of the customer's orders, newest first, and the total count."""
        return self._page(self._dao.query.filter(user_id=str(user_id)), page, limit)

    def search(self, status=None, page=1, limit=20):
        """A page of all orders, newest first, optionally narrowed to one status."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        return self._page(query, page, limit)
