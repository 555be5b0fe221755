"""Shopping Cart aggregate (CQRS): the server-side cart of a signed-in customer.

Guests keep their cart on the client and price it through the same
functions in ``sales.pricing.cart``; this aggregate mirrors those rules so a
signed-in customer's cart behaves identically.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from sales.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
)
from sales.domain import sales
from sales.pricing.cart import CartLine, CustomField


def dump_custom_fields(custom_fields) -> str | None:
    if not custom_fields:
        return None
    return json.dumps([field.to_dict() for field in custom_fields])


def load_custom_fields(raw) -> tuple[CustomField, ...]:
    if not raw:
        return ()
    return tuple(CustomField(label=field["label"], value=field["value"]) for field in json.loads(raw))


@sales.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_sku = String(required=True, max_length=50)
    title = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    weight_grams = Float(default=0.0, min_value=0.0)
    size = String(max_length=20)
    color = String(max_length=50)
    thumbnail = String(max_length=500)
    custom_fields = Text()  # JSON array of {label, value}
    added_at = DateTime()

    def to_line(self) -> CartLine:
        return CartLine(
            product_id=str(self.product_id),
            variant_sku=self.variant_sku,
            title=self.title,
            price=self.price,
            quantity=self.quantity,
            weight_grams=self.weight_grams or 0,
            size=self.size,
            color=self.color,
            thumbnail=self.thumbnail,
            custom_fields=load_custom_fields(self.custom_fields),
        )


@sales.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    coupon_code = String(max_length=50)
    discount = Float(default=0.0, min_value=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    def lines(self) -> list[CartLine]:
        return [item.to_line() for item in self.items]

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(self, line: CartLine):
        """Add a line, merging it into an existing line of the same variant when allowed."""
        now = datetime.now(UTC)
        existing = next((item for item in self.items if line.mergeable_with(item.to_line())), None)

        if existing is not None:
            existing.quantity += line.quantity
        else:
            self.add_items(
                CartItem(
                    product_id=line.product_id,
                    variant_sku=line.variant_sku,
                    title=line.title,
                    price=line.price,
                    quantity=line.quantity,
                    weight_grams=line.weight_grams,
                    size=line.size,
                    color=line.color,
                    thumbnail=line.thumbnail,
                    custom_fields=dump_custom_fields(line.custom_fields),
                    added_at=now,
                )
            )

        self.updated_at = now
        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(line.product_id),
                variant_sku=line.variant_sku,
                quantity=line.quantity,
                merged=existing is not None,
            )
        )

    def update_line_quantity(self, variant_sku, quantity):
        """Set the quantity of every line for ``variant_sku``; no-op if there is none."""
        matching = [item for item in self.items if item.variant_sku == variant_sku]
        if not matching:
            return

        for item in matching:
            item.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                variant_sku=variant_sku,
                new_quantity=quantity,
            )
        )

    def remove_line(self, variant_sku):
        """Remove every line for ``variant_sku``; no-op if there is none."""
        matching = [item for item in self.items if item.variant_sku == variant_sku]
        if not matching:
            return

        for item in matching:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), variant_sku=variant_sku))

    # -------------------------------------------------------------------
    # Coupon and lifecycle
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_code, discount):
        self.coupon_code = coupon_code
        self.discount = discount
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=coupon_code,
                discount=discount,
            )
        )

    def clear(self):
        """Empty the cart and drop any applied coupon."""
        for item in list(self.items):
            self.remove_items(item)
        self.coupon_code = None
        self.discount = 0.0
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                cleared_at=now,
            )
        )


@sales.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        results = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return results[0] if results else None
