"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="ShoppingCart")
class CartLineAdded:
    """A variant was added to the cart, as a new line or merged into an existing one."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_sku = String(required=True)
    quantity = Integer(required=True)
    merged = Boolean(default=False)


@sales.event(part_of="ShoppingCart")
class CartLineQuantityUpdated:
    """All lines for a variant were set to a new quantity."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    variant_sku = String(required=True)
    new_quantity = Integer(required=True)


@sales.event(part_of="ShoppingCart")
class CartLineRemoved:
    """All lines for a variant were removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    variant_sku = String(required=True)


@sales.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon code was attached to the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount = Float(required=True)


@sales.event(part_of="ShoppingCart")
class CartCleared:
    """The cart was emptied, usually because its contents became an order."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    cleared_at = DateTime(required=True)
