"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Coupon")
class CouponCreated:
    """A new coupon code was made available."""

    __version__ = "v1"

    coupon_id = Identifier(required=True)
    code = String(required=True)
    kind = String(required=True)
    value = Float(required=True)


@sales.event(part_of="Coupon")
class CouponUpdated:
    """An admin changed a coupon's terms."""

    __version__ = "v1"

    coupon_id = Identifier(required=True)
    code = String(required=True)


@sales.event(part_of="Coupon")
class CouponRedeemed:
    """A placed order used the coupon."""

    __version__ = "v1"

    coupon_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)
