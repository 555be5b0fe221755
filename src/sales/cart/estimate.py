"""Cart totals estimates for display before checkout."""

from sales.coupon.validation import validate_coupon
from sales.pricing.cart import CartTotals, compute_totals, subtotal_of
from sales.shipping.provider import ShippingConfigProvider


def estimate_totals(
    lines,
    provider: ShippingConfigProvider,
    coupon_code=None,
    expedited=False,
) -> tuple[CartTotals, str | None]:
    """Price ``lines`` with the provider's cached shipping configuration.

    A coupon is re-evaluated against the current subtotal. An invalid one
    contributes no discount and its message is returned alongside the
    totals.
    """
    lines = list(lines)
    discount = 0
    message = None
    if coupon_code:
        verdict = validate_coupon(coupon_code, subtotal_of(lines))
        if verdict.valid:
            discount = verdict.discount
        else:
            message = verdict.message

    totals = compute_totals(
        lines,
        discount=discount,
        shipping_config=provider.get(),
        expedited=expedited,
    )
    return totals, message
