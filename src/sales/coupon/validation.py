"""Coupon validation against a cart subtotal."""

from datetime import datetime

from protean.utils.globals import current_domain

from sales.coupon.coupon import Coupon
from sales.pricing.coupons import CouponVerdict, best_auto_apply, evaluate_coupon


def validate_coupon(code, subtotal, now: datetime | None = None) -> CouponVerdict:
    """Look up ``code`` and evaluate it against ``subtotal``.

    An unknown code is a negative verdict, not an error.
    """
    coupon = current_domain.repository_for(Coupon).find_by_code(code)
    return evaluate_coupon(coupon.terms() if coupon else None, subtotal, now)


def find_auto_apply_coupon(subtotal, now: datetime | None = None) -> CouponVerdict | None:
    """Best valid auto-apply coupon for ``subtotal``, or ``None``."""
    candidates = current_domain.repository_for(Coupon).auto_apply_candidates()
    return best_auto_apply([coupon.terms() for coupon in candidates], subtotal, now)
