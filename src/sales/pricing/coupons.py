"""Coupon evaluation.

Checks run in a fixed order and the first failure wins, so a customer is
always told the most fundamental reason a code does not apply. Evaluation
never changes the coupon; usage is counted separately when an order is
placed.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class CouponKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class CouponTerms:
    """The parts of a stored coupon that decide whether and how much it discounts."""

    code: str
    kind: str
    value: float
    is_active: bool = True
    min_spend: float | None = None
    max_discount: float | None = None
    usage_limit: int | None = None
    used_count: int = 0
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    auto_apply: bool = False


@dataclass(frozen=True)
class CouponVerdict:
    valid: bool
    discount: float = 0
    message: str | None = None
    code: str | None = None

    def to_dict(self) -> dict:
        result = {"valid": self.valid, "discount": self.discount}
        if self.message is not None:
            result["message"] = self.message
        return result


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def compute_discount(kind: str, value: float, subtotal: float, max_discount: float | None = None) -> float:
    """Discount a coupon of ``kind`` grants on ``subtotal``.

    Percentage discounts are capped by ``max_discount``; fixed discounts
    never exceed the subtotal.
    """
    if CouponKind(kind) == CouponKind.PERCENTAGE:
        cap = max_discount if max_discount is not None else math.inf
        return min(subtotal * value / 100, cap)
    return min(value, subtotal)


def evaluate_coupon(coupon: CouponTerms | None, subtotal: float, now: datetime | None = None) -> CouponVerdict:
    """Decide whether ``coupon`` applies to ``subtotal`` at ``now``."""
    if coupon is None:
        return CouponVerdict(valid=False, message="Coupon not found")

    if not coupon.is_active:
        return CouponVerdict(valid=False, message="Coupon is not active", code=coupon.code)

    if coupon.min_spend is not None and subtotal < coupon.min_spend:
        return CouponVerdict(
            valid=False,
            message=f"Minimum spend of {_format_amount(coupon.min_spend)} required",
            code=coupon.code,
        )

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return CouponVerdict(valid=False, message="Coupon usage limit reached", code=coupon.code)

    now = _as_utc(now or datetime.now(UTC))
    if coupon.starts_at is not None and now < _as_utc(coupon.starts_at):
        return CouponVerdict(valid=False, message="Coupon not yet active", code=coupon.code)

    if coupon.ends_at is not None and now > _as_utc(coupon.ends_at):
        return CouponVerdict(valid=False, message="Coupon has expired", code=coupon.code)

    discount = compute_discount(coupon.kind, coupon.value, subtotal, coupon.max_discount)
    return CouponVerdict(valid=True, discount=discount, code=coupon.code)


def best_auto_apply(coupons, subtotal: float, now: datetime | None = None) -> CouponVerdict | None:
    """Return the valid auto-apply coupon granting the largest discount, if any."""
    best = None
    for coupon in coupons:
        if not coupon.auto_apply:
            continue
        verdict = evaluate_coupon(coupon, subtotal, now)
        if verdict.valid and (best is None or verdict.discount > best.discount):
            best = verdict
    return best
