"""Coupon aggregate and its repository.

Coupon codes are case-insensitive: they are stored upper-cased and every
lookup normalizes the code the same way.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from sales.coupon.events import CouponCreated, CouponRedeemed, CouponUpdated
from sales.domain import sales
from sales.pricing.coupons import CouponKind, CouponTerms, normalize_code

_EDITABLE_FIELDS = (
    "code",
    "kind",
    "value",
    "min_spend",
    "max_discount",
    "starts_at",
    "ends_at",
    "usage_limit",
    "auto_apply",
    "is_active",
)


@sales.aggregate
class Coupon:
    code = String(required=True, max_length=50)
    kind = String(required=True, choices=CouponKind)
    value = Float(required=True, min_value=0.0)
    min_spend = Float(min_value=0.0)
    max_discount = Float(min_value=0.0)
    starts_at = DateTime()
    ends_at = DateTime()
    usage_limit = Integer(min_value=0)
    used_count = Integer(default=0, min_value=0)
    auto_apply = Boolean(default=False)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def usage_must_not_exceed_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage limit reached"]})

    @invariant.post
    def percentage_must_be_between_0_and_100(self):
        if self.kind == CouponKind.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage coupons must be between 0 and 100"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.starts_at and self.ends_at and self.ends_at < self.starts_at:
            raise ValidationError({"ends_at": ["Coupon cannot end before it starts"]})

    @classmethod
    def create(cls, code, kind, value, **terms):
        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            kind=kind,
            value=value,
            created_at=now,
            updated_at=now,
            **terms,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                kind=coupon.kind,
                value=coupon.value,
            )
        )
        return coupon

    def update(self, **changes):
        unknown = set(changes) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({field: ["Field cannot be changed"] for field in sorted(unknown)})

        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])

        with atomic_change(self):
            for field, value in changes.items():
                setattr(self, field, value)
            self.updated_at = datetime.now(UTC)

        self.raise_(CouponUpdated(coupon_id=str(self.id), code=self.code))

    def terms(self) -> CouponTerms:
        return CouponTerms(
            code=self.code,
            kind=self.kind,
            value=self.value,
            is_active=bool(self.is_active),
            min_spend=self.min_spend,
            max_discount=self.max_discount,
            usage_limit=self.usage_limit,
            used_count=self.used_count or 0,
            starts_at=self.starts_at,
            ends_at=self.ends_at,
            auto_apply=bool(self.auto_apply),
        )

    def record_usage(self):
        """Count one redemption, refusing it if the limit is already reached."""
        if self.usage_limit is not None and (self.used_count or 0) >= self.usage_limit:
            raise ValidationError({"coupon_code": ["Coupon usage limit reached"]})

        now = datetime.now(UTC)
        self.used_count = (self.used_count or 0) + 1
        self.updated_at = now

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                redeemed_at=now,
            )
        )


@sales.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None

    def code_exists(self, code, exclude_id=None) -> bool:
        coupon = self.find_by_code(code)
        return coupon is not None and str(coupon.id) != str(exclude_id)

    def auto_apply_candidates(self) -> list[Coupon]:
        return self._dao.query.filter(auto_apply=True, is_active=True).limit(None).all().items

    def list_page(self, page=1, limit=10):
        """A page of coupons, newest first, and the total count."""
        results = self._dao.query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def redeem(self, code) -> Coupon:
        """Check the usage limit and count one use in a single repository call.

        Runs inside the caller's unit of work, so the increment commits or
        rolls back together with the order that used the coupon.
        """
        coupon = self.find_by_code(code)
        if coupon is None:
            raise ObjectNotFoundError(f"Coupon {normalize_code(code)} not found")
        coupon.record_usage()
        self.add(coupon)
        return coupon
