"""Coupon management: commands and handler for admin coupon maintenance."""

import json
from datetime import datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text
from protean.utils.globals import current_domain

from sales.coupon.coupon import Coupon
from sales.domain import logger, sales
from sales.pricing.coupons import normalize_code


@sales.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    kind = String(required=True, max_length=20)
    value = Float(required=True, min_value=0.0)
    min_spend = Float()
    max_discount = Float()
    starts_at = DateTime()
    ends_at = DateTime()
    usage_limit = Integer()
    auto_apply = Boolean(default=False)
    is_active = Boolean(default=True)


@sales.command(part_of="Coupon")
class UpdateCoupon:
    """Change some of a coupon's terms. ``changes`` holds only the fields to set."""

    code = String(required=True, max_length=50)
    changes = Text(required=True)  # JSON object of field -> new value


def _parse_changes(raw):
    changes = json.loads(raw) if isinstance(raw, str) else dict(raw)
    for field in ("starts_at", "ends_at"):
        if isinstance(changes.get(field), str):
            changes[field] = datetime.fromisoformat(changes[field])
    return changes


@sales.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.code_exists(command.code):
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            kind=command.kind,
            value=command.value,
            min_spend=command.min_spend,
            max_discount=command.max_discount,
            starts_at=command.starts_at,
            ends_at=command.ends_at,
            usage_limit=command.usage_limit,
            auto_apply=command.auto_apply,
            is_active=command.is_active,
        )
        repo.add(coupon)

        logger.info("coupon_created", code=coupon.code, kind=coupon.kind)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(command.code)
        if coupon is None:
            raise ObjectNotFoundError(f"Coupon {normalize_code(command.code)} not found")

        changes = _parse_changes(command.changes)
        if "code" in changes and repo.code_exists(changes["code"], exclude_id=coupon.id):
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon.update(**changes)
        repo.add(coupon)
        return str(coupon.id)
