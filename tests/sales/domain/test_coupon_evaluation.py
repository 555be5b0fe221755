"""Tests for coupon evaluation order, discount math and auto-apply selection."""

from datetime import UTC, datetime, timedelta

from sales.pricing.coupons import (
    CouponTerms,
    best_auto_apply,
    compute_discount,
    evaluate_coupon,
    normalize_code,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _coupon(**overrides):
    terms = {"code": "SAVE10", "kind": "percentage", "value": 10}
    terms.update(overrides)
    return CouponTerms(**terms)


class TestComputeDiscount:
    def test_percentage(self):
        assert compute_discount("percentage", 10, 2500) == 250

    def test_percentage_capped_by_max_discount(self):
        assert compute_discount("percentage", 50, 10000, max_discount=1000) == 1000

    def test_fixed(self):
        assert compute_discount("fixed", 300, 2500) == 300

    def test_fixed_never_exceeds_subtotal(self):
        assert compute_discount("fixed", 3000, 2500) == 2500


class TestEvaluateCoupon:
    def test_valid_percentage_coupon(self):
        verdict = evaluate_coupon(_coupon(), 2500, NOW)
        assert verdict.valid
        assert verdict.discount == 250
        assert verdict.message is None
        assert verdict.code == "SAVE10"

    def test_unknown_coupon(self):
        verdict = evaluate_coupon(None, 2500, NOW)
        assert not verdict.valid
        assert verdict.discount == 0
        assert verdict.message == "Coupon not found"

    def test_inactive_coupon(self):
        verdict = evaluate_coupon(_coupon(is_active=False), 2500, NOW)
        assert verdict.message == "Coupon is not active"

    def test_minimum_spend(self):
        verdict = evaluate_coupon(_coupon(min_spend=3000), 2500, NOW)
        assert not verdict.valid
        assert verdict.message == "Minimum spend of 3000 required"

    def test_minimum_spend_met_exactly(self):
        assert evaluate_coupon(_coupon(min_spend=2500), 2500, NOW).valid

    def test_usage_limit_reached(self):
        verdict = evaluate_coupon(_coupon(usage_limit=5, used_count=5), 2500, NOW)
        assert verdict.message == "Coupon usage limit reached"

    def test_not_yet_active(self):
        verdict = evaluate_coupon(_coupon(starts_at=NOW + timedelta(days=1)), 2500, NOW)
        assert verdict.message == "Coupon not yet active"

    def test_expired(self):
        verdict = evaluate_coupon(_coupon(ends_at=NOW - timedelta(seconds=1)), 2500, NOW)
        assert verdict.message == "Coupon has expired"

    def test_naive_dates_are_treated_as_utc(self):
        naive_end = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        assert evaluate_coupon(_coupon(ends_at=naive_end), 2500, NOW).valid

    def test_inactive_reported_before_minimum_spend(self):
        verdict = evaluate_coupon(_coupon(is_active=False, min_spend=10000), 2500, NOW)
        assert verdict.message == "Coupon is not active"

    def test_minimum_spend_reported_before_usage_limit(self):
        verdict = evaluate_coupon(_coupon(min_spend=10000, usage_limit=1, used_count=1), 2500, NOW)
        assert verdict.message == "Minimum spend of 10000 required"

    def test_usage_limit_reported_before_expiry(self):
        verdict = evaluate_coupon(
            _coupon(usage_limit=1, used_count=1, ends_at=NOW - timedelta(days=1)),
            2500,
            NOW,
        )
        assert verdict.message == "Coupon usage limit reached"

    def test_to_dict_omits_message_when_valid(self):
        assert evaluate_coupon(_coupon(), 2500, NOW).to_dict() == {"valid": True, "discount": 250}

    def test_to_dict_carries_message_when_invalid(self):
        assert evaluate_coupon(None, 2500, NOW).to_dict() == {
            "valid": False,
            "discount": 0,
            "message": "Coupon not found",
        }


class TestNormalizeCode:
    def test_uppercases_and_strips(self):
        assert normalize_code("  save10 ") == "SAVE10"

    def test_none_becomes_empty(self):
        assert normalize_code(None) == ""


class TestBestAutoApply:
    def test_picks_largest_discount(self):
        coupons = [
            _coupon(code="TENOFF", auto_apply=True),
            _coupon(code="FLAT500", kind="fixed", value=500, auto_apply=True),
        ]
        verdict = best_auto_apply(coupons, 2500, NOW)
        assert verdict.code == "FLAT500"
        assert verdict.discount == 500

    def test_ignores_coupons_not_marked_auto_apply(self):
        assert best_auto_apply([_coupon()], 2500, NOW) is None

    def test_ignores_invalid_coupons(self):
        coupons = [_coupon(code="BIG", auto_apply=True, min_spend=10000)]
        assert best_auto_apply(coupons, 2500, NOW) is None
