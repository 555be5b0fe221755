"""Application tests for coupon management and validation."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from sales.coupon.coupon import Coupon
from sales.coupon.management import UpdateCoupon
from sales.coupon.validation import find_auto_apply_coupon, validate_coupon


def _update(code, **changes):
    return current_domain.process(UpdateCoupon(code=code, changes=json.dumps(changes)), asynchronous=False)


class TestCreateCoupon:
    def test_create_persists_normalized_code(self, make_coupon):
        coupon_id = make_coupon("welcome", kind="fixed", value=500)
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.code == "WELCOME"
        assert coupon.kind == "fixed"
        assert coupon.used_count == 0

    def test_duplicate_code_rejected_case_insensitively(self, make_coupon):
        make_coupon("WELCOME")
        with pytest.raises(ValidationError) as exc:
            make_coupon("welcome")
        assert exc.value.messages["code"] == ["Coupon code already exists"]


class TestUpdateCoupon:
    def test_update_value(self, make_coupon):
        coupon_id = make_coupon("SAVE10")
        _update("save10", value=15, is_active=False)
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.value == 15
        assert coupon.is_active is False

    def test_update_dates_from_iso_strings(self, make_coupon):
        coupon_id = make_coupon("SUMMER")
        _update("SUMMER", ends_at="2026-08-31T23:59:59+00:00")
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.ends_at == datetime(2026, 8, 31, 23, 59, 59, tzinfo=UTC)

    def test_rename_to_existing_code_rejected(self, make_coupon):
        make_coupon("SAVE10")
        make_coupon("SAVE20", value=20)
        with pytest.raises(ValidationError):
            _update("SAVE20", code="save10")

    def test_unknown_coupon(self):
        with pytest.raises(ObjectNotFoundError):
            _update("GHOST", value=5)


class TestValidateCoupon:
    def test_valid(self, make_coupon):
        make_coupon("SAVE10")
        verdict = validate_coupon("Save10", 2500)
        assert verdict.valid
        assert verdict.discount == 250

    def test_unknown_code(self):
        verdict = validate_coupon("NOPE", 2500)
        assert not verdict.valid
        assert verdict.message == "Coupon not found"

    def test_expired(self, make_coupon):
        make_coupon("OLD", ends_at=datetime.now(UTC) - timedelta(days=1))
        assert validate_coupon("OLD", 2500).message == "Coupon has expired"

    def test_not_yet_active(self, make_coupon):
        make_coupon("SOON", starts_at=datetime.now(UTC) + timedelta(days=1))
        assert validate_coupon("SOON", 2500).message == "Coupon not yet active"

    def test_validation_does_not_count_usage(self, make_coupon):
        make_coupon("SAVE10", usage_limit=1)
        validate_coupon("SAVE10", 2500)
        validate_coupon("SAVE10", 2500)
        assert current_domain.repository_for(Coupon).find_by_code("SAVE10").used_count == 0


class TestAutoApply:
    def test_best_auto_apply_coupon(self, make_coupon):
        make_coupon("AUTO5", value=5, auto_apply=True)
        make_coupon("AUTO300", kind="fixed", value=300, auto_apply=True)
        make_coupon("MANUAL50", value=50)
        verdict = find_auto_apply_coupon(2500)
        assert verdict.code == "AUTO300"
        assert verdict.discount == 300

    def test_none_when_nothing_applies(self, make_coupon):
        make_coupon("AUTOBIG", value=5, auto_apply=True, min_spend=10000)
        assert find_auto_apply_coupon(2500) is None

    def test_inactive_coupons_are_skipped(self, make_coupon):
        make_coupon("AUTO5", value=5, auto_apply=True, is_active=False)
        assert find_auto_apply_coupon(2500) is None

    def test_every_auto_apply_coupon_is_considered(self):
        repo = current_domain.repository_for(Coupon)
        for index in range(105):
            repo.add(Coupon.create(f"AUTO{index}", "fixed", 1, auto_apply=True))
        repo.add(Coupon.create("AUTOBEST", "fixed", 400, auto_apply=True))

        assert find_auto_apply_coupon(2500).code == "AUTOBEST"


class TestListCoupons:
    def test_pages_newest_first(self):
        repo = current_domain.repository_for(Coupon)
        for index in range(12):
            repo.add(Coupon.create(f"CODE{index}", "fixed", 100))

        coupons, total = repo.list_page(page=2, limit=10)
        assert total == 12
        assert [coupon.code for coupon in coupons] == ["CODE1", "CODE0"]
